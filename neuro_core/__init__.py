"""
Neuro Companion Core

Async response pipeline for a meditation companion: AI text replies, speech
synthesis, and talking-head video, with fallbacks at every stage and
best-effort session records.
"""

__version__ = "1.0.0"

from neuro_core.config import Settings, get_settings
from neuro_core.pipeline import PipelineOrchestrator, Presenter, build_orchestrator

__all__ = [
    "__version__",
    "Settings",
    "get_settings",
    "PipelineOrchestrator",
    "Presenter",
    "build_orchestrator",
]

"""
On-device speech fallback.

Uses the ``espeak`` binary when present. Output goes straight to the audio
device; nothing is returned that could be uploaded or composited.
"""

import asyncio
import shutil
import subprocess
from typing import Optional

import structlog

from neuro_core.voice.base import LocalSpeechEngine

logger = structlog.get_logger(__name__)


class EspeakSpeechEngine(LocalSpeechEngine):
    """Speaks text through espeak. One utterance at a time."""

    def __init__(self, rate: int = 165, pitch: int = 50, binary: str = "espeak"):
        self.rate = rate
        self.pitch = pitch
        self.binary = binary
        self._process: Optional[subprocess.Popen] = None

    @property
    def available(self) -> bool:
        return bool(shutil.which(self.binary))

    async def speak(self, text: str) -> None:
        cleaned = " ".join(text.split())
        if not cleaned:
            return
        executable = shutil.which(self.binary)
        if not executable:
            raise RuntimeError(f"{self.binary} is not installed")

        self.stop()
        process = subprocess.Popen(
            [executable, "-s", str(self.rate), "-p", str(self.pitch), cleaned],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        self._process = process
        try:
            returncode = await asyncio.to_thread(process.wait)
        finally:
            if self._process is process:
                self._process = None

        # Negative return codes mean we terminated it via stop()
        if returncode > 0:
            raise RuntimeError(f"{self.binary} exited with status {returncode}")

    def stop(self) -> None:
        process = self._process
        if process is not None and process.poll() is None:
            logger.debug("local_speech_stopped", pid=process.pid)
            process.terminate()
        self._process = None

"""Syntactic credential checks, applied before any network call."""

from typing import Optional

from neuro_core.core.errors import ConfigurationError

PLACEHOLDER_MARKERS = (
    "your-",
    "your_",
    "placeholder",
    "changeme",
    "<",
)


def credential_problem(
    key: Optional[str],
    prefix: Optional[str] = None,
    min_length: int = 20,
) -> Optional[str]:
    """Return a reason the key is unusable, or None if it looks valid."""
    if not key or not key.strip():
        return "missing"
    key = key.strip()
    lowered = key.lower()
    if any(marker in lowered for marker in PLACEHOLDER_MARKERS):
        return "placeholder"
    if prefix and not key.startswith(prefix):
        return f"expected prefix {prefix!r}"
    if len(key) < min_length:
        return "too short"
    return None


def require_credential(
    key: Optional[str],
    provider: str,
    prefix: Optional[str] = None,
    min_length: int = 20,
) -> str:
    """Return the stripped key or raise ConfigurationError."""
    problem = credential_problem(key, prefix=prefix, min_length=min_length)
    if problem:
        raise ConfigurationError(
            f"{provider} API key is not usable ({problem})",
            provider=provider,
            details={"reason": problem},
        )
    return key.strip()

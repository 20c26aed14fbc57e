"""
Error taxonomy for the response pipeline.

Every backend failure is funnelled through ``classify_http_error`` or
``classify_transport_error`` so that callers branch on exception type,
never on status codes or message text.
"""

from typing import Any, Dict, Optional

import httpx


class CompanionError(Exception):
    """Base exception for pipeline errors."""

    code = "companion_error"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        provider: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.provider = provider
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "provider": self.provider,
            "details": self.details,
        }


class ConfigurationError(CompanionError):
    """Missing or malformed credential. Raised before any network call."""

    code = "configuration_error"


class AuthenticationError(CompanionError):
    """Backend rejected the credential (401)."""

    code = "authentication_failed"


class AuthorizationError(CompanionError):
    """Backend refused access to the resource (403)."""

    code = "access_forbidden"


class RateLimitOrQuotaError(CompanionError):
    """Rate limit, quota, or concurrency ceiling reached."""

    code = "rate_limited"

    def __init__(self, message: str, retry_after: Optional[int] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class QuotaExceededError(RateLimitOrQuotaError):
    code = "quota_exceeded"


class ConcurrencyLimitError(RateLimitOrQuotaError):
    code = "concurrency_limit_reached"


class ValidationError(CompanionError):
    """Request rejected as invalid, e.g. unknown persona or replica id."""

    code = "invalid_configuration"


class ConnectivityError(CompanionError):
    """DNS, connection, or transport failure."""

    code = "connectivity_error"


class RequestTimeoutError(ConnectivityError):
    """A bounded request timeout fired."""

    code = "request_timeout"


class UpstreamServiceError(CompanionError):
    """5xx or unrecognised 4xx from a backend."""

    code = "service_error"

    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.status_code = status_code


class JobFailedError(UpstreamServiceError):
    """The video backend reported the job as failed."""

    code = "job_failed"


class JobTimedOutError(CompanionError):
    """Polling exhausted its attempt budget without a terminal status."""

    code = "job_timed_out"


class PersistenceError(CompanionError):
    """Session record store failure. Always non-fatal to the pipeline."""

    code = "persistence_error"


class RecordStateError(ValueError):
    """Illegal SessionRecord status transition."""


_LIMIT_MARKERS = ("concurrent", "maximum", "limit", "quota")
_IDENTIFIER_MARKERS = ("persona", "replica", "voice")


def classify_http_error(
    status_code: int,
    body: str,
    provider: str,
    retry_after: Optional[str] = None,
) -> CompanionError:
    """Map a non-success HTTP response to a taxonomy error."""
    text = body or ""
    lowered = text.lower()
    details = {"status_code": status_code, "body": text[:500]}

    if status_code == 401:
        return AuthenticationError(
            f"{provider} rejected the API key", provider=provider, details=details
        )
    if status_code == 403:
        return AuthorizationError(
            f"{provider} denied access", provider=provider, details=details
        )
    if status_code == 402:
        return QuotaExceededError(
            f"{provider} quota exceeded", provider=provider, details=details
        )
    if status_code == 429:
        seconds = int(retry_after) if retry_after and retry_after.isdigit() else None
        return RateLimitOrQuotaError(
            f"{provider} rate limit exceeded",
            retry_after=seconds,
            provider=provider,
            details=details,
        )
    if 400 <= status_code < 500:
        if any(marker in lowered for marker in ("concurrent", "maximum")):
            return ConcurrencyLimitError(
                f"{provider} concurrency limit reached", provider=provider, details=details
            )
        if any(marker in lowered for marker in _LIMIT_MARKERS):
            return QuotaExceededError(
                f"{provider} usage limit reached", provider=provider, details=details
            )
        if status_code in (400, 404, 422) and any(
            marker in lowered for marker in _IDENTIFIER_MARKERS
        ):
            return ValidationError(
                f"{provider} rejected the request configuration: {text[:200]}",
                provider=provider,
                details=details,
            )
    return UpstreamServiceError(
        f"{provider} API error: {status_code}",
        status_code=status_code,
        provider=provider,
        details=details,
    )


def classify_transport_error(exc: Exception, provider: str) -> CompanionError:
    """Map an httpx transport exception to a taxonomy error."""
    if isinstance(exc, httpx.TimeoutException):
        return RequestTimeoutError(
            f"{provider} request timed out", provider=provider
        )
    if isinstance(exc, (httpx.ConnectError, httpx.NetworkError)):
        return ConnectivityError(
            f"Could not reach {provider}: {exc}", provider=provider
        )
    return UpstreamServiceError(f"{provider} request failed: {exc}", provider=provider)

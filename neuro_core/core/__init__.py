"""
Core infrastructure: errors, logging, credential checks, and background tasks.
"""

from neuro_core.core.credentials import credential_problem, require_credential
from neuro_core.core.errors import (
    AuthenticationError,
    AuthorizationError,
    CompanionError,
    ConcurrencyLimitError,
    ConfigurationError,
    ConnectivityError,
    JobFailedError,
    JobTimedOutError,
    PersistenceError,
    QuotaExceededError,
    RateLimitOrQuotaError,
    RecordStateError,
    RequestTimeoutError,
    UpstreamServiceError,
    ValidationError,
    classify_http_error,
    classify_transport_error,
)
from neuro_core.core.logging import configure_logging, get_logger
from neuro_core.core.tasks import TaskSupervisor

__all__ = [
    # Errors
    "CompanionError",
    "ConfigurationError",
    "AuthenticationError",
    "AuthorizationError",
    "RateLimitOrQuotaError",
    "QuotaExceededError",
    "ConcurrencyLimitError",
    "ValidationError",
    "ConnectivityError",
    "RequestTimeoutError",
    "UpstreamServiceError",
    "JobFailedError",
    "JobTimedOutError",
    "PersistenceError",
    "RecordStateError",
    "classify_http_error",
    "classify_transport_error",
    # Credentials
    "credential_problem",
    "require_credential",
    # Logging
    "configure_logging",
    "get_logger",
    # Tasks
    "TaskSupervisor",
]

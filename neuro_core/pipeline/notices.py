"""User-visible notices for video pipeline failures."""

from dataclasses import dataclass
from enum import Enum

from neuro_core.core.errors import (
    AuthenticationError,
    AuthorizationError,
    CompanionError,
    ConfigurationError,
    ConnectivityError,
    JobTimedOutError,
    RateLimitOrQuotaError,
    ValidationError,
)


class NoticeLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Notice:
    """A dismissable message for the presentation layer."""
    title: str
    message: str
    level: NoticeLevel = NoticeLevel.WARNING
    code: str = "companion_error"
    dismissable: bool = True


def notice_for_error(error: BaseException) -> Notice:
    """Pick the notice wording for a failed video step."""
    code = error.code if isinstance(error, CompanionError) else "unexpected_error"

    if isinstance(error, RateLimitOrQuotaError):
        return Notice(
            title="Video service is busy",
            message=(
                "The video service has reached its limit for now. "
                "Please wait a minute before asking for another video."
            ),
            level=NoticeLevel.INFO,
            code=code,
        )
    if isinstance(error, ConfigurationError):
        return Notice(
            title="Video unavailable",
            message="Video responses are not set up. You can keep chatting without them.",
            level=NoticeLevel.INFO,
            code=code,
        )
    if isinstance(error, (AuthenticationError, AuthorizationError)):
        return Notice(
            title="Video unavailable",
            message="The video service did not accept our credentials. You can keep chatting without video.",
            code=code,
        )
    if isinstance(error, ValidationError):
        return Notice(
            title="Video unavailable",
            message="The video avatar is misconfigured. You can keep chatting without video.",
            code=code,
        )
    if isinstance(error, ConnectivityError):
        return Notice(
            title="Connection problem",
            message="We couldn't reach the video service. Check your connection and try again.",
            code=code,
        )
    if isinstance(error, JobTimedOutError):
        return Notice(
            title="Video is taking too long",
            message="Your video didn't finish in time. Please try again.",
            code=code,
        )
    return Notice(
        title="Video generation failed",
        message="Something went wrong while creating your video. Please try again.",
        level=NoticeLevel.ERROR,
        code=code,
    )

"""
Notices
=======

Fixed set of user-visible notices raised by the booth.

Rules:
    - Fatal conditions produce a blocking notice that must be acknowledged
    - Successful and degraded exports produce an auto-dismissing notice,
      after which the session resets on its own
    - One code per cause, message text derived from the code
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class NoticeCode(str, Enum):
    """
    Machine-readable notice codes.

    Attributes:
        EXPORT_SAVED: Saved locally, no remote archive configured
        EXPORT_ARCHIVED: Saved locally and archived remotely
        REMOTE_REJECTED: Saved locally, the archive refused the upload
        REMOTE_UNREACHABLE: Saved locally, the archive could not be reached
        LOCAL_SAVE_FAILED: The local export itself failed
        COMPOSITION_FAILED: An image failed to load while composing
        CAMERA_UNAVAILABLE: The camera never produced a frame
        STORAGE_QUOTA_EXCEEDED: Frame storage is full
        ASSET_INVALID: An uploaded frame could not be decoded
    """

    EXPORT_SAVED = "EXPORT_SAVED"
    EXPORT_ARCHIVED = "EXPORT_ARCHIVED"
    REMOTE_REJECTED = "REMOTE_REJECTED"
    REMOTE_UNREACHABLE = "REMOTE_UNREACHABLE"
    LOCAL_SAVE_FAILED = "LOCAL_SAVE_FAILED"
    COMPOSITION_FAILED = "COMPOSITION_FAILED"
    CAMERA_UNAVAILABLE = "CAMERA_UNAVAILABLE"
    STORAGE_QUOTA_EXCEEDED = "STORAGE_QUOTA_EXCEEDED"
    ASSET_INVALID = "ASSET_INVALID"


class NoticeLevel(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_MESSAGES = {
    NoticeCode.EXPORT_SAVED: "Photo saved to this device.",
    NoticeCode.EXPORT_ARCHIVED: "Photo saved to this device and uploaded to the archive!",
    NoticeCode.REMOTE_REJECTED: "Photo saved to this device, but the archive reported an error: {detail}",
    NoticeCode.REMOTE_UNREACHABLE: "Photo saved to this device, but the archive could not be reached.",
    NoticeCode.LOCAL_SAVE_FAILED: "The photo could not be saved: {detail}",
    NoticeCode.COMPOSITION_FAILED: "The photo strip could not be created: {detail}",
    NoticeCode.CAMERA_UNAVAILABLE: "The camera is not available. Please check the camera and its permissions.",
    NoticeCode.STORAGE_QUOTA_EXCEEDED: (
        "Frame storage is full (about {capacity_mb:.0f} MB).\n"
        "Please delete old frames before uploading a new one."
    ),
    NoticeCode.ASSET_INVALID: "The uploaded frame could not be read: {detail}",
}


class Notice(BaseModel):
    """
    A user-visible notice.

    Attributes:
        code: Notice code
        level: Visual severity
        message: Rendered message text
        blocking: Requires operator acknowledgement
        auto_dismiss_ms: Display time before dismissal, None when blocking
        auto_reset: Reset the session once the notice is dismissed
    """

    code: NoticeCode
    level: NoticeLevel
    message: str
    blocking: bool = Field(default=False)
    auto_dismiss_ms: Optional[int] = Field(default=None, ge=0)
    auto_reset: bool = Field(default=False)

    @classmethod
    def fatal(cls, code: NoticeCode, **params) -> "Notice":
        """Blocking error notice."""
        return cls(
            code=code,
            level=NoticeLevel.ERROR,
            message=_MESSAGES[code].format(**params),
            blocking=True,
        )

    @classmethod
    def timed(
        cls,
        code: NoticeCode,
        level: NoticeLevel,
        auto_dismiss_ms: int,
        **params,
    ) -> "Notice":
        """Auto-dismissing notice followed by a session reset."""
        return cls(
            code=code,
            level=level,
            message=_MESSAGES[code].format(**params),
            blocking=False,
            auto_dismiss_ms=auto_dismiss_ms,
            auto_reset=True,
        )

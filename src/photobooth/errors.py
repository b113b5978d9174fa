"""
Error Taxonomy
==============

Exceptions raised by the photobooth pipeline.

Severity:
    - CaptureNotReady: transient, absorbed by the session tick loop
    - CaptureAbandoned: session-fatal, camera never produced a frame
    - CompositionAssetLoadFailure: session-fatal, returns the booth to idle
    - RemoteUploadFailure: non-fatal, local export already succeeded
    - StorageQuotaExceeded: asset ingestion rolled back entirely

Everything derives from PhotoboothError so the controller can catch the
whole family at the top of the pipeline.
"""

from typing import Optional


class PhotoboothError(Exception):
    """Base class for all photobooth errors."""
    pass


class CaptureNotReady(PhotoboothError):
    """Raised when the live frame source has no usable frame yet."""
    pass


class CaptureAbandoned(PhotoboothError):
    """Raised when capture retries are exhausted."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Camera produced no frame after {attempts} attempts")


class CompositionAssetLoadFailure(PhotoboothError):
    """Raised when a photo or overlay fails to decode during compositing."""
    pass


class RemoteUploadFailure(PhotoboothError):
    """
    Raised when the remote archive upload fails.

    Attributes:
        detail: Error detail reported by the sink, or the transport error
        rejected: True if the sink answered and refused the upload
    """

    def __init__(self, detail: Optional[str], rejected: bool = False) -> None:
        self.detail = detail
        self.rejected = rejected
        super().__init__(detail or "Remote upload failed")


class StorageQuotaExceeded(PhotoboothError):
    """Raised when a durable write would exceed the store's capacity."""

    def __init__(self, required_bytes: int, capacity_bytes: int) -> None:
        self.required_bytes = required_bytes
        self.capacity_bytes = capacity_bytes
        super().__init__(
            f"Storage quota exceeded: need {required_bytes} bytes, "
            f"capacity is {capacity_bytes} bytes"
        )


class InvalidTransition(PhotoboothError):
    """Raised when an event is not valid for the current session phase."""
    pass


class SessionBusy(PhotoboothError):
    """Raised when a session is started while another one is in flight."""
    pass


class ExportInProgress(PhotoboothError):
    """Raised when an export is requested while another one is running."""
    pass


class AssetNotFound(PhotoboothError):
    """Raised when an overlay asset id does not resolve."""
    pass


class AssetNotRemovable(PhotoboothError):
    """Raised when removal of a built-in overlay asset is attempted."""
    pass


class SelectionLocked(PhotoboothError):
    """Raised when the selection changes while a session holds it."""
    pass

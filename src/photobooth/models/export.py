"""
Export Outcome
==============

Result of one export call. Local and remote results are independent:
a failed remote upload never invalidates a successful local save.

Example:
    ExportOutcome(
        local_save_ok=True,
        remote_upload_attempted=True,
        remote_upload_ok=False,
        error_detail="quota",
        filename="photobooth-1707321234567.png",
    )
"""

from typing import Optional

from pydantic import BaseModel, Field


class ExportOutcome(BaseModel):
    """
    Outcome of exporting a finished photo strip.

    Attributes:
        local_save_ok: Whether the local file was written
        remote_upload_attempted: Whether a remote endpoint was configured
        remote_upload_ok: Remote result, None when not attempted
        remote_rejected: The sink answered and refused the upload
        error_detail: Sink or transport error detail
        filename: Generated export filename
        local_path: Where the local copy landed
    """

    local_save_ok: bool = Field(...)
    remote_upload_attempted: bool = Field(default=False)
    remote_upload_ok: Optional[bool] = Field(default=None)
    remote_rejected: bool = Field(default=False)
    error_detail: Optional[str] = Field(default=None)
    filename: Optional[str] = Field(default=None)
    local_path: Optional[str] = Field(default=None)

    @property
    def is_degraded(self) -> bool:
        """Local save succeeded but remote archival did not."""
        return self.local_save_ok and self.remote_upload_ok is False

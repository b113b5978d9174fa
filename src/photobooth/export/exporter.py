"""
Persistence Exporter
====================

Exports a finished strip: local save always, remote archival if configured.

Order:
    1. Local save under a timestamped filename (no network involved)
    2. Remote upload, only when an archive client is configured

The two results are reported independently in one ExportOutcome. A remote
failure never undoes the local save, and a failed local save does not
stop the remote attempt.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from photobooth.errors import RemoteUploadFailure
from photobooth.export.folder import FolderSetting
from photobooth.export.local import LocalSaveTarget, export_filename
from photobooth.export.remote import RemoteArchiveClient
from photobooth.models.export import ExportOutcome


logger = logging.getLogger(__name__)


class PersistenceExporter:
    """
    Local + remote export of finished strips.

    Attributes:
        local_target: Where strips are saved on the kiosk
        remote: Archive client, None when no endpoint is configured
        folder_setting: Default folder hint, used when export() gets none
    """

    def __init__(
        self,
        local_target: LocalSaveTarget,
        remote: Optional[RemoteArchiveClient] = None,
        default_folder: str = "",
        folder_setting: Optional[FolderSetting] = None,
        filename_prefix: str = "photobooth",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.local_target = local_target
        self.remote = remote
        self.folder_setting = folder_setting or FolderSetting(default=default_folder)
        self.filename_prefix = filename_prefix
        self._clock = clock

    @property
    def default_folder(self) -> str:
        return self.folder_setting.value

    @property
    def remote_configured(self) -> bool:
        return self.remote is not None

    async def export(
        self,
        final_image: bytes,
        destination_hint: Optional[str] = None,
    ) -> ExportOutcome:
        """
        Export a strip.

        Args:
            final_image: PNG-encoded strip
            destination_hint: Remote folder id or folder URL

        Returns:
            ExportOutcome with independent local and remote results
        """
        filename = export_filename(self._clock(), self.filename_prefix)

        local_path: Optional[str] = None
        local_error: Optional[str] = None
        try:
            local_path = self.local_target.save(filename, final_image)
        except OSError as e:
            local_error = f"Local save failed: {e}"
            logger.error(f"{local_error} ({filename})")

        if self.remote is None:
            return ExportOutcome(
                local_save_ok=local_path is not None,
                remote_upload_attempted=False,
                remote_upload_ok=None,
                error_detail=local_error,
                filename=filename,
                local_path=local_path,
            )

        folder = destination_hint if destination_hint is not None else self.default_folder
        try:
            await asyncio.to_thread(self.remote.upload, final_image, filename, folder)
        except RemoteUploadFailure as e:
            logger.warning(f"Remote archival of {filename} failed: {e}")
            return ExportOutcome(
                local_save_ok=local_path is not None,
                remote_upload_attempted=True,
                remote_upload_ok=False,
                remote_rejected=e.rejected,
                error_detail=e.detail if e.detail is not None else local_error,
                filename=filename,
                local_path=local_path,
            )

        return ExportOutcome(
            local_save_ok=local_path is not None,
            remote_upload_attempted=True,
            remote_upload_ok=True,
            error_detail=local_error,
            filename=filename,
            local_path=local_path,
        )

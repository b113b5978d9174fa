"""
Export Module
=============

Persistence of finished strips:
    - local: timestamped file on the kiosk
    - remote: best-effort upload to an archive sink (requests)
    - folder: operator default for the remote destination folder
    - exporter: runs both, reports one ExportOutcome
"""

from photobooth.export.exporter import PersistenceExporter
from photobooth.export.folder import FolderSetting
from photobooth.export.local import DirectoryExportTarget, LocalSaveTarget, export_filename
from photobooth.export.remote import RemoteArchiveClient, normalize_folder_hint

__all__ = [
    "PersistenceExporter",
    "FolderSetting",
    "DirectoryExportTarget",
    "LocalSaveTarget",
    "export_filename",
    "RemoteArchiveClient",
    "normalize_folder_hint",
]

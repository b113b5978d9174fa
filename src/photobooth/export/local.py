"""
Local Export
============

Saves finished strips on the kiosk itself. Never touches the network.

Filename pattern: <prefix>-<unix-millis>.png, e.g. photobooth-1707321234567.png
"""

import logging
import os
from pathlib import Path
from typing import Protocol


logger = logging.getLogger(__name__)


def export_filename(timestamp: float, prefix: str = "photobooth") -> str:
    """Build the export filename for a capture timestamp (seconds)."""
    return f"{prefix}-{int(timestamp * 1000)}.png"


class LocalSaveTarget(Protocol):
    """Where finished strips are saved locally."""

    def save(self, filename: str, data: bytes) -> str:
        """
        Save the strip.

        Returns:
            Location of the saved file

        Raises:
            OSError: If the file cannot be written
        """
        ...


class DirectoryExportTarget:
    """Writes strips into a directory, atomically."""

    def __init__(self, directory: str) -> None:
        self.directory = Path(directory)

    def save(self, filename: str, data: bytes) -> str:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / filename
        tmp_path = path.with_suffix(path.suffix + ".part")
        tmp_path.write_bytes(data)
        os.replace(tmp_path, path)
        logger.info(f"Saved {path} ({len(data)} bytes)")
        return str(path)

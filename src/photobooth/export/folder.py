"""
Folder Setting
==============

Operator-editable default destination folder for remote archival.

The operator's choice survives restarts in a small JSON file kept next to
the overlay catalog:

    {"folder_id": "ABC123"}

Until an operator sets one, the configured remote.folder_id is used.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from photobooth.export.remote import normalize_folder_hint


logger = logging.getLogger(__name__)


class FolderSetting:
    """
    Default folder hint with an optional durable operator override.

    Attributes:
        default: Folder from configuration
        path: JSON file holding the operator's choice (None = memory only)
    """

    def __init__(self, default: str = "", path: Optional[str] = None) -> None:
        self.default = default
        self.path = Path(path) if path else None
        self._value: Optional[str] = None

    @property
    def value(self) -> str:
        return self._value if self._value is not None else self.default

    @property
    def is_operator_set(self) -> bool:
        return self._value is not None

    def load(self) -> None:
        """Read the stored operator choice, if any."""
        if self.path is None or not self.path.exists():
            return

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read folder setting {self.path}: {e}")
            return

        folder = data.get("folder_id") if isinstance(data, dict) else None
        if not isinstance(folder, str):
            logger.warning(f"Ignoring malformed folder setting in {self.path}")
            return

        self._value = folder
        logger.info(f"Loaded default archive folder '{folder or 'sink default'}'")

    def set(self, hint: Optional[str]) -> str:
        """
        Store a new default folder.

        Args:
            hint: Folder id or folder URL; empty means the sink's default

        Returns:
            The bare folder id that was stored

        Raises:
            OSError: If the setting cannot be written; the previous value
                stays in effect
        """
        folder = normalize_folder_hint(hint)

        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(json.dumps({"folder_id": folder}), encoding="utf-8")
            os.replace(tmp_path, self.path)

        self._value = folder
        logger.info(f"Default archive folder set to '{folder or 'sink default'}'")
        return folder

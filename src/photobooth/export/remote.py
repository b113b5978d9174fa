"""
Remote Archive Client
=====================

Best-effort upload of finished strips to a remote archive sink.

Wire contract:
    POST <url>
    Content-Type: application/x-www-form-urlencoded

        image=<data:image/png;base64,...>
        filename=<photobooth-<millis>.png>
        folderId=<bare folder id, may be empty>

    Response: JSON {"success": bool, "error"?: str}

No authentication is handled here; the endpoint URL is opaque.
"""

import logging
from typing import Optional

import requests

from photobooth.errors import RemoteUploadFailure
from photobooth.imaging.codec import to_data_uri


logger = logging.getLogger(__name__)


def normalize_folder_hint(hint: Optional[str]) -> str:
    """
    Reduce a destination hint to the bare folder identifier.

    Operators often paste a whole folder URL instead of the id:

        https://drive.example.com/drive/folders/ABC123?usp=sharing -> ABC123
        ABC123 -> ABC123
    """
    if not hint:
        return ""
    cleaned = hint.strip()
    if "folders/" in cleaned:
        cleaned = cleaned.split("folders/", 1)[1].split("?", 1)[0]
    return cleaned.strip("/")


class RemoteArchiveClient:
    """
    Client for the remote archive sink.

    Attributes:
        url: Archive endpoint
        timeout_seconds: Request timeout
    """

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    def upload(self, image_png: bytes, filename: str, folder_hint: Optional[str] = None) -> None:
        """
        Upload one strip.

        Args:
            image_png: PNG-encoded strip
            filename: Generated export filename
            folder_hint: Destination folder id or folder URL

        Raises:
            RemoteUploadFailure: On transport error, bad response or
                explicit rejection by the sink
        """
        form = {
            "image": to_data_uri(image_png, ".png"),
            "filename": filename,
            "folderId": normalize_folder_hint(folder_hint),
        }

        try:
            response = self._session.post(self.url, data=form, timeout=self.timeout_seconds)
        except requests.RequestException as e:
            raise RemoteUploadFailure(f"Archive unreachable: {e}")

        # The sink may reject with an error status and still explain why in the body
        try:
            result = response.json()
        except ValueError as e:
            self._raise_for_status(response)
            raise RemoteUploadFailure(f"Archive returned invalid JSON: {e}")

        if not isinstance(result, dict):
            self._raise_for_status(response)
            raise RemoteUploadFailure(None, rejected=True)

        if not result.get("success"):
            raise RemoteUploadFailure(result.get("error"), rejected=True)

        logger.info(f"Archived {filename} (folder={form['folderId'] or 'default'})")

    @staticmethod
    def _raise_for_status(response: requests.Response) -> None:
        try:
            response.raise_for_status()
        except requests.RequestException as e:
            raise RemoteUploadFailure(f"Archive unreachable: {e}")

    def close(self) -> None:
        self._session.close()

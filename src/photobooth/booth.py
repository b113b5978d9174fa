"""
Photobooth Controller
=====================

Ties the session machine, exporter and overlay catalog together and turns
their outcomes into user-visible notices.

Notice rules:
    - Session ended by a camera or composition failure → blocking notice
    - Export saved (with or without remote archival) → timed notice, then
      the session resets on its own
    - Local save failed → blocking notice, the result stays on screen
    - Overlay upload rejected → blocking notice
"""

import asyncio
import logging
from typing import Optional, Tuple

from photobooth.assets.catalog import AssetCatalog
from photobooth.assets.ingest import AssetIngestor
from photobooth.errors import ExportInProgress, InvalidTransition, StorageQuotaExceeded
from photobooth.export.exporter import PersistenceExporter
from photobooth.imaging.codec import ImageDecodeError
from photobooth.models.asset import OverlayAsset
from photobooth.models.export import ExportOutcome
from photobooth.models.notice import Notice, NoticeCode, NoticeLevel
from photobooth.models.session import SessionPhase, SessionState
from photobooth.session.machine import SessionStateMachine
from photobooth.session.transitions import SessionEvent


logger = logging.getLogger(__name__)


class PhotoBooth:
    """
    Kiosk-level controller.

    Attributes:
        machine: Session state machine
        exporter: Local/remote exporter
        catalog: Overlay catalog
        ingestor: Overlay upload pipeline
        auto_dismiss_ms: Display time of non-blocking notices
    """

    def __init__(
        self,
        machine: SessionStateMachine,
        exporter: PersistenceExporter,
        catalog: AssetCatalog,
        ingestor: AssetIngestor,
        auto_dismiss_ms: int = 3000,
    ) -> None:
        self.machine = machine
        self.exporter = exporter
        self.catalog = catalog
        self.ingestor = ingestor
        self.auto_dismiss_ms = auto_dismiss_ms

        self._notice: Optional[Notice] = None
        self._reset_task: Optional[asyncio.Task] = None
        self._exporting: bool = False
        self.machine.add_listener(self._on_session_change)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self.machine.state

    @property
    def is_exporting(self) -> bool:
        return self._exporting

    @property
    def notice(self) -> Optional[Notice]:
        return self._notice

    def _set_notice(self, notice: Notice) -> None:
        self._notice = notice
        log = logger.error if notice.level == NoticeLevel.ERROR else logger.info
        log(f"Notice {notice.code.value}: {notice.message}")

    def acknowledge(self) -> Optional[Notice]:
        """Dismiss the current notice; returns the dismissed one."""
        notice, self._notice = self._notice, None
        return notice

    def _on_session_change(self, state: SessionState) -> None:
        result = self.machine.last_result
        if result is None or state.phase != SessionPhase.IDLE:
            return
        if result.event == SessionEvent.CAPTURE_ABANDONED:
            self._set_notice(Notice.fatal(NoticeCode.CAMERA_UNAVAILABLE))
        elif result.event == SessionEvent.COMPOSE_FAILED:
            self._set_notice(Notice.fatal(
                NoticeCode.COMPOSITION_FAILED,
                detail=state.error_detail or "unknown error",
            ))

    # -------------------------------------------------------------------------
    # Session control
    # -------------------------------------------------------------------------

    def start_session(self) -> SessionState:
        """
        Start a session in the background.

        Raises:
            SessionBusy: If a session is already running
        """
        self.machine.begin()
        self._notice = None
        return self.state

    def cancel(self) -> SessionState:
        self._cancel_auto_reset()
        return self.machine.cancel()

    def reset(self) -> SessionState:
        self._cancel_auto_reset()
        self._notice = None
        return self.machine.reset()

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    async def export_result(
        self,
        destination_hint: Optional[str] = None,
    ) -> Tuple[ExportOutcome, Notice]:
        """
        Export the finished strip.

        Returns:
            Tuple of (outcome, notice shown for it)

        Raises:
            InvalidTransition: If there is no finished strip
            ExportInProgress: If an export of the strip is already running
        """
        state = self.state
        if state.phase != SessionPhase.RESULT or state.final_image is None:
            raise InvalidTransition(f"Nothing to export in {state.phase.value}")
        if self._exporting:
            raise ExportInProgress("An export is already running")

        self._exporting = True
        try:
            outcome = await self.exporter.export(state.final_image, destination_hint)
        finally:
            self._exporting = False

        notice = self._export_notice(outcome)
        self._set_notice(notice)

        if notice.auto_reset:
            self._schedule_auto_reset(state.session_id, notice)
        return outcome, notice

    def _export_notice(self, outcome: ExportOutcome) -> Notice:
        if not outcome.local_save_ok:
            return Notice.fatal(
                NoticeCode.LOCAL_SAVE_FAILED,
                detail=outcome.error_detail or "unknown error",
            )
        if not outcome.remote_upload_attempted:
            return Notice.timed(NoticeCode.EXPORT_SAVED, NoticeLevel.SUCCESS, self.auto_dismiss_ms)
        if outcome.remote_upload_ok:
            return Notice.timed(NoticeCode.EXPORT_ARCHIVED, NoticeLevel.SUCCESS, self.auto_dismiss_ms)
        if outcome.remote_rejected:
            return Notice.timed(
                NoticeCode.REMOTE_REJECTED,
                NoticeLevel.WARNING,
                self.auto_dismiss_ms,
                detail=outcome.error_detail or "unknown error",
            )
        return Notice.timed(NoticeCode.REMOTE_UNREACHABLE, NoticeLevel.WARNING, self.auto_dismiss_ms)

    def _schedule_auto_reset(self, session_id: int, notice: Notice) -> None:
        self._cancel_auto_reset()
        self._reset_task = asyncio.create_task(self._auto_reset(session_id, notice))

    def _cancel_auto_reset(self) -> None:
        if self._reset_task is not None and not self._reset_task.done():
            self._reset_task.cancel()
        self._reset_task = None

    async def _auto_reset(self, session_id: int, notice: Notice) -> None:
        await asyncio.sleep((notice.auto_dismiss_ms or 0) / 1000.0)
        if self._notice is notice:
            self._notice = None
        state = self.machine.state
        if state.session_id == session_id and state.phase == SessionPhase.RESULT:
            logger.info(f"Auto reset of session {session_id}")
            self.machine.reset()

    async def wait_auto_reset(self) -> None:
        """Wait for a pending auto reset, if any."""
        if self._reset_task is not None:
            await self._reset_task

    # -------------------------------------------------------------------------
    # Overlays
    # -------------------------------------------------------------------------

    async def ingest_asset(self, raw_image: bytes, display_name: str) -> OverlayAsset:
        """
        Ingest an uploaded overlay frame.

        Raises:
            ImageDecodeError: Upload is not a readable image
            StorageQuotaExceeded: Overlay storage is full
        """
        try:
            return await self.ingestor.ingest_async(raw_image, display_name)
        except ImageDecodeError as e:
            self._set_notice(Notice.fatal(NoticeCode.ASSET_INVALID, detail=str(e)))
            raise
        except StorageQuotaExceeded as e:
            self._set_notice(Notice.fatal(
                NoticeCode.STORAGE_QUOTA_EXCEEDED,
                capacity_mb=e.capacity_bytes / (1024 * 1024),
            ))
            raise

    def remove_asset(self, asset_id: str) -> None:
        self.catalog.remove(asset_id)

    def select_asset(self, asset_id: str) -> OverlayAsset:
        self.catalog.select(asset_id)
        return self.catalog.selected

"""
Photobooth Main Application
===========================

FastAPI entry point for the kiosk photobooth.

The kiosk UI talks to this service; all session logic lives in the
PhotoBooth controller built during startup.

Endpoints:
    GET    /                 - Service information
    GET    /health           - Liveness probe (is process alive?)
    GET    /ready            - Readiness probe (camera producing frames?)
    GET    /session          - Current session snapshot + notice
    GET    /session/image    - Finished strip (PNG)
    POST   /session/start    - Start a session
    POST   /session/cancel   - Cancel the active session
    POST   /session/reset    - Leave the result screen
    POST   /export           - Save (and archive) the finished strip
    GET    /assets           - Overlay catalog
    POST   /assets?name=...  - Upload an overlay (raw image body)
    DELETE /assets/{id}      - Remove a user overlay
    PUT    /assets/selected  - Select an overlay
    GET    /settings/folder  - Default archive folder
    PUT    /settings/folder  - Change the default archive folder (persisted)
    POST   /notice/ack       - Dismiss the current notice
    WS     /ws/session       - Real-time session snapshots
"""

import asyncio
import logging
import os
import signal
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Union

import numpy as np
from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from photobooth.assets import AssetCatalog, AssetIngestor, JsonFileAssetStore
from photobooth.booth import PhotoBooth
from photobooth.camera import OpenCVFrameSource, StaticFrameSource, StreamFrameSource
from photobooth.config import Settings, settings
from photobooth.errors import (
    AssetNotFound,
    AssetNotRemovable,
    ExportInProgress,
    InvalidTransition,
    PhotoboothError,
    SelectionLocked,
    SessionBusy,
    StorageQuotaExceeded,
)
from photobooth.export import (
    DirectoryExportTarget,
    FolderSetting,
    PersistenceExporter,
    RemoteArchiveClient,
)
from photobooth.imaging import Compositor, FrameCapturer, ImageDecodeError
from photobooth.models.geometry import CanvasLayout
from photobooth.session import SessionStateMachine, SessionTimings


logger = logging.getLogger(__name__)


FrameSourceType = Union[OpenCVFrameSource, StreamFrameSource, StaticFrameSource]


# =============================================================================
# Global State
# =============================================================================

# Shutdown flag
_shutdown_flag: bool = False

_frame_source: Optional[FrameSourceType] = None
_stream_task: Optional[asyncio.Task] = None
_remote_client: Optional[RemoteArchiveClient] = None
_booth: Optional[PhotoBooth] = None
_startup_time: float = 0.0


# =============================================================================
# Getters
# =============================================================================

def get_booth() -> Optional[PhotoBooth]:
    return _booth

def get_frame_source() -> Optional[FrameSourceType]:
    return _frame_source


# =============================================================================
# Signal Handlers
# =============================================================================

def _handle_sigterm(signum, frame):
    """Handle SIGTERM for graceful shutdown."""
    global _shutdown_flag
    logger.info("Received SIGTERM, initiating graceful shutdown...")
    _shutdown_flag = True


# =============================================================================
# Component Factories
# =============================================================================

def _demo_pattern(width: int, height: int) -> np.ndarray:
    """Colour gradient used by the 'static' camera backend."""
    xs = np.linspace(0, 255, width, dtype=np.uint8)
    ys = np.linspace(0, 255, height, dtype=np.uint8)
    pattern = np.empty((height, width, 3), dtype=np.uint8)
    pattern[:, :, 0] = xs[np.newaxis, :]
    pattern[:, :, 1] = ys[:, np.newaxis]
    pattern[:, :, 2] = 128
    return pattern


def create_frame_source(config: Settings) -> FrameSourceType:
    """
    Create the live frame source based on config.

    Fails fast on an unknown backend.
    """
    backend = config.camera.backend

    if backend == "opencv":
        logger.info(f"Using OpenCVFrameSource: device={config.camera.device_index}")
        return OpenCVFrameSource(
            device_index=config.camera.device_index,
            width=config.camera.width,
            height=config.camera.height,
        )

    elif backend == "stream":
        logger.info(f"Using StreamFrameSource: url={config.camera.stream_url}")
        return StreamFrameSource(
            url=config.camera.stream_url,
            reconnect_backoff_ms=config.camera.reconnect_backoff_ms,
        )

    elif backend == "static":
        logger.info("Using StaticFrameSource with a demo pattern")
        return StaticFrameSource(_demo_pattern(config.camera.width, config.camera.height))

    else:
        raise ValueError(f"Unknown camera backend: {backend}")


def camera_ready(source: Optional[FrameSourceType]) -> bool:
    """
    Readiness of the frame source without pulling a frame from the device.

    The capture path is the only consumer of the camera.
    """
    if source is None:
        return False
    if isinstance(source, OpenCVFrameSource):
        return source.is_open
    if isinstance(source, StreamFrameSource):
        return source.has_frame
    return source.get_live_frame().is_ready


def create_booth(
    config: Settings,
    frame_source: FrameSourceType,
    remote: Optional[RemoteArchiveClient] = None,
) -> PhotoBooth:
    """Wire the booth components from settings."""
    layout = CanvasLayout.from_offsets(
        width=config.composition.canvas_width,
        height=config.composition.canvas_height,
        margin=config.composition.slot_margin,
        slot_height=config.composition.slot_height,
        y_offsets=config.composition.slot_y_offsets,
    )

    catalog = AssetCatalog(
        JsonFileAssetStore(
            config.assets.store_path,
            capacity_bytes=config.assets.capacity_bytes,
        )
    )
    catalog.load()

    folder_setting = FolderSetting(
        default=config.remote.folder_id,
        path=config.remote.settings_path,
    )
    folder_setting.load()

    machine = SessionStateMachine(
        frame_source=frame_source,
        capturer=FrameCapturer(
            jpeg_quality=config.capture.jpeg_quality,
            mirror=config.capture.mirror,
        ),
        compositor=Compositor(layout),
        catalog=catalog,
        timings=SessionTimings.from_config(config.timing),
        photo_size=(config.capture.photo_width, config.capture.photo_height),
    )

    exporter = PersistenceExporter(
        local_target=DirectoryExportTarget(config.export.output_dir),
        remote=remote,
        folder_setting=folder_setting,
        filename_prefix=config.export.filename_prefix,
    )

    return PhotoBooth(
        machine=machine,
        exporter=exporter,
        catalog=catalog,
        ingestor=AssetIngestor(catalog, layout, webp_quality=config.assets.webp_quality),
        auto_dismiss_ms=config.notice.auto_dismiss_ms,
    )


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _frame_source, _stream_task, _remote_client, _booth, _startup_time

    signal.signal(signal.SIGTERM, _handle_sigterm)

    # Startup
    _startup_time = time.time()
    logger.info(f"Starting {settings.booth.name} {settings.booth.version}")

    _frame_source = create_frame_source(settings)
    if isinstance(_frame_source, OpenCVFrameSource):
        _frame_source.open()
    elif isinstance(_frame_source, StreamFrameSource):
        _stream_task = asyncio.create_task(_frame_source.run(), name="frame_stream")

    if settings.remote.url:
        _remote_client = RemoteArchiveClient(
            settings.remote.url,
            timeout_seconds=settings.remote.timeout_seconds,
        )
        logger.info("Remote archival enabled")
    else:
        logger.info("Remote archival disabled (no endpoint configured)")

    _booth = create_booth(settings, _frame_source, _remote_client)
    logger.info(
        f"Booth ready: {len(_booth.catalog.assets)} overlays, "
        f"exports to {settings.export.output_dir}"
    )

    yield

    # Shutdown
    logger.info("Shutting down gracefully...")

    global _shutdown_flag
    _shutdown_flag = True

    if _booth is not None:
        _booth.cancel()

    if isinstance(_frame_source, StreamFrameSource):
        await _frame_source.stop()
    if _stream_task:
        try:
            await asyncio.wait_for(_stream_task, timeout=5.0)
        except asyncio.TimeoutError:
            _stream_task.cancel()
            try:
                await _stream_task
            except asyncio.CancelledError:
                pass

    if isinstance(_frame_source, OpenCVFrameSource):
        _frame_source.close()
    if _remote_client is not None:
        _remote_client.close()

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Photobooth",
    description="Kiosk photobooth: three-shot strips with decorative frames",
    version=settings.booth.version,
    lifespan=lifespan,
)


class ExportRequest(BaseModel):
    destination: Optional[str] = Field(default=None, description="Folder id or folder URL")


class SelectRequest(BaseModel):
    asset_id: str


class FolderRequest(BaseModel):
    folder: str = Field(default="", description="Folder id or folder URL, empty for the sink default")


def _error(status_code: int, error: PhotoboothError) -> JSONResponse:
    return JSONResponse(
        {"error": type(error).__name__, "detail": str(error)},
        status_code=status_code,
    )


def _not_ready() -> JSONResponse:
    return JSONResponse({"error": "Booth not initialized"}, status_code=503)


def _session_payload(booth: PhotoBooth) -> dict:
    notice = booth.notice
    return {
        "session": booth.state.summary(),
        "notice": notice.model_dump(mode="json") if notice else None,
    }


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "Photobooth",
        "version": settings.booth.version,
        "name": settings.booth.name,
        "status": "running",
        "camera_backend": settings.camera.backend,
        "remote_archive": bool(settings.remote.url),
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/ready")
async def ready() -> JSONResponse:
    """
    Readiness probe - can the booth take photos?

    Returns 200 if the booth is built and the camera is open (or the
    stream has delivered a frame), 503 otherwise.
    """
    source_ready = camera_ready(get_frame_source())
    booth_ready = get_booth() is not None

    body = {
        "camera_ready": source_ready,
        "booth_initialized": booth_ready,
    }
    if source_ready and booth_ready:
        return JSONResponse({"status": "ready", **body})
    return JSONResponse({"status": "not_ready", **body}, status_code=503)


@app.get("/session")
async def session() -> JSONResponse:
    booth = get_booth()
    if booth is None:
        return _not_ready()
    return JSONResponse(_session_payload(booth))


@app.get("/session/image")
async def session_image() -> Response:
    """Finished strip of the current session."""
    booth = get_booth()
    if booth is None:
        return _not_ready()

    image = booth.state.final_image
    if image is None:
        return JSONResponse({"error": "No finished strip"}, status_code=404)
    return Response(content=image, media_type="image/png")


@app.post("/session/start")
async def session_start() -> JSONResponse:
    booth = get_booth()
    if booth is None:
        return _not_ready()
    try:
        booth.start_session()
    except SessionBusy as e:
        return _error(409, e)
    return JSONResponse(_session_payload(booth), status_code=202)


@app.post("/session/cancel")
async def session_cancel() -> JSONResponse:
    booth = get_booth()
    if booth is None:
        return _not_ready()
    booth.cancel()
    return JSONResponse(_session_payload(booth))


@app.post("/session/reset")
async def session_reset() -> JSONResponse:
    booth = get_booth()
    if booth is None:
        return _not_ready()
    try:
        booth.reset()
    except InvalidTransition as e:
        return _error(409, e)
    return JSONResponse(_session_payload(booth))


@app.post("/export")
async def export(request: Optional[ExportRequest] = None) -> JSONResponse:
    """Save the finished strip locally and, if configured, archive it."""
    booth = get_booth()
    if booth is None:
        return _not_ready()

    destination = request.destination if request else None
    try:
        outcome, notice = await booth.export_result(destination)
    except (InvalidTransition, ExportInProgress) as e:
        return _error(409, e)

    return JSONResponse({
        "outcome": outcome.model_dump(mode="json"),
        "notice": notice.model_dump(mode="json"),
    })


@app.get("/assets")
async def assets() -> JSONResponse:
    booth = get_booth()
    if booth is None:
        return _not_ready()
    return JSONResponse({
        "selected_id": booth.catalog.selected_id,
        "locked": booth.catalog.is_locked,
        "assets": [asset.summary() for asset in booth.catalog.assets],
    })


@app.post("/assets")
async def upload_asset(request: Request, name: str = "frame") -> JSONResponse:
    """Upload an overlay frame as a raw image body."""
    booth = get_booth()
    if booth is None:
        return _not_ready()

    raw = await request.body()
    try:
        asset = await booth.ingest_asset(raw, name)
    except ImageDecodeError as e:
        return JSONResponse(
            {"error": "ImageDecodeError", "detail": str(e)},
            status_code=400,
        )
    except StorageQuotaExceeded as e:
        return _error(507, e)

    return JSONResponse(asset.summary(), status_code=201)


@app.delete("/assets/{asset_id}")
async def delete_asset(asset_id: str) -> JSONResponse:
    booth = get_booth()
    if booth is None:
        return _not_ready()
    try:
        booth.remove_asset(asset_id)
    except AssetNotFound as e:
        return _error(404, e)
    except AssetNotRemovable as e:
        return _error(403, e)
    except SelectionLocked as e:
        return _error(409, e)
    return JSONResponse({"removed": asset_id, "selected_id": booth.catalog.selected_id})


@app.put("/assets/selected")
async def select_asset(request: SelectRequest) -> JSONResponse:
    booth = get_booth()
    if booth is None:
        return _not_ready()
    try:
        asset = booth.select_asset(request.asset_id)
    except AssetNotFound as e:
        return _error(404, e)
    except SelectionLocked as e:
        return _error(409, e)
    return JSONResponse(asset.summary())


@app.get("/settings/folder")
async def default_folder() -> JSONResponse:
    booth = get_booth()
    if booth is None:
        return _not_ready()
    setting = booth.exporter.folder_setting
    return JSONResponse({
        "folder_id": setting.value,
        "source": "operator" if setting.is_operator_set else "config",
    })


@app.put("/settings/folder")
async def set_default_folder(request: FolderRequest) -> JSONResponse:
    """Change the default archive folder; survives restarts."""
    booth = get_booth()
    if booth is None:
        return _not_ready()
    try:
        folder = booth.exporter.folder_setting.set(request.folder)
    except OSError as e:
        logger.error(f"Failed to persist default folder: {e}")
        return JSONResponse(
            {"error": "FolderSettingWriteFailed", "detail": str(e)},
            status_code=500,
        )
    return JSONResponse({"folder_id": folder, "source": "operator"})


@app.post("/notice/ack")
async def acknowledge_notice() -> JSONResponse:
    booth = get_booth()
    if booth is None:
        return _not_ready()
    notice = booth.acknowledge()
    return JSONResponse({"dismissed": notice.code.value if notice else None})


# =============================================================================
# WebSocket Endpoints
# =============================================================================

@app.websocket("/ws/session")
async def session_stream(websocket: WebSocket) -> None:
    """WebSocket endpoint streaming session snapshots on change."""
    await websocket.accept()
    logger.info("Client connected to /ws/session")

    last_payload: Optional[dict] = None
    try:
        while not _shutdown_flag:
            booth = get_booth()
            if booth is not None:
                payload = _session_payload(booth)
                if payload != last_payload:
                    await websocket.send_json(payload)
                    last_payload = payload
            await asyncio.sleep(0.05)

    except Exception as e:
        logger.warning(f"WebSocket error: {e}")
    finally:
        logger.info("Client disconnected from /ws/session")


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "photobooth.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )

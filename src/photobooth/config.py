"""
Photobooth Configuration
========================

This module handles configuration loading for the kiosk photobooth.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    PHOTOBOOTH_CAMERA_BACKEND  -> camera.backend
    PHOTOBOOTH_CAMERA_INDEX    -> camera.device_index
    PHOTOBOOTH_STREAM_URL      -> camera.stream_url
    PHOTOBOOTH_REMOTE_URL      -> remote.url
    PHOTOBOOTH_FOLDER_ID       -> remote.folder_id
    PHOTOBOOTH_REMOTE_SETTINGS -> remote.settings_path
    PHOTOBOOTH_EXPORT_DIR      -> export.output_dir
    PHOTOBOOTH_ASSET_STORE     -> assets.store_path
    PHOTOBOOTH_STORAGE_BUDGET  -> assets.capacity_bytes
    PHOTOBOOTH_PORT            -> server.port
    PHOTOBOOTH_LOG_LEVEL       -> logging.level
    PORT                       -> server.port

Example:
    from photobooth.config import settings

    print(settings.timing.countdown_interval_ms)
    print(settings.composition.slot_y_offsets)
"""

import os
import logging
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class BoothConfig(BaseModel):
    """Booth identification configuration."""

    name: str = Field(default="kiosk-photobooth", description="Booth name")
    version: str = Field(default="v0.1.0", description="Service version")


class CameraConfig(BaseModel):
    """Live frame source configuration."""

    backend: str = Field(
        default="opencv",
        description="Frame source: 'opencv', 'stream' or 'static'",
    )
    device_index: int = Field(default=0, ge=0, description="OpenCV device index")
    width: int = Field(default=1280, gt=0, description="Requested frame width")
    height: int = Field(default=720, gt=0, description="Requested frame height")
    stream_url: str = Field(
        default="ws://localhost:8000/ws/stream",
        description="WebSocket URL for the 'stream' backend",
    )
    reconnect_backoff_ms: int = Field(
        default=500,
        ge=100,
        description="Backoff in milliseconds between reconnect attempts",
    )


class CaptureConfig(BaseModel):
    """Still capture configuration."""

    photo_width: int = Field(default=500, gt=0, description="Canonical photo width")
    photo_height: int = Field(default=350, gt=0, description="Canonical photo height")
    jpeg_quality: int = Field(default=90, ge=1, le=100, description="JPEG quality")
    mirror: bool = Field(default=True, description="Mirror captures (self-view)")


class TimingConfig(BaseModel):
    """Session timing configuration."""

    countdown_steps: int = Field(default=3, ge=1, description="Countdown start value")
    countdown_interval_ms: int = Field(
        default=1000,
        ge=0,
        description="Duration of one countdown step",
    )
    flash_ms: int = Field(default=150, ge=0, description="Flash duration after capture")
    pause_ms: int = Field(
        default=600,
        ge=0,
        description="Pause after each capture (includes the flash)",
    )
    capture_retry_interval_ms: int = Field(
        default=100,
        ge=0,
        description="Wait between capture attempts when the camera is not ready",
    )
    max_capture_attempts: int = Field(
        default=30,
        ge=1,
        description="Capture attempts before the session is abandoned",
    )


class CompositionConfig(BaseModel):
    """Composite canvas geometry."""

    canvas_width: int = Field(default=600, gt=0, description="Canvas width")
    canvas_height: int = Field(default=1400, gt=0, description="Canvas height")
    slot_margin: int = Field(default=50, ge=0, description="Side margin of each slot")
    slot_height: int = Field(default=350, gt=0, description="Slot height")
    slot_y_offsets: List[int] = Field(
        default_factory=lambda: [50, 450, 850],
        description="Top edge of each slot",
    )

    @field_validator("slot_y_offsets")
    @classmethod
    def _three_slots(cls, value: List[int]) -> List[int]:
        if len(value) != 3:
            raise ValueError("exactly three slot offsets are required")
        return value

    @model_validator(mode="after")
    def _slots_inside_canvas(self) -> "CompositionConfig":
        if self.canvas_width - 2 * self.slot_margin <= 0:
            raise ValueError("slot margin leaves no room for photos")
        for y in self.slot_y_offsets:
            if y < 0 or y + self.slot_height > self.canvas_height:
                raise ValueError(f"slot at y={y} does not fit the canvas")
        return self


class AssetsConfig(BaseModel):
    """Overlay asset store configuration."""

    store_path: str = Field(
        default="./data/overlays.json",
        description="Path of the durable user overlay catalog",
    )
    capacity_bytes: int = Field(
        default=5 * 1024 * 1024,
        gt=0,
        description="Storage budget of the overlay catalog",
    )
    webp_quality: int = Field(default=80, ge=1, le=100, description="WebP quality")


class ExportConfig(BaseModel):
    """Local export configuration."""

    output_dir: str = Field(default="./exports", description="Export directory")
    filename_prefix: str = Field(default="photobooth", description="Filename prefix")


class RemoteConfig(BaseModel):
    """Remote archive sink configuration."""

    url: str = Field(default="", description="Archive endpoint (empty = disabled)")
    folder_id: str = Field(default="", description="Default destination folder hint")
    settings_path: str = Field(
        default="./data/remote.json",
        description="Where the operator-set default folder is persisted",
    )
    timeout_seconds: float = Field(default=30.0, gt=0, description="Upload timeout")


class NoticeConfig(BaseModel):
    """User-visible notice configuration."""

    auto_dismiss_ms: int = Field(
        default=3000,
        ge=0,
        description="Display time of non-blocking notices before auto reset",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8080, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the photobooth.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    booth: BoothConfig = Field(default_factory=BoothConfig)
    camera: CameraConfig = Field(default_factory=CameraConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    composition: CompositionConfig = Field(default_factory=CompositionConfig)
    assets: AssetsConfig = Field(default_factory=AssetsConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    notice: NoticeConfig = Field(default_factory=NoticeConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/etc/photobooth/config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Camera settings
    if env_backend := os.environ.get("PHOTOBOOTH_CAMERA_BACKEND"):
        config_data.setdefault("camera", {})["backend"] = env_backend
    if env_index := os.environ.get("PHOTOBOOTH_CAMERA_INDEX"):
        config_data.setdefault("camera", {})["device_index"] = int(env_index)
    if env_stream := os.environ.get("PHOTOBOOTH_STREAM_URL"):
        config_data.setdefault("camera", {})["stream_url"] = env_stream

    # Remote archive
    if env_remote := os.environ.get("PHOTOBOOTH_REMOTE_URL"):
        config_data.setdefault("remote", {})["url"] = env_remote
    if env_folder := os.environ.get("PHOTOBOOTH_FOLDER_ID"):
        config_data.setdefault("remote", {})["folder_id"] = env_folder
    if env_remote_settings := os.environ.get("PHOTOBOOTH_REMOTE_SETTINGS"):
        config_data.setdefault("remote", {})["settings_path"] = env_remote_settings

    # Local storage
    if env_export := os.environ.get("PHOTOBOOTH_EXPORT_DIR"):
        config_data.setdefault("export", {})["output_dir"] = env_export
    if env_store := os.environ.get("PHOTOBOOTH_ASSET_STORE"):
        config_data.setdefault("assets", {})["store_path"] = env_store
    if env_budget := os.environ.get("PHOTOBOOTH_STORAGE_BUDGET"):
        config_data.setdefault("assets", {})["capacity_bytes"] = int(env_budget)

    # Server settings
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("PHOTOBOOTH_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("PHOTOBOOTH_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)

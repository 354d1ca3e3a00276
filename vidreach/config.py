"""
Environment configuration for vidreach.

All values come from environment variables (optionally loaded from a .env
file) with production defaults for the standard composition layout:
1920x1080 canvas, 50px overlay margin, 4x working resolution, 30fps.
"""
import os
import tempfile
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def read_env(env_path: Optional[Path] = None):
    """Load .env from the working directory (or an explicit path) if present."""
    env_path = env_path or Path(".env")
    if env_path.exists():
        load_dotenv(env_path)


def _env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


class Settings:
    """Deployment settings for the composition pipeline."""

    def __init__(
        self,
        canvas_width: int = 1920,
        canvas_height: int = 1080,
        overlay_margin: int = 50,
        working_multiplier: int = 4,
        output_fps: int = 30,
        default_size: int = 300,
        default_duration: float = 30.0,
        ffmpeg_timeout: float = 600.0,
        download_timeout: float = 60.0,
        temp_dir: Optional[str] = None,
        remote_temp_dir: str = "/tmp",
        composition_mode: str = "local",
        remote_compose_url: Optional[str] = None,
        remote_timeout: float = 900.0,
        gcs_bucket_name: Optional[str] = None,
        public_output_dir: str = "out",
        public_output_base_url: str = "http://localhost:5000/outputs",
        temp_max_age: int = 3600,
    ):
        if overlay_margin < 0:
            raise ValueError("overlay_margin must not be negative")
        if working_multiplier < 1:
            raise ValueError("working_multiplier must be at least 1")
        self.canvas_width = canvas_width
        self.canvas_height = canvas_height
        self.overlay_margin = overlay_margin
        self.working_multiplier = working_multiplier
        self.output_fps = output_fps
        self.default_size = default_size
        self.default_duration = default_duration
        self.ffmpeg_timeout = ffmpeg_timeout
        self.download_timeout = download_timeout
        self.temp_dir = temp_dir or tempfile.gettempdir()
        self.remote_temp_dir = remote_temp_dir
        self.composition_mode = (composition_mode or "local").lower()
        self.remote_compose_url = remote_compose_url
        self.remote_timeout = remote_timeout
        self.gcs_bucket_name = gcs_bucket_name
        self.public_output_dir = public_output_dir
        self.public_output_base_url = public_output_base_url.rstrip("/")
        self.temp_max_age = temp_max_age

    @property
    def is_remote(self) -> bool:
        return self.composition_mode == "remote"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            canvas_width=_env_int("CANVAS_WIDTH", 1920),
            canvas_height=_env_int("CANVAS_HEIGHT", 1080),
            overlay_margin=_env_int("OVERLAY_MARGIN_PX", 50),
            working_multiplier=_env_int("WORKING_MULTIPLIER", 4),
            output_fps=_env_int("OUTPUT_FPS", 30),
            default_size=_env_int("DEFAULT_OVERLAY_SIZE", 300),
            default_duration=_env_float("DEFAULT_DURATION_SECONDS", 30.0),
            ffmpeg_timeout=_env_float("FFMPEG_TIMEOUT_SECONDS", 600.0),
            download_timeout=_env_float("DOWNLOAD_TIMEOUT_SECONDS", 60.0),
            temp_dir=os.getenv("TEMP_DIR"),
            remote_temp_dir=os.getenv("REMOTE_TEMP_DIR", "/tmp"),
            composition_mode=os.getenv("COMPOSITION_MODE", "local"),
            remote_compose_url=os.getenv("REMOTE_COMPOSE_URL"),
            remote_timeout=_env_float("REMOTE_TIMEOUT_SECONDS", 900.0),
            gcs_bucket_name=os.getenv("GCS_BUCKET_NAME"),
            public_output_dir=os.getenv("PUBLIC_OUTPUT_DIR", "out"),
            public_output_base_url=os.getenv("PUBLIC_OUTPUT_BASE_URL", "http://localhost:5000/outputs"),
            temp_max_age=_env_int("TEMP_MAX_AGE_SECONDS", 3600),
        )

    def __repr__(self):
        return (f"Settings(mode={self.composition_mode}, canvas={self.canvas_width}x{self.canvas_height}, "
                f"margin={self.overlay_margin}, multiplier={self.working_multiplier}, "
                f"bucket={self.gcs_bucket_name})")


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        read_env()
        _settings = Settings.from_env()
    return _settings


def reset_settings():
    """Drop the cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None

import os
import sys
import socket
from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# ==============================================================================
# CONSTANTS & PATHS
# ==============================================================================

IS_WIN = sys.platform == "win32"
HOME_DIR = os.path.expanduser("~")
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Security Constants
MAX_REQUEST_SIZE = 1024 * 1024  # 1 MB limit for API request bodies

# Supported video containers (lower-case, no dot)
VIDEO_EXTENSIONS = ("mp4", "mkv", "webm", "avi", "mov")

STATE_FILENAME = "localtube-db.json"


def find_free_port(start_port: int) -> int:
    """Finds the next available port starting from start_port."""
    port = start_port
    while port < 65535:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            if sock.connect_ex(("127.0.0.1", port)) != 0:
                return port
            port += 1
    return start_port


def builtin_scan_dirs() -> List[str]:
    """Folders that are always searched: downloads, the app's own media folder and the CWD."""
    return [
        os.path.join(HOME_DIR, "Downloads"),
        os.path.join(HOME_DIR, "Desktop", "LocalTube", "videos"),
        os.getcwd(),
    ]


# ==============================================================================
# SETTINGS MODEL
# ==============================================================================

class AppSettings(BaseSettings):
    """
    Pydantic model for server settings.
    Loads from env vars (LOCALTUBE_*) or defaults.
    """
    model_config = SettingsConfigDict(env_prefix="LOCALTUBE_", extra="ignore")

    host: str = Field("127.0.0.1")
    port: int = Field(3000)

    probe_workers: int = Field(4, ge=1)
    probe_timeout_sec: float = Field(10.0)
    thumbnail_offset_sec: float = Field(1.0, ge=0)

    ffmpeg_bin: str = Field("ffmpeg")
    ffprobe_bin: str = Field("ffprobe")

    # When set, replaces the built-in default folders
    default_scan_dirs: Optional[List[str]] = Field(None)

    data_dir: Optional[str] = Field(None)


# ==============================================================================
# CONFIG MANAGER
# ==============================================================================

class ConfigManager:
    def __init__(self, settings: Optional[AppSettings] = None):
        self.settings = settings or AppSettings()
        self._ensure_directories()

    def _ensure_directories(self):
        for d in [self.hidden_data_dir, self.thumb_dir]:
            if not os.path.exists(d):
                os.makedirs(d)

    @property
    def hidden_data_dir(self) -> str:
        # Docker-style volume mounts point LOCALTUBE_DATA_DIR elsewhere
        if self.settings.data_dir:
            return os.path.abspath(os.path.expanduser(self.settings.data_dir))
        return os.path.join(PROJECT_ROOT, "localtube_data")

    @property
    def thumb_dir(self) -> str:
        return os.path.join(self.hidden_data_dir, "thumbnails")

    @property
    def state_file(self) -> str:
        return os.path.join(self.hidden_data_dir, STATE_FILENAME)

    @property
    def default_scan_dirs(self) -> List[str]:
        if self.settings.default_scan_dirs is not None:
            return list(self.settings.default_scan_dirs)
        return builtin_scan_dirs()

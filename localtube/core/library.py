import functools
import os
from typing import Any, Dict, List, Optional

from ..config import ConfigManager
from ..database.json_store import StateStore
from ..models.video_entry import VideoEntry
from ..scanner.file_system import LibraryFileSystem
from ..scanner.manager import ScannerManager
from ..scanner.media_probe import MediaProbe
from .catalog import Catalog, CatalogStore
from .errors import VideoNotFoundError
from .thumbnails import ThumbnailService, extract_frame


class MediaLibrary:
    """
    Service object behind the HTTP API.
    Owns the catalog snapshot, the user state store, the scanner and the
    thumbnail cache; request handlers only talk to this.
    """

    def __init__(
        self,
        config: ConfigManager,
        state_store: Optional[StateStore] = None,
        probe: Optional[MediaProbe] = None,
        thumbnails: Optional[ThumbnailService] = None,
    ):
        settings = config.settings
        self.config = config
        self.state = state_store or StateStore(config.state_file)
        self.catalog_store = CatalogStore()
        self.probe = probe or MediaProbe(
            max_workers=settings.probe_workers,
            ffprobe_bin=settings.ffprobe_bin,
            timeout=settings.probe_timeout_sec,
        )
        self.scanner = ScannerManager(self.catalog_store, self.probe, LibraryFileSystem())
        self.thumbnails = thumbnails or ThumbnailService(
            config.thumb_dir,
            offset_sec=settings.thumbnail_offset_sec,
            extractor=functools.partial(extract_frame, ffmpeg_bin=settings.ffmpeg_bin),
        )

    # --- Scanning ---

    def scan_roots(self) -> List[str]:
        """Default folders followed by the user's custom folders."""
        return self.config.default_scan_dirs + self.state.custom_folders()

    def refresh(self) -> Catalog:
        return self.scanner.scan(self.scan_roots())

    def catalog(self) -> Catalog:
        return self.catalog_store.current()

    # --- Queries ---

    def list_videos(self) -> List[Dict[str, Any]]:
        """Current catalog joined with resume positions and likes."""
        if not self.catalog_store.has_scanned:
            self.refresh()
        catalog = self.catalog()
        state = self.state.snapshot()
        liked = set(state.liked_videos)
        return [
            entry.to_api(resume_time=state.history.get(entry.id, 0), is_liked=entry.id in liked)
            for entry in catalog
        ]

    def get_video(self, video_id: str) -> VideoEntry:
        entry = self.catalog().get(video_id)
        if entry is None:
            raise VideoNotFoundError(video_id)
        return entry

    def get_thumbnail(self, video_id: str) -> bytes:
        entry = self.get_video(video_id)
        return self.thumbnails.get(entry.id, entry.path)

    # --- User state ---

    def toggle_like(self, video_id: str) -> bool:
        self.get_video(video_id)
        return self.state.toggle_like(video_id)

    def record_history(self, video_id: str, seconds: float) -> None:
        self.state.record_history(video_id, seconds)

    def delete_video(self, video_id: str) -> VideoEntry:
        """Removes the file, its cached thumbnail and its user state."""
        entry = self.get_video(video_id)
        if os.path.exists(entry.path):
            os.remove(entry.path)
        self.thumbnails.remove(entry.id)
        self.state.forget_video(entry.id)
        self.catalog_store.update(lambda catalog: catalog.without(entry.id))
        print(f"🗑 Deleted video: {entry.path}")
        return entry

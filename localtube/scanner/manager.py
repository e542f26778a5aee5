import asyncio
import math
import os
import stat
import threading
import time
from concurrent.futures import Future
from datetime import datetime
from typing import Iterable, List, Optional

from ..core.catalog import Catalog, CatalogStore
from ..core.formatting import clean_title, format_duration, format_file_size
from ..core.identity import video_id
from ..models.video_entry import VideoEntry
from .file_system import LibraryFileSystem
from .media_probe import MediaProbe


def build_entry(path: str, file_stat: os.stat_result, duration: Optional[float]) -> VideoEntry:
    """Assembles a catalog entry from a canonical path, its stat and the probed duration."""
    filename = os.path.basename(path)
    created_at = getattr(file_stat, "st_birthtime", None) or file_stat.st_ctime
    duration_sec = int(round(duration)) if duration and math.isfinite(duration) and duration > 0 else 0

    return VideoEntry(
        id=video_id(path),
        path=path,
        title=clean_title(filename),
        filename=filename,
        extension=os.path.splitext(filename)[1].lstrip(".").lower(),
        size=file_stat.st_size,
        sizeHuman=format_file_size(file_stat.st_size),
        createdAt=created_at,
        uploadDate=datetime.fromtimestamp(created_at).strftime("%Y-%m-%d"),
        durationSeconds=duration_sec,
        duration=format_duration(duration_sec),
    )


class ScannerManager:
    """
    Orchestrates a library scan:
    1. File Discovery (LibraryFileSystem)
    2. Stat + Duration Probe (MediaProbe), concurrently with a bounded lane
    3. Publication of the new Catalog (CatalogStore)

    Only one scan runs at a time; concurrent callers of scan() share the
    result of the scan already in flight.
    """

    def __init__(
        self,
        catalog_store: CatalogStore,
        probe: MediaProbe,
        file_system: Optional[LibraryFileSystem] = None,
    ):
        self.catalog_store = catalog_store
        self.probe = probe
        self.fs = file_system or LibraryFileSystem()
        self._lock = threading.Lock()
        self._inflight: Optional[Future] = None

    @property
    def is_scanning(self) -> bool:
        return self._inflight is not None

    def scan(self, roots: Iterable[str]) -> Catalog:
        """Runs (or joins) a scan and returns the resulting Catalog."""
        with self._lock:
            inflight = self._inflight
            owner = inflight is None
            if owner:
                inflight = self._inflight = Future()

        if not owner:
            print("⏳ Scan already in progress, waiting for its result...")
            return inflight.result()

        try:
            catalog = asyncio.run(self.run_scan(list(roots)))
        except Exception as e:
            inflight.set_exception(e)
            raise
        else:
            inflight.set_result(catalog)
            return catalog
        finally:
            with self._lock:
                self._inflight = None

    async def run_scan(self, roots: List[str]) -> Catalog:
        """
        Full scan pipeline. Publishes and returns the new Catalog.
        Bad files and unreadable folders are skipped, never fatal.
        """
        start_time = time.time()
        print(f"🚀 Starting scan on {len(roots)} folders")

        paths = await asyncio.to_thread(self.fs.list_videos, roots)

        # Heavy lane: one ffprobe process per file
        sem = asyncio.Semaphore(self.probe.max_workers)
        results = await asyncio.gather(*(self._process_path(p, sem) for p in paths))

        # Files deleted while the scan ran must not reappear
        catalog = self.catalog_store.update(
            lambda _: Catalog(e for e in results if e is not None and os.path.exists(e.path))
        )

        duration = time.time() - start_time
        if len(catalog) == 0:
            print("ℹ️ No videos found. The library is empty.")
        print(f"✅ Scan completed in {duration:.2f}s. Found {len(catalog)} videos.")
        return catalog

    async def _process_path(self, path: str, sem: asyncio.Semaphore) -> Optional[VideoEntry]:
        async with sem:
            try:
                file_stat = await asyncio.to_thread(os.stat, path)
            except OSError as e:
                print(f"⚠️ Skipping {path}: {e}")
                return None

            if not stat.S_ISREG(file_stat.st_mode):
                return None

            duration = await self.probe.get_duration(path)
            if duration is None and not os.path.exists(path):
                print(f"⚠️ Skipping {path}: removed during scan")
                return None

        try:
            return build_entry(path, file_stat, duration)
        except (ValueError, OSError, OverflowError) as e:
            print(f"❌ Could not build entry for {path}: {e}")
            return None

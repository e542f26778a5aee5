import threading
import time
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from ..models.video_entry import VideoEntry


class Catalog:
    """
    Immutable snapshot of one scan.
    Built once, read by any number of request threads, then replaced wholesale.
    """

    def __init__(self, entries: Iterable[VideoEntry] = ()):
        self._entries = tuple(entries)
        self._by_id: Dict[str, VideoEntry] = {e.id: e for e in self._entries}

    def get(self, video_id: str) -> Optional[VideoEntry]:
        return self._by_id.get(video_id)

    def ids(self) -> List[str]:
        return [e.id for e in self._entries]

    def without(self, video_id: str) -> "Catalog":
        """New snapshot lacking one entry (used after a video is deleted)."""
        return Catalog(e for e in self._entries if e.id != video_id)

    def __contains__(self, video_id: object) -> bool:
        return video_id in self._by_id

    def __iter__(self) -> Iterator[VideoEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class CatalogStore:
    """Holds the current Catalog behind a swap-on-write reference."""

    def __init__(self):
        self._lock = threading.Lock()
        self._catalog = Catalog()
        self._scanned_at: Optional[float] = None

    def current(self) -> Catalog:
        with self._lock:
            return self._catalog

    def replace(self, catalog: Catalog) -> None:
        with self._lock:
            self._catalog = catalog
            self._scanned_at = time.time()

    def update(self, fn: Callable[[Catalog], Catalog]) -> Catalog:
        """Applies fn to the current Catalog and publishes the result atomically."""
        with self._lock:
            self._catalog = fn(self._catalog)
            self._scanned_at = time.time()
            return self._catalog

    @property
    def has_scanned(self) -> bool:
        return self._scanned_at is not None

    @property
    def scanned_at(self) -> Optional[float]:
        return self._scanned_at

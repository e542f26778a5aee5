import os
from typing import Iterable, List, Set

from ..config import VIDEO_EXTENSIONS


class LibraryFileSystem:
    """
    Finds candidate video files in the scan roots.

    Only the immediate children of each root are listed; subfolders are not
    descended into.
    """

    def __init__(self, extensions: Iterable[str] = VIDEO_EXTENSIONS):
        self.extensions = tuple("." + ext.lower().lstrip(".") for ext in extensions)

    def resolve_roots(self, roots: Iterable[str]) -> List[str]:
        """Absolute, symlink-resolved, de-duplicated roots in first-seen order."""
        resolved = []
        seen: Set[str] = set()
        for root in roots:
            if not root:
                continue
            abs_root = os.path.realpath(os.path.abspath(os.path.expanduser(root)))
            if abs_root not in seen:
                seen.add(abs_root)
                resolved.append(abs_root)
        return resolved

    def list_videos(self, roots: Iterable[str]) -> List[str]:
        """
        Returns canonical paths of the video files found in roots.
        A file reachable through several roots (or via a symlink) is listed once.
        """
        found: List[str] = []
        seen: Set[str] = set()

        for root in self.resolve_roots(roots):
            if not os.path.isdir(root):
                continue

            try:
                names = sorted(os.listdir(root))
            except OSError as e:
                print(f"⚠️ Skipping unreadable folder {root}: {e}")
                continue

            print(f"🔍 Scanning directory: {root}")
            for name in names:
                if not self._is_video(name):
                    continue
                full_path = os.path.realpath(os.path.join(root, name))
                if full_path in seen:
                    continue
                seen.add(full_path)
                found.append(full_path)

        return found

    def _is_video(self, filename: str) -> bool:
        return filename.lower().endswith(self.extensions)

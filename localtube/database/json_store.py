import json
import os
import shutil
import tempfile
import threading
from typing import List

from pydantic import ValidationError

from ..core.errors import FolderError
from ..models.library_state import LibraryState


class StateStore:
    """
    Handles persistence of user state (history, likes, folders, playlists)
    to a single JSON document. Every mutation is written through to disk.
    """

    def __init__(self, state_file: str):
        self.state_file = state_file
        self._lock = threading.RLock()
        self._state = LibraryState()
        self.load()

    def load(self) -> None:
        """Loads the document, creating it with defaults when absent."""
        with self._lock:
            if not os.path.exists(self.state_file):
                self._state = LibraryState()
                self.save()
                return

            try:
                with open(self.state_file, "r", encoding="utf-8") as f:
                    raw_data = json.load(f)
                self._state = LibraryState.model_validate(raw_data if isinstance(raw_data, dict) else {})
            except (OSError, ValueError, ValidationError) as e:
                print(f"❌ Error loading state from {self.state_file}: {e}")
                self._state = LibraryState()

    def save(self) -> None:
        """
        Persists current state using the atomic write pattern:
        write to a temp file in the same directory, then rename over the target.
        """
        with self._lock:
            dump_data = self._state.model_dump(by_alias=True)
            state_dir = os.path.dirname(os.path.abspath(self.state_file))
            os.makedirs(state_dir, exist_ok=True)

            temp_fd, temp_path = tempfile.mkstemp(dir=state_dir, prefix=".state_tmp_", suffix=".json")
            try:
                with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                    json.dump(dump_data, f, indent=2, ensure_ascii=False)
                shutil.move(temp_path, self.state_file)
            except OSError as e:
                print(f"❌ Error saving state: {e}")
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise

    def snapshot(self) -> LibraryState:
        with self._lock:
            return self._state.model_copy(deep=True)

    def custom_folders(self) -> List[str]:
        with self._lock:
            return list(self._state.custom_folders)

    def record_history(self, video_id: str, seconds: float) -> None:
        with self._lock:
            self._state.history[video_id] = seconds
            self.save()

    def toggle_like(self, video_id: str) -> bool:
        """Flips the like flag and returns the new value."""
        with self._lock:
            liked = self._state.liked_videos
            if video_id in liked:
                liked.remove(video_id)
                is_liked = False
            else:
                liked.append(video_id)
                is_liked = True
            self.save()
            return is_liked

    def add_folder(self, folder: str) -> str:
        if not folder or not isinstance(folder, str):
            raise FolderError("Invalid folder.")
        abs_folder = os.path.abspath(os.path.expanduser(folder))
        with self._lock:
            if abs_folder in self._state.custom_folders:
                raise FolderError("Folder is already in the library.")
            if not os.path.isdir(abs_folder):
                raise FolderError("Folder does not exist.")
            self._state.custom_folders.append(abs_folder)
            self.save()
        return abs_folder

    def remove_folder(self, folder: str) -> None:
        if not folder or not isinstance(folder, str):
            raise FolderError("Invalid folder.")
        with self._lock:
            folders = self._state.custom_folders
            if folder in folders:
                folders.remove(folder)
            else:
                abs_folder = os.path.abspath(os.path.expanduser(folder))
                if abs_folder not in folders:
                    raise FolderError("Folder is not in the library.")
                folders.remove(abs_folder)
            self.save()

    def forget_video(self, video_id: str) -> None:
        """Drops every trace of a video id: history, like, playlist membership."""
        with self._lock:
            self._state.history.pop(video_id, None)
            self._state.liked_videos = [v for v in self._state.liked_videos if v != video_id]
            for name, ids in self._state.playlists.items():
                self._state.playlists[name] = [v for v in ids if v != video_id]
            self.save()

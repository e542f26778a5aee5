from .video_entry import VideoEntry
from .library_state import LibraryState

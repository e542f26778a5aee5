class LibraryError(Exception):
    """Base class for recoverable library errors."""
    pass


class VideoNotFoundError(LibraryError):
    """Raised when an id is not present in the current catalog."""
    pass


class FolderError(LibraryError):
    """Raised when a custom folder cannot be added or removed."""
    pass


class ThumbnailError(LibraryError):
    """Raised when a still frame cannot be extracted from a video."""
    pass

# LocalTube Core Package

from .identity import video_id
from .formatting import format_duration, format_file_size, clean_title
from .catalog import Catalog, CatalogStore
from .errors import LibraryError, VideoNotFoundError, FolderError, ThumbnailError

from .file_system import LibraryFileSystem
from .media_probe import MediaProbe
from .manager import ScannerManager

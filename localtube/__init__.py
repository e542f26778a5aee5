# LocalTube - local media library server

__version__ = "1.0.0"

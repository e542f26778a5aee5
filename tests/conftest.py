import threading

import pytest
from helpers import jpeg_bytes

from localtube.config import AppSettings, ConfigManager
from localtube.core.library import MediaLibrary
from localtube.core.thumbnails import ThumbnailService
from localtube.database.json_store import StateStore
from localtube.scanner.media_probe import MediaProbe
from localtube.server.web_server import LibraryHTTPServer


@pytest.fixture
def media_dir(tmp_path):
    d = tmp_path / "media"
    d.mkdir()
    return d


@pytest.fixture
def config(tmp_path, media_dir):
    settings = AppSettings(
        data_dir=str(tmp_path / "data"),
        default_scan_dirs=[str(media_dir)],
        probe_workers=2,
    )
    return ConfigManager(settings)


@pytest.fixture
def probe():
    p = MediaProbe(max_workers=2, probe_fn=lambda path: 65.4)
    yield p
    p.shutdown()


@pytest.fixture
def extractor():
    class FakeExtractor:
        def __init__(self):
            self.calls = []
            self.fail = False

        def __call__(self, path, seek_time):
            self.calls.append((path, seek_time))
            if self.fail:
                from localtube.core.errors import ThumbnailError
                raise ThumbnailError("no video stream")
            return jpeg_bytes()

    return FakeExtractor()


@pytest.fixture
def library(config, probe, extractor):
    return MediaLibrary(
        config,
        state_store=StateStore(config.state_file),
        probe=probe,
        thumbnails=ThumbnailService(config.thumb_dir, offset_sec=1.0, extractor=extractor),
    )


@pytest.fixture
def live_server(library):
    server = LibraryHTTPServer(("127.0.0.1", 0), library)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()

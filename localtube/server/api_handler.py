import http.server
import json
import math
from urllib.parse import unquote, urlparse

from localtube.config import MAX_REQUEST_SIZE
from localtube.core.errors import FolderError, ThumbnailError, VideoNotFoundError
from localtube.server.streaming_util import CLIENT_GONE, serve_file_range


# Routes that parse a JSON body; every other POST/DELETE discards its body
JSON_BODY_ROUTES = {
    ("POST", "/api/history"),
    ("POST", "/api/folders"),
    ("DELETE", "/api/folders"),
}


class BadRequest(Exception):
    def __init__(self, status, message):
        super().__init__(message)
        self.status = status
        self.message = message


class LibraryHandler(http.server.BaseHTTPRequestHandler):
    """
    Routes the /api surface onto the MediaLibrary attached to the server.
    Each request runs on its own thread (ThreadingHTTPServer).
    """
    protocol_version = "HTTP/1.1"

    @property
    def library(self):
        return self.server.library

    def _route(self):
        return unquote(urlparse(self.path).path).rstrip("/") or "/"

    def _video_id(self, route, prefix):
        video_id = route[len(prefix):]
        return video_id if video_id and "/" not in video_id else None

    def do_GET(self):
        route = self._route()
        try:
            if route == "/api/videos":
                self._send_json(self.library.list_videos())

            elif route.startswith("/api/stream/"):
                self._stream(route, method="GET")

            elif route.startswith("/api/thumbnail/"):
                video_id = self._video_id(route, "/api/thumbnail/")
                try:
                    data = self.library.get_thumbnail(video_id)
                except VideoNotFoundError:
                    self._send_text(404, "Video not found")
                    return
                except ThumbnailError as e:
                    print(f"⚠️ Thumbnail unavailable for {video_id}: {e}")
                    self._send_text(404, "Failed to generate thumbnail for this video type.")
                    return
                self.send_response(200)
                self.send_header("Content-Type", "image/jpeg")
                self.send_header("Content-Length", str(len(data)))
                self.end_headers()
                self.wfile.write(data)

            elif route == "/api/db":
                self._send_json(self.library.state.snapshot().model_dump(by_alias=True))

            elif route == "/api/folders":
                self._send_json({
                    "customFolders": self.library.state.custom_folders(),
                    "defaultFolders": self.library.config.default_scan_dirs,
                })

            else:
                self._send_text(404, "Not found")
        except CLIENT_GONE:
            self.close_connection = True
        except Exception as e:
            print(f"❌ Error handling GET {self.path}: {e}")
            self._send_server_error()

    def do_HEAD(self):
        route = self._route()
        try:
            if route.startswith("/api/stream/"):
                self._stream(route, method="HEAD")
            else:
                self.send_error(405)
        except CLIENT_GONE:
            self.close_connection = True
        except Exception as e:
            print(f"❌ Error handling HEAD {self.path}: {e}")
            self._send_server_error()

    def do_POST(self):
        route = self._route()
        if (self.command, route) not in JSON_BODY_ROUTES:
            self._drain_body()
        try:
            if route == "/api/refresh":
                print("🔄 Scan requested via API...")
                catalog = self.library.refresh()
                self._send_json({"success": True, "count": len(catalog)})

            elif route == "/api/history":
                body = self._read_json()
                video_id = body.get("videoId")
                timestamp = body.get("timestamp")
                if not isinstance(video_id, str) or not isinstance(timestamp, (int, float)) or isinstance(timestamp, bool):
                    raise BadRequest(400, "videoId and timestamp are required")
                if not math.isfinite(timestamp) or timestamp < 0:
                    raise BadRequest(400, "timestamp must be a finite, non-negative number")
                self.library.record_history(video_id, timestamp)
                self._send_json({"success": True})

            elif route.startswith("/api/like/"):
                video_id = self._video_id(route, "/api/like/")
                try:
                    liked = self.library.toggle_like(video_id)
                except VideoNotFoundError:
                    self._send_text(404, "Video not found")
                    return
                self._send_json({"success": True, "liked": liked})

            elif route == "/api/folders":
                body = self._read_json()
                try:
                    folder = self.library.state.add_folder(body.get("folder"))
                except FolderError as e:
                    self._send_json({"error": str(e)}, status=400)
                    return
                print(f"📁 Added folder: {folder}")
                self._send_json({"success": True})

            else:
                self._send_text(404, "Not found")
        except BadRequest as e:
            print(f"🚨 Rejected {self.command} {self.path}: {e.message}")
            self._send_json({"error": e.message}, status=e.status)
            self.close_connection = True
        except Exception as e:
            print(f"❌ Error handling POST {self.path}: {e}")
            self._send_server_error()

    def do_DELETE(self):
        route = self._route()
        if (self.command, route) not in JSON_BODY_ROUTES:
            self._drain_body()
        try:
            if route == "/api/folders":
                body = self._read_json()
                try:
                    self.library.state.remove_folder(body.get("folder"))
                except FolderError as e:
                    self._send_json({"error": str(e)}, status=400)
                    return
                self._send_json({"success": True})

            elif route.startswith("/api/video/"):
                video_id = self._video_id(route, "/api/video/")
                try:
                    self.library.delete_video(video_id)
                except VideoNotFoundError:
                    self._send_text(404, "Video not found")
                    return
                self._send_json({"message": "Video deleted successfully"})

            else:
                self._send_text(404, "Not found")
        except BadRequest as e:
            print(f"🚨 Rejected {self.command} {self.path}: {e.message}")
            self._send_json({"error": e.message}, status=e.status)
            self.close_connection = True
        except Exception as e:
            print(f"❌ Error handling DELETE {self.path}: {e}")
            self._send_server_error()

    def log_message(self, format, *args):
        return

    # --- Helpers ---

    def _stream(self, route, method):
        video_id = self._video_id(route, "/api/stream/")
        entry = self.library.catalog().get(video_id) if video_id else None
        if entry is None:
            self._send_text(404, "Video not found", with_body=(method == "GET"))
            return
        serve_file_range(self, entry.path, method=method)

    def _drain_body(self):
        """Consumes an unused request body so the next keep-alive request parses cleanly."""
        if self.headers.get("Transfer-Encoding"):
            self.close_connection = True
            return
        try:
            content_length = int(self.headers.get("Content-Length", 0))
        except ValueError:
            self.close_connection = True
            return
        if content_length > MAX_REQUEST_SIZE:
            self.close_connection = True
        elif content_length > 0:
            self.rfile.read(content_length)

    def _read_json(self):
        # DoS Protection: Limit request size
        try:
            content_length = int(self.headers.get("Content-Length", 0))
        except ValueError:
            raise BadRequest(400, "Invalid Content-Length")
        if content_length > MAX_REQUEST_SIZE:
            raise BadRequest(413, "Request Entity Too Large")
        if content_length <= 0:
            raise BadRequest(400, "Empty request body")

        raw = self.rfile.read(content_length)
        try:
            body = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            raise BadRequest(400, "Invalid JSON")
        if not isinstance(body, dict):
            raise BadRequest(400, "Expected a JSON object")
        return body

    def _send_json(self, payload, status=200):
        data = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _send_text(self, status, message, with_body=True):
        data = message.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        if with_body:
            self.wfile.write(data)

    def _send_server_error(self):
        try:
            self.send_error(500)
        except CLIENT_GONE:
            pass
        self.close_connection = True

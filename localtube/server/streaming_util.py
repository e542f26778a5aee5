import os
import re
from typing import Optional, Tuple

CHUNK_SIZE = 65536

CONTENT_TYPES = {
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mkv": "video/x-matroska",
    "avi": "video/x-msvideo",
    "mov": "video/quicktime",
}
DEFAULT_CONTENT_TYPE = "video/mp4"

# Single range only: "bytes=<start>-" or "bytes=<start>-<end>"
_RANGE_RE = re.compile(r"^bytes=(\d+)-(\d*)$")

CLIENT_GONE = (ConnectionResetError, BrokenPipeError, ConnectionAbortedError)


def content_type_for(file_path: str) -> str:
    ext = os.path.splitext(file_path)[1].lstrip(".").lower()
    return CONTENT_TYPES.get(ext, DEFAULT_CONTENT_TYPE)


def parse_range(range_header: Optional[str], file_size: int) -> Optional[Tuple[int, int]]:
    """
    Parses a single-range header into an inclusive (start, end) pair.

    Returns None for a missing or malformed header, which means "serve the
    whole file". The end is clamped to the last byte; start is returned as-is
    so the caller can answer 416 when it lies beyond the file.
    """
    if not range_header:
        return None
    match = _RANGE_RE.match(range_header.strip())
    if not match:
        return None

    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else file_size - 1
    end = min(end, file_size - 1)
    if start < file_size and end < start:
        return None
    return start, end


def serve_file_range(handler, file_path, method="GET"):
    """
    Standard implementation of HTTP Range Requests (Status 206).
    Allows browsers to seek and buffer videos efficiently.
    """
    try:
        file_size = os.stat(file_path).st_size
    except OSError as e:
        print(f"❌ Stream source unavailable {file_path}: {e}")
        handler.send_error(500, "Video file is no longer available")
        return

    mime_type = content_type_for(file_path)
    byte_range = parse_range(handler.headers.get("Range"), file_size)

    if byte_range is None:
        handler.send_response(200)
        handler.send_header("Content-Type", mime_type)
        handler.send_header("Content-Length", str(file_size))
        handler.send_header("Accept-Ranges", "bytes")
        handler.end_headers()
        if method == "GET":
            _copy_span(handler, file_path, 0, file_size)
        return

    start, end = byte_range
    if start >= file_size:
        body = f"Requested range not satisfiable\n{start} >= {file_size}".encode("utf-8")
        handler.send_response(416)
        handler.send_header("Content-Type", "text/plain; charset=utf-8")
        handler.send_header("Content-Range", f"bytes */{file_size}")
        handler.send_header("Content-Length", str(len(body)))
        handler.end_headers()
        if method == "GET":
            handler.wfile.write(body)
        return

    length = end - start + 1
    handler.send_response(206)
    handler.send_header("Content-Type", mime_type)
    handler.send_header("Accept-Ranges", "bytes")
    handler.send_header("Content-Range", f"bytes {start}-{end}/{file_size}")
    handler.send_header("Content-Length", str(length))
    handler.end_headers()
    if method == "GET":
        _copy_span(handler, file_path, start, length)


def _copy_span(handler, file_path, start, length):
    """
    Copies length bytes from start to the client.
    The handle belongs to this request only and is closed on completion or
    as soon as the client goes away.
    """
    try:
        with open(file_path, "rb") as f:
            f.seek(start)
            remaining = length
            while remaining > 0:
                data = f.read(min(remaining, CHUNK_SIZE))
                if not data:
                    break
                handler.wfile.write(data)
                remaining -= len(data)
        if remaining > 0:
            # File shrank after Content-Length went out; the framing is broken
            print(f"⚠️ {file_path} ended {remaining} bytes early")
            handler.close_connection = True
    except CLIENT_GONE:
        handler.close_connection = True
    except OSError as e:
        # Headers are already out; drop the connection instead of sending an error page
        print(f"❌ Read failed while streaming {file_path}: {e}")
        handler.close_connection = True

import io
import os
import subprocess
import tempfile
from typing import Callable, Optional

from PIL import Image, UnidentifiedImageError

from .errors import ThumbnailError

THUMB_WIDTH = 320
THUMB_HEIGHT = 180


def extract_frame(video_path: str, seek_time: float, ffmpeg_bin: str = "ffmpeg", timeout: float = 15) -> bytes:
    """
    Grabs a single JPEG frame at seek_time with FFmpeg, written to stdout.
    Raises ThumbnailError when no frame could be decoded.
    """
    # scale: fit within 320x180 preserving aspect ratio
    # pad: add black bars to reach exactly 320x180
    vf_filter = (
        f"scale={THUMB_WIDTH}:{THUMB_HEIGHT}:force_original_aspect_ratio=decrease,"
        f"pad={THUMB_WIDTH}:{THUMB_HEIGHT}:(ow-iw)/2:(oh-ih)/2:black"
    )
    cmd = [
        ffmpeg_bin, "-ss", str(seek_time), "-i", video_path,
        "-vframes", "1", "-q:v", "4",
        "-vf", vf_filter,
        "-f", "image2", "-c:v", "mjpeg", "pipe:1",
        "-loglevel", "quiet",
    ]
    try:
        result = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.DEVNULL, timeout=timeout)
    except (OSError, subprocess.SubprocessError) as e:
        raise ThumbnailError(f"ffmpeg failed for {video_path}: {e}") from e

    if result.returncode != 0 or not result.stdout:
        raise ThumbnailError(f"No frame at {seek_time}s in {video_path}")
    return result.stdout


class ThumbnailService:
    """
    Resolves still frames for videos, cached as <id>.jpg in thumb_dir.
    The cache is permanent: ids are path-derived, so rescans never invalidate it.
    """

    def __init__(
        self,
        thumb_dir: str,
        offset_sec: float = 1.0,
        extractor: Optional[Callable[[str, float], bytes]] = None,
    ):
        self.thumb_dir = thumb_dir
        self.offset_sec = offset_sec
        self.extractor = extractor or extract_frame
        os.makedirs(self.thumb_dir, exist_ok=True)

    def thumb_path(self, video_id: str) -> str:
        return os.path.join(self.thumb_dir, f"{video_id}.jpg")

    def get(self, video_id: str, video_path: str) -> bytes:
        thumb_path = self.thumb_path(video_id)
        if os.path.exists(thumb_path) and os.path.getsize(thumb_path) > 0:
            with open(thumb_path, "rb") as f:
                return f.read()

        # Attempt 1: fixed offset; Attempt 2: first frame, for clips shorter than the offset
        try:
            data = self._try_extract(video_path, self.offset_sec)
        except ThumbnailError:
            if self.offset_sec == 0:
                raise
            data = self._try_extract(video_path, 0)

        self._write_atomic(thumb_path, data)
        return data

    def remove(self, video_id: str) -> None:
        thumb_path = self.thumb_path(video_id)
        if os.path.exists(thumb_path):
            os.remove(thumb_path)

    def _try_extract(self, video_path: str, seek_time: float) -> bytes:
        data = self.extractor(video_path, seek_time)
        if not data:
            raise ThumbnailError(f"Empty frame at {seek_time}s in {video_path}")
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise ThumbnailError(f"Invalid frame data for {video_path}: {e}") from e
        return data

    def _write_atomic(self, thumb_path: str, data: bytes) -> None:
        temp_fd, temp_path = tempfile.mkstemp(dir=self.thumb_dir, prefix=".thumb_tmp_", suffix=".jpg")
        try:
            with os.fdopen(temp_fd, "wb") as f:
                f.write(data)
            os.replace(temp_path, thumb_path)
        except OSError:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise

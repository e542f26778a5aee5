import io

from PIL import Image


def write_video(directory, name, size=1024):
    """Creates a fake video file with deterministic content."""
    path = directory / name
    path.write_bytes(bytes(i % 251 for i in range(size)))
    return path


def jpeg_bytes(color="red"):
    buf = io.BytesIO()
    Image.new("RGB", (32, 18), color).save(buf, format="JPEG")
    return buf.getvalue()

import hashlib


def video_id(path: str) -> str:
    """
    Stable identifier for a video, derived from its absolute path only.
    Used as URL segment, state-store key and thumbnail filename stem.
    """
    return hashlib.md5(path.encode("utf-8")).hexdigest()

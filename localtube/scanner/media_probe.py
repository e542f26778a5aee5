import asyncio
import json
import math
import subprocess
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional


def run_ffprobe_duration(filepath: str, ffprobe_bin: str = "ffprobe", timeout: float = 10) -> Optional[float]:
    """
    Sync function to read a container's duration with FFprobe.
    Returns None when the tool is missing, times out or reports no duration.
    """
    cmd = [
        ffprobe_bin,
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "json",
        filepath,
    ]
    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, check=True, timeout=timeout
        )
        data = json.loads(result.stdout)
        duration = float(data.get("format", {}).get("duration", 0))
    except (OSError, subprocess.SubprocessError, ValueError, TypeError) as e:
        print(f"⚠️ Probe failed for {filepath}: {e}")
        return None
    return duration if math.isfinite(duration) and duration > 0 else None


class MediaProbe:
    """
    Asynchronous wrapper around the duration probe.
    Each probe is one external process; the pool bounds how many run at once.
    """

    def __init__(
        self,
        max_workers: int = 4,
        ffprobe_bin: str = "ffprobe",
        timeout: float = 10,
        probe_fn: Optional[Callable[[str], Optional[float]]] = None,
    ):
        self.max_workers = max_workers
        self.ffprobe_bin = ffprobe_bin
        self.timeout = timeout
        self._probe_fn = probe_fn
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="probe")

    def probe_duration(self, filepath: str) -> Optional[float]:
        if self._probe_fn is not None:
            return self._probe_fn(filepath)
        return run_ffprobe_duration(filepath, self.ffprobe_bin, self.timeout)

    async def get_duration(self, filepath: str) -> Optional[float]:
        """Duration in seconds, or None if it cannot be determined."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self.executor, self.probe_duration, filepath)
        except Exception as e:
            print(f"⚠️ Probe failed for {filepath}: {e}")
            return None

    def shutdown(self):
        self.executor.shutdown(wait=True)

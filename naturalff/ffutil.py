"""ffprobe subprocess helpers: the prober behind MediaDescriptor."""

import json
import logging
import shutil
import subprocess
from pathlib import Path

from naturalff.models import MediaDescriptor

logger = logging.getLogger(__name__)


class FFmpegNotFoundError(RuntimeError):
    pass


class NoMediaStreamError(ValueError):
    """Raised when the input file has neither a video nor an audio stream."""
    pass


def check_ffprobe() -> None:
    """Raise FFmpegNotFoundError if ffprobe is not on PATH."""
    if shutil.which("ffprobe") is None:
        raise FFmpegNotFoundError("ffprobe not found on PATH")


def parse_frame_rate(value: str | None) -> float | None:
    """Parse ffprobe's ``r_frame_rate`` (e.g. ``"30000/1001"``)."""
    if not value:
        return None
    num, _, den = value.partition("/")
    if not den:
        return float(num)
    if int(den) == 0:
        return None
    return int(num) / int(den)


def descriptor_from_probe(data: dict, filename: str | None = None) -> MediaDescriptor:
    """Build a MediaDescriptor from ffprobe ``-print_format json`` output."""
    streams = data.get("streams", [])
    video_stream = next((s for s in streams if s.get("codec_type") == "video"), None)
    audio_stream = next((s for s in streams if s.get("codec_type") == "audio"), None)

    if video_stream is None and audio_stream is None:
        raise NoMediaStreamError(f"No video or audio stream found in {filename}")

    duration = data.get("format", {}).get("duration")
    return MediaDescriptor(
        filename=filename,
        width=int(video_stream["width"]) if video_stream and "width" in video_stream else None,
        height=int(video_stream["height"]) if video_stream and "height" in video_stream else None,
        duration=float(duration) if duration is not None else None,
        fps=parse_frame_rate(video_stream.get("r_frame_rate")) if video_stream else None,
        codec_video=video_stream["codec_name"] if video_stream else None,
        codec_audio=audio_stream["codec_name"] if audio_stream else None,
    )


def probe(input_path: Path) -> MediaDescriptor:
    """Extract media metadata via ffprobe."""
    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(input_path),
    ]
    logger.info("Probing %s", input_path)
    result = subprocess.run(cmd, capture_output=True, text=True, check=True)
    return descriptor_from_probe(json.loads(result.stdout), filename=str(input_path))

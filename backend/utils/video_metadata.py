"""
Video metadata extraction utilities

Reads duration and stream details with ffprobe. Probing is best effort:
every failure is logged and reported as None so callers can carry on
without metadata.
"""

import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, Optional

from utils.ffmpeg_helper import get_ffprobe_path

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_SECONDS = 30


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_ffprobe_output(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Reduce ffprobe JSON (-show_format -show_streams) to the fields we store.

    Returns:
        Dictionary with duration, width, height, codec, bitrate (bits/s) and
        format; fields ffprobe did not report are None
    """
    format_info = data.get('format') or {}
    video_stream = next(
        (s for s in data.get('streams') or [] if s.get('codec_type') == 'video'),
        {},
    )

    duration = _to_float(format_info.get('duration'))
    if duration is None:
        duration = _to_float(video_stream.get('duration'))

    format_name = format_info.get('format_name')

    return {
        'duration': duration,
        'width': _to_int(video_stream.get('width')),
        'height': _to_int(video_stream.get('height')),
        'codec': video_stream.get('codec_name'),
        'bitrate': _to_int(format_info.get('bit_rate')) or _to_int(video_stream.get('bit_rate')),
        'format': format_name.split(',')[0] if format_name else None,
    }


def get_video_metadata(file_path: str) -> Optional[Dict[str, Any]]:
    """
    Extract technical metadata from a local video file.

    Args:
        file_path: Path to video file (local file system)

    Returns:
        Parsed metadata (see parse_ffprobe_output), or None if probing failed
    """
    ffprobe = get_ffprobe_path()
    if not ffprobe:
        return None

    try:
        result = subprocess.run(
            [
                ffprobe,
                '-v', 'quiet',
                '-print_format', 'json',
                '-show_format',
                '-show_streams',
                str(file_path),
            ],
            capture_output=True,
            text=True,
            timeout=PROBE_TIMEOUT_SECONDS,
        )
    except subprocess.TimeoutExpired:
        logger.error(f"ffprobe timeout for {file_path}")
        return None
    except OSError as e:
        logger.error(f"Could not run ffprobe for {file_path}: {e}")
        return None

    if result.returncode != 0:
        logger.warning(f"ffprobe failed for {file_path}: {result.stderr}")
        return None

    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse ffprobe output for {file_path}: {e}")
        return None

    metadata = parse_ffprobe_output(data)
    logger.debug(f"Extracted metadata for {Path(file_path).name}: {metadata}")
    return metadata

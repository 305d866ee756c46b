"""
FFprobe Binary Helper

Locates the ffprobe binary used for media metadata extraction.
"""
import logging
import shutil
from functools import lru_cache
from pathlib import Path
from typing import Optional

from config.settings import FFPROBE_PATH

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_ffprobe_path() -> Optional[str]:
    """
    Resolve ffprobe from FFPROBE_PATH, falling back to the system PATH.

    Returns:
        Absolute path to the binary, or None if it is not installed
    """
    if FFPROBE_PATH:
        if Path(FFPROBE_PATH).is_file():
            logger.info(f"Using configured ffprobe: {FFPROBE_PATH}")
            return FFPROBE_PATH
        logger.warning(f"FFPROBE_PATH {FFPROBE_PATH} does not exist, searching PATH")

    found = shutil.which('ffprobe')
    if found:
        logger.info(f"Using ffprobe from PATH: {found}")
    else:
        logger.warning("ffprobe not found; videos will be stored without technical metadata")
    return found

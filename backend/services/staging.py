"""
Staging area for uploads awaiting transfer to storage.

Each job gets its own directory, STAGING_DIR/<job id>/, holding the single
uploaded file.
"""
import logging
import os
import re
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[^A-Za-z0-9._-]+')


def safe_filename(filename: str) -> str:
    """Reduce an uploader-supplied name to a safe basename."""
    name = os.path.basename(filename.replace('\\', '/')).strip()
    name = _UNSAFE_CHARS.sub('_', name).strip('._')
    return name or 'upload'


def stage_upload(staging_dir: Union[str, Path], job_id: str, filename: str, content: bytes) -> Path:
    """
    Write uploaded bytes to the job's staging directory.

    Returns:
        Path of the staged file
    """
    job_dir = Path(staging_dir) / job_id
    job_dir.mkdir(parents=True, exist_ok=True)
    path = job_dir / filename
    path.write_bytes(content)
    return path


def release_staged_upload(path: Optional[Union[str, Path]]) -> bool:
    """
    Delete a staged file and its job directory if empty.

    Missing files are ignored; other filesystem errors are logged.

    Returns:
        True if a file was removed
    """
    if not path:
        return False

    path = Path(path)
    removed = False
    try:
        path.unlink()
        removed = True
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove staged upload {path}: {e}")
        return False

    try:
        path.parent.rmdir()
    except OSError:
        # Not empty or already gone
        pass

    if removed:
        logger.debug(f"Released staged upload {path}")
    return removed

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Union

import config
from errors import StoreIoError

logger = logging.getLogger(__name__)

ARTIFACTS_DIRNAME = "artifacts"
IMAGES_DIRNAME = "images"

PathLike = Union[str, Path]


def images_dir(base_path: PathLike) -> Path:
    return Path(base_path) / IMAGES_DIRNAME


def ensure_ready(data_dir: Optional[PathLike] = None) -> Path:
    """Create the artifacts and images directories if needed and return the artifacts path."""
    root = Path(data_dir) if data_dir is not None else config.resolve_data_dir()
    base_path = root / ARTIFACTS_DIRNAME
    try:
        os.makedirs(images_dir(base_path), exist_ok=True)
    except OSError as exc:
        raise StoreIoError(f"Failed to create artifact directory {base_path}: {exc}") from exc
    logger.info("Artifact store ready at %s", base_path)
    return base_path


def list_images(base_path: PathLike) -> List[str]:
    directory = images_dir(base_path)
    try:
        with os.scandir(directory) as entries:
            names = [e.name for e in entries if e.is_file(follow_symlinks=False)]
    except OSError as exc:
        raise StoreIoError(f"Failed to read {directory}: {exc}") from exc
    return sorted(names)


def write_image(base_path: PathLike, filename: str, data: bytes) -> Path:
    """Write ``data`` as ``images/<filename>``.

    The bytes land in a temporary file next to the images directory first and
    are renamed into place, so the name only shows up in a listing once the
    content is complete.
    """
    base_path = Path(base_path)
    target = images_dir(base_path) / filename
    tmp_name = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=".incoming-", suffix=".tmp", dir=base_path)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, target)
    except OSError as exc:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise StoreIoError(f"Failed to write {target}: {exc}") from exc
    logger.info("Stored %s (%d bytes)", filename, len(data))
    return target

"""
KeySort Storage

Local filesystem implementations of the collaborators the sorting core
depends on: listing subfolders, listing images and copying files.
"""

import logging
import os
import re
import shutil
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from keysort.config import IMAGE_EXTENSIONS
from keysort.errors import CopyError
from keysort.utils import is_hidden

logger = logging.getLogger(__name__)

_DIGIT_RUN = re.compile(r'(\d+)')


@dataclass
class ImageFile:
    """An image directly inside the working folder"""

    name: str
    path: str
    size: int
    created: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return asdict(self)


@dataclass
class ImageMetadata:
    """File facts plus pixel dimensions when the image can be read"""

    path: str
    name: str
    size: int
    created: str
    width: Optional[int] = None
    height: Optional[int] = None


def natural_sort_key(name: str) -> Tuple:
    """Sort key that orders "img2" before "img10", ignoring case"""
    return tuple(
        (0, int(part), '') if part.isdigit() else (1, 0, part.lower())
        for part in _DIGIT_RUN.split(name)
        if part
    )


def _created_iso(stat: os.stat_result) -> str:
    # Birth time where the platform has it, modification time otherwise
    timestamp = getattr(stat, 'st_birthtime', None) or stat.st_mtime
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc).isoformat()


# ═══════════════════════════════════════════════════════════════════════════
# FOLDERS
# ═══════════════════════════════════════════════════════════════════════════

def list_subfolders(
    path: str,
    skip_hidden: bool = True,
    follow_symlinks: bool = False
) -> List[str]:
    """
    List the immediate subfolders of a folder.

    Args:
        path: Folder to list
        skip_hidden: Leave out dot-folders
        follow_symlinks: Treat symlinks to folders as folders

    Returns:
        Subfolder names in natural order

    Raises:
        NotADirectoryError: If path is not a folder
        OSError: If the folder cannot be read
    """
    if not os.path.isdir(path):
        raise NotADirectoryError(f"Provided path is not a directory: {path}")

    names = []
    with os.scandir(path) as entries:
        for entry in entries:
            if not entry.is_dir(follow_symlinks=follow_symlinks):
                continue
            if skip_hidden and is_hidden(entry.name):
                continue
            names.append(entry.name)

    return sorted(names, key=natural_sort_key)


# ═══════════════════════════════════════════════════════════════════════════
# IMAGES
# ═══════════════════════════════════════════════════════════════════════════

def list_images_in_folder(
    folder_path: str,
    extensions: Optional[Iterable[str]] = None
) -> List[ImageFile]:
    """
    List image files directly inside a folder.

    Args:
        folder_path: Folder to scan (not recursive)
        extensions: Accepted lowercase extensions, defaults to IMAGE_EXTENSIONS

    Returns:
        ImageFile records in natural filename order
    """
    if not os.path.isdir(folder_path):
        raise NotADirectoryError("Provided path is not a directory")

    accepted = set(extensions) if extensions is not None else IMAGE_EXTENSIONS
    images: List[ImageFile] = []

    with os.scandir(folder_path) as entries:
        for entry in entries:
            if not entry.is_file():
                continue
            if os.path.splitext(entry.name)[1].lower() not in accepted:
                continue

            stat = entry.stat()
            images.append(ImageFile(
                name=entry.name,
                path=entry.path,
                size=stat.st_size,
                created=_created_iso(stat),
            ))

    images.sort(key=lambda image: natural_sort_key(image.name))
    logger.debug(f"Found {len(images)} images in {folder_path}")
    return images


def get_image_metadata(path: str) -> ImageMetadata:
    """
    Get file metadata and pixel dimensions for an image.

    Width and height are None when Pillow cannot identify the file
    (SVG, truncated files).
    """
    stat = os.stat(path)
    metadata = ImageMetadata(
        path=path,
        name=os.path.basename(path) or "unknown",
        size=stat.st_size,
        created=_created_iso(stat),
    )

    try:
        with Image.open(path) as img:
            metadata.width, metadata.height = img.size
    except (UnidentifiedImageError, OSError) as e:
        logger.debug(f"Could not read dimensions of {path}: {e}")

    return metadata


# ═══════════════════════════════════════════════════════════════════════════
# COPYING
# ═══════════════════════════════════════════════════════════════════════════

def copy_file(source_path: str, target_folder: str) -> str:
    """
    Copy a file into a folder under its own name.

    An existing file with the same name is overwritten.

    Returns:
        Path of the copy

    Raises:
        CopyError: If the source is missing, the target is not a folder
            or the copy itself fails
    """
    if not os.path.isfile(source_path):
        raise CopyError(f"Source file not found: {source_path}")
    if not os.path.isdir(target_folder):
        raise CopyError(f"Target folder not found: {target_folder}")

    dest_path = os.path.join(target_folder, os.path.basename(source_path))

    try:
        shutil.copy2(source_path, dest_path)
    except OSError as e:
        raise CopyError(str(e)) from e

    logger.debug(f"Copied {source_path} -> {dest_path}")
    return dest_path

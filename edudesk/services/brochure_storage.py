"""
Brochure file storage.

Uploaded brochure files live under the configured upload root:

    <root>/temp/<uuid><ext>                                   (incoming upload)
    <root>/documents/brochure/<program>_<title>/<title>[_<unix ts>]<ext>

The path stored on the brochure record is relative to the upload root, uses
forward slashes and starts with a slash.
"""

import logging
import os
import re
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple
from uuid import uuid4

from fastapi import UploadFile

from edudesk.core.config import settings
from edudesk.core.errors import FileSystemError

logger = logging.getLogger(__name__)

BROCHURE_SUBDIR = ("documents", "brochure")
TEMP_SUBDIR = "temp"

_WHITESPACE = re.compile(r"\s+")
_NON_WORD = re.compile(r"[^\w-]+")
_MULTI_HYPHEN = re.compile(r"--+")


@dataclass
class StoredFile:
    file_url: str
    name: str
    absolute_path: Path


def slugify(text) -> str:
    """Normalize free text into a filesystem/URL safe slug."""
    value = str(text).lower().strip()
    value = _WHITESPACE.sub("-", value)
    value = _NON_WORD.sub("", value)
    return _MULTI_HYPHEN.sub("-", value)


def brochure_folder_name(program_name: str, title: str) -> str:
    return f"{slugify(program_name)}_{slugify(title)}"


def upload_root() -> Path:
    return settings.upload_root_path()


def brochure_root() -> Path:
    return upload_root().joinpath(*BROCHURE_SUBDIR)


def storage_dir_for(program_name: str, title: str) -> Tuple[str, Path]:
    """Return (relative_dir, absolute_dir) for a brochure, creating the directory."""
    folder = brochure_folder_name(program_name, title)
    relative_dir = "/" + "/".join(BROCHURE_SUBDIR + (folder,))
    absolute_dir = brochure_root() / folder
    absolute_dir.mkdir(parents=True, exist_ok=True)
    return relative_dir, absolute_dir


def unique_file_name(directory: Path, base_name: str, extension: str) -> str:
    file_name = f"{base_name}{extension}"
    if (directory / file_name).exists():
        file_name = f"{base_name}_{int(time.time())}{extension}"
    return file_name


def save_temp_upload(upload: UploadFile) -> Path:
    """Write an incoming upload to the temp folder and return its path."""
    temp_dir = upload_root() / TEMP_SUBDIR
    extension = Path(upload.filename or "").suffix
    temp_path = temp_dir / f"{uuid4().hex}{extension}"
    try:
        temp_dir.mkdir(parents=True, exist_ok=True)
        with temp_path.open("wb") as out:
            shutil.copyfileobj(upload.file, out)
    except OSError as e:
        logger.error(f"Error saving upload {upload.filename!r}: {e}", exc_info=True)
        _discard(temp_path)
        raise FileSystemError("Failed to save uploaded file") from e
    return temp_path


def store_brochure_file(
    temp_path: Path,
    original_filename: str,
    program_name: Optional[str],
    title: str,
) -> StoredFile:
    """
    Move an uploaded temp file to its derived brochure location.

    When the owning program is unknown (``program_name`` is None) the file is
    left in the temp folder and its temp path is recorded instead.
    """
    temp_path = Path(temp_path)

    if program_name is None:
        logger.warning(f"No program for brochure '{title}', keeping upload at temp path")
        return StoredFile(
            file_url=f"/{TEMP_SUBDIR}/{temp_path.name}",
            name=temp_path.name,
            absolute_path=temp_path,
        )

    try:
        relative_dir, absolute_dir = storage_dir_for(program_name, title)
        extension = Path(original_filename or "").suffix
        file_name = unique_file_name(absolute_dir, slugify(title), extension)
        final_path = absolute_dir / file_name
        shutil.move(str(temp_path), str(final_path))
    except OSError as e:
        logger.error(f"Error moving upload for brochure '{title}': {e}", exc_info=True)
        _discard(temp_path)
        raise FileSystemError("Failed to store brochure file") from e

    return StoredFile(
        file_url=f"{relative_dir}/{file_name}",
        name=file_name,
        absolute_path=final_path,
    )


def resolve_file_url(file_url: str) -> Optional[Path]:
    """Map a stored file url onto the upload root; None if it escapes the root."""
    root = upload_root()
    candidate = (root / file_url.lstrip("/\\")).resolve()
    if candidate != root and root not in candidate.parents:
        return None
    return candidate


def _is_empty_dir(path: Path) -> bool:
    return path.is_dir() and not any(path.iterdir())


def remove_brochure_file(file_url: Optional[str]) -> bool:
    """
    Delete a brochure's file and the folders it leaves empty under
    documents/brochure (parent, then grandparent; never the root itself).

    Best-effort: file system errors are logged and never raised. Returns
    True when a file was removed.
    """
    if not file_url:
        return False

    try:
        absolute_path = resolve_file_url(file_url)
        if absolute_path is None:
            logger.error(f"Refusing to delete file outside the upload root: {file_url}")
            return False
        if not absolute_path.is_file():
            return False

        absolute_path.unlink()

        # Only folders strictly inside documents/brochure are pruned
        root = brochure_root().resolve()
        parent_dir = absolute_path.parent
        if root in parent_dir.parents and _is_empty_dir(parent_dir):
            parent_dir.rmdir()

        grandparent_dir = parent_dir.parent
        if root in grandparent_dir.parents and _is_empty_dir(grandparent_dir):
            grandparent_dir.rmdir()
        return True
    except OSError as e:
        logger.error(f"Error deleting brochure file {file_url}: {e}")
        return False


def _discard(path: Path) -> None:
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError as e:
        logger.error(f"Error removing temp upload {path}: {e}")

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from send2trash import send2trash

logger = logging.getLogger(__name__)


class FileOperationError(Exception):
    pass


def ensure_directory(path: Path) -> Path:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FileOperationError(f"Failed to create directory {path}: {exc}") from exc
    return path


def remove_path(path: Path, use_trash: bool = False) -> None:
    """Delete a file or directory tree, or move it to the trash."""
    try:
        if use_trash:
            send2trash(str(path))
        elif path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except Exception as exc:  # send2trash raises its own OSError subclasses
        raise FileOperationError(f"Failed to remove {path}: {exc}") from exc


def clear_directory(folder: Path, use_trash: bool = False) -> int:
    """Remove everything inside ``folder``; returns the number of entries removed."""
    try:
        entries = sorted(folder.iterdir())
    except OSError as exc:
        logger.error("Error getting contents of folder %s: %s", folder, exc)
        return 0

    removed = 0
    for entry in entries:
        try:
            remove_path(entry, use_trash)
        except FileOperationError as exc:
            logger.error("Error deleting %s: %s", entry.name, exc)
            continue
        removed += 1
    return removed


def write_file(path: Path, data: bytes) -> int:
    try:
        path.write_bytes(data)
    except OSError as exc:
        raise FileOperationError(f"Failed to write {path}: {exc}") from exc
    return file_size(path)


def file_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError as exc:
        logger.warning("Unable to read size of %s: %s", path, exc)
        return 0

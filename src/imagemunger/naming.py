from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

PathLike = Union[str, Path]

DENSITY_SUFFIXES = ("@2x", "@3x")
MASK_SUFFIX = "_mask"


def has_file_suffix(path: PathLike, suffix: str) -> bool:
    """True when the file stem (name without extension) ends with ``suffix``."""
    return Path(path).stem.endswith(suffix)


def change_file_suffix(path: PathLike, old: str, new: str) -> Path:
    path = Path(path)
    stem = path.stem
    if old:
        if not stem.endswith(old):
            return path
        stem = stem[: -len(old)]
    return path.with_name(f"{stem}{new}{path.suffix}")


def change_file_extension(path: PathLike, new: str, old: Optional[str] = None) -> Path:
    path = Path(path)
    current = path.suffix.lstrip(".")
    if old is not None and current != old:
        return path
    if not new:
        return path.with_suffix("")
    return path.with_name(f"{path.stem}.{new}")


def base_name(path: PathLike) -> str:
    name = Path(path).stem
    for suffix in DENSITY_SUFFIXES:
        if name.endswith(suffix):
            name = name[: -len(suffix)]
    return name


def mask_name(name: PathLike) -> Path:
    """Mask counterpart of ``name``; the density suffix stays last (``hero_mask@2x.png``)."""
    path = Path(name)
    stem = path.stem
    density = ""
    for suffix in DENSITY_SUFFIXES:
        if stem.endswith(suffix):
            stem, density = stem[: -len(suffix)], suffix
            break
    return path.with_name(f"{stem}{MASK_SUFFIX}{density}{path.suffix}")


def image_set_path(path: PathLike) -> Path:
    """Image set directory that holds every density variant of ``path``."""
    path = Path(path)
    return path.with_name(f"{base_name(path)}.imageset")


def scale_for_filename(name: PathLike) -> str:
    if has_file_suffix(name, "@2x"):
        return "2x"
    if has_file_suffix(name, "@3x"):
        return "3x"
    return "1x"

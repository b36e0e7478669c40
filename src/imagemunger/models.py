from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import FrozenSet, Optional, Union


class ImageFormat(Enum):
    UNCHANGED = "unchanged"
    JPEG = "jpg"
    PNG = "png"
    GIF = "gif"
    TIFF = "tif"

    @classmethod
    def for_path(cls, path: Union[str, Path]) -> "ImageFormat":
        ext = Path(path).suffix.lower().lstrip(".")
        if ext == "tiff":
            return cls.TIFF
        if ext == "jpeg":
            return cls.JPEG
        if ext == cls.UNCHANGED.value:
            return cls.UNCHANGED
        try:
            return cls(ext)
        except ValueError:
            return cls.UNCHANGED

    @property
    def pillow_format(self) -> Optional[str]:
        return _PILLOW_FORMATS.get(self)


_PILLOW_FORMATS = {
    ImageFormat.JPEG: "JPEG",
    ImageFormat.PNG: "PNG",
    ImageFormat.GIF: "GIF",
    ImageFormat.TIFF: "TIFF",
}


class PackageType(Enum):
    NONE = "none"
    STICKER_PACK = "stickerpack"
    IMAGE_SET = "imageset"
    ICON_SET = "iconset"
    ICNS = "icns"
    CATALOG = "catalog"
    CATALOG_FOLDER = "catalogfolder"


class ImageScale(Enum):
    ONE_X = 1
    TWO_X = 2
    THREE_X = 3


class Preset(Enum):
    NONE = "none"
    SMALL_STICKER = "smallSticker"
    MEDIUM_STICKER = "mediumSticker"
    LARGE_STICKER = "largeSticker"
    THUMB_256 = "thumb256"
    IMAGE_SET = "imageSet"
    STICKER_IMAGE_SET_1 = "stickerImageSet1"
    STICKER_IMAGE_SET_2 = "stickerImageSet2"
    STICKER_IMAGE_SET_3 = "stickerImageSet3"
    STICKER_IMAGE_SET_12 = "stickerImageSet12"
    STICKER_IMAGE_SET_13 = "stickerImageSet13"
    STICKER_IMAGE_SET_23 = "stickerImageSet23"
    STICKER_IMAGE_SET_123 = "stickerImageSet123"
    STICKER_IMAGE_FILES_1 = "stickerImageFiles1"
    STICKER_IMAGE_FILES_2 = "stickerImageFiles2"
    STICKER_IMAGE_FILES_3 = "stickerImageFiles3"
    STICKER_IMAGE_FILES_12 = "stickerImageFiles12"
    STICKER_IMAGE_FILES_13 = "stickerImageFiles13"
    STICKER_IMAGE_FILES_23 = "stickerImageFiles23"
    STICKER_IMAGE_FILES_123 = "stickerImageFiles123"

    @property
    def grid_size(self) -> str:
        """Grid size string written into a sticker pack descriptor."""
        if self is Preset.SMALL_STICKER:
            return "small"
        if self is Preset.LARGE_STICKER:
            return "large"
        return "regular"

    @property
    def is_sticker_image_set(self) -> bool:
        return self.value.startswith("stickerImageSet")

    @property
    def is_sticker_image_files(self) -> bool:
        return self.value.startswith("stickerImageFiles")

    @property
    def scales(self) -> FrozenSet[ImageScale]:
        """Scales selected by the digits of a sticker image preset name."""
        if not (self.is_sticker_image_set or self.is_sticker_image_files):
            return frozenset()
        prefix = self.value.rstrip("0123456789")
        return frozenset(ImageScale(int(ch)) for ch in self.value[len(prefix):])


class ProcessMode(Enum):
    NORMAL = "normal"
    MASK = "mask"


class ScaleMode(Enum):
    ASPECT_FIT = "aspectFit"
    FILL = "fill"


class SourceGroup(Enum):
    GENERAL = "general"
    OVAL = "oval"
    SQUARE = "square"


@dataclass(frozen=True)
class Plan:
    """A single resize instruction produced from a preset."""

    scale: float = 0.0
    box_width: int = 0
    box_height: int = 0
    aspect_with_max_box: bool = False
    output_format: ImageFormat = ImageFormat.UNCHANGED
    output_package: PackageType = PackageType.NONE
    required_suffix: Optional[str] = None
    remove_suffix: Optional[str] = None
    add_suffix: Optional[str] = None

    @property
    def renames(self) -> bool:
        return self.remove_suffix is not None or self.add_suffix is not None


@dataclass(frozen=True)
class SourceUnit:
    """One logical source image: a single file, or a square file paired with an oval one."""

    path: Path
    oval_path: Optional[Path] = None

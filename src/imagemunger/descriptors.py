"""Contents.json descriptors for sticker packs, image sets and asset catalogs."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional, Type, TypeVar, Union

logger = logging.getLogger(__name__)

CONTENTS_FILENAME = "Contents.json"
DEFAULT_AUTHOR = "xcode"
DEFAULT_VERSION = 1


class DescriptorError(Exception):
    pass


@dataclass
class Info:
    version: int = DEFAULT_VERSION
    author: str = DEFAULT_AUTHOR

    @classmethod
    def from_dict(cls, data: Any) -> "Info":
        if not isinstance(data, dict):
            raise DescriptorError("Descriptor is missing an info block.")
        return cls(
            version=int(data.get("version", 0)),
            author=str(data.get("author", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"version": self.version, "author": self.author}


@dataclass
class StickerPackContents:
    kind: ClassVar[str] = "stickerpack"

    stickers: List[str] = field(default_factory=list)
    info: Info = field(default_factory=Info)
    grid_size: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StickerPackContents":
        stickers = [
            str(item["filename"])
            for item in data.get("stickers", [])
            if isinstance(item, dict) and "filename" in item
        ]
        properties = data.get("properties") or {}
        return cls(
            stickers=stickers,
            info=Info.from_dict(data.get("info")),
            grid_size=str(properties.get("grid-size", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stickers": [{"filename": name} for name in self.stickers],
            "info": self.info.to_dict(),
            "properties": {"grid-size": self.grid_size},
        }


@dataclass
class StickerContents:
    kind: ClassVar[str] = "sticker"

    filename: str = ""
    info: Info = field(default_factory=Info)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StickerContents":
        properties = data.get("properties") or {}
        return cls(
            filename=str(properties.get("filename", "")),
            info=Info.from_dict(data.get("info")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "info": self.info.to_dict(),
            "properties": {"filename": self.filename},
        }


@dataclass
class ImageSetImage:
    filename: Optional[str] = None
    idiom: Optional[str] = None
    scale: Optional[str] = None
    platform: Optional[str] = None
    size: Optional[str] = None
    role: Optional[str] = None
    subtype: Optional[str] = None

    _FIELDS: ClassVar[tuple] = (
        "filename",
        "idiom",
        "scale",
        "platform",
        "size",
        "role",
        "subtype",
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageSetImage":
        values = {}
        for name in cls._FIELDS:
            value = data.get(name)
            values[name] = None if value is None else str(value)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        # unset fields are left out entirely, never written as null
        return {
            name: getattr(self, name)
            for name in self._FIELDS
            if getattr(self, name) is not None
        }


@dataclass
class ImageSetContents:
    kind: ClassVar[str] = "imageset"

    images: List[ImageSetImage] = field(default_factory=list)
    info: Info = field(default_factory=Info)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageSetContents":
        images = [
            ImageSetImage.from_dict(item)
            for item in data.get("images", [])
            if isinstance(item, dict)
        ]
        return cls(images=images, info=Info.from_dict(data.get("info")))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "images": [image.to_dict() for image in self.images],
            "info": self.info.to_dict(),
        }


@dataclass
class CatalogContents:
    """Asset catalog (or catalog folder) descriptor.

    ``properties`` is only part of the document for the folder variant, and
    ``on-demand-resource-tags`` only when at least one tag is set.
    """

    kind: ClassVar[str] = "catalog"

    info: Info = field(default_factory=Info)
    is_folder: bool = False
    provides_namespace: bool = False
    on_demand_resource_tags: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CatalogContents":
        properties = data.get("properties")
        if properties is None:
            return cls(info=Info.from_dict(data.get("info")))
        if not isinstance(properties, dict) or "provides-namespace" not in properties:
            raise DescriptorError("Catalog properties must declare provides-namespace.")
        return cls(
            info=Info.from_dict(data.get("info")),
            is_folder=True,
            provides_namespace=bool(properties["provides-namespace"]),
            on_demand_resource_tags=[
                str(tag) for tag in properties.get("on-demand-resource-tags", [])
            ],
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"info": self.info.to_dict()}
        if self.is_folder:
            properties: Dict[str, Any] = {"provides-namespace": self.provides_namespace}
            if self.on_demand_resource_tags:
                properties["on-demand-resource-tags"] = list(self.on_demand_resource_tags)
            data["properties"] = properties
        return data


Descriptor = Union[StickerPackContents, StickerContents, ImageSetContents, CatalogContents]
D = TypeVar("D", StickerPackContents, StickerContents, ImageSetContents, CatalogContents)


def contents_path(folder: Path) -> Path:
    return Path(folder) / CONTENTS_FILENAME


def read_contents(kind: Type[D], folder: Path) -> D:
    path = contents_path(folder)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise DescriptorError(f"Descriptor does not exist: {path}") from exc
    except OSError as exc:
        raise DescriptorError(f"Failed to read descriptor {path}: {exc}") from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DescriptorError(f"Invalid JSON in descriptor {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise DescriptorError(f"Descriptor {path} must contain a JSON object.")

    try:
        return kind.from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise DescriptorError(f"Malformed {kind.kind} descriptor {path}: {exc}") from exc


def write_contents(contents: Descriptor, folder: Path) -> Path:
    path = contents_path(folder)
    payload = json.dumps(contents.to_dict(), indent=2)
    try:
        path.write_text(payload + "\n", encoding="utf-8")
    except OSError as exc:
        raise DescriptorError(f"Failed to write descriptor {path}: {exc}") from exc
    logger.debug("Wrote %s descriptor %s", contents.kind, path)
    return path

"""Destination containers: sticker packs, image sets, icon sets, icns and catalogs.

Every package type gets a packager object. ``prepare`` checks the
destination and clears it when ``out-package-replace`` is set; ``insert``
routes one rendered artifact into the container and returns the path the
image should be written to. Icon packagers render their own fixed set of
images through ``produce`` instead.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from PIL import Image

from .config import DEFAULT_ICON_PACKER
from .configuration import Configuration
from .descriptors import (
    CatalogContents,
    DescriptorError,
    ImageSetContents,
    ImageSetImage,
    Info,
    StickerContents,
    StickerPackContents,
    contents_path,
    read_contents,
    write_contents,
)
from .file_ops import (
    FileOperationError,
    clear_directory,
    ensure_directory,
    file_size,
    remove_path,
    write_file,
)
from .icns import ICON_LADDER, iconset_filename, pack_iconset
from .imaging import ImageEncodeError, decode_image, encode_image, scale_image
from .models import ImageFormat, PackageType, Plan, ScaleMode, SourceUnit
from .naming import change_file_extension, change_file_suffix, has_file_suffix, image_set_path, scale_for_filename

logger = logging.getLogger(__name__)

STICKER_PACK_SUFFIX = ".stickerpack"
ICON_SET_SUFFIXES = (".iconset", ".appiconset", ".stickersiconset")
GENERIC_ICON_SET_SUFFIX = ".iconset"
ICNS_SUFFIX = ".icns"
CATALOG_SUFFIX = ".xcassets"
UNIVERSAL_IDIOM = "universal"


class PackagingError(Exception):
    pass


@dataclass
class SegmentState:
    """Position inside a size-budgeted catalog folder.

    Without a budget there is a single segment: the destination itself.
    With one, segments are the numbered siblings ``<base>_0``, ``<base>_1``...
    """

    base_path: Path
    max_size_bytes: int = 0
    index: int = 0
    accumulated_bytes: int = 0
    current_path: Optional[Path] = None

    def __post_init__(self) -> None:
        if self.current_path is None:
            self.current_path = self.path_for(self.index) if self.segmented else self.base_path

    @property
    def segmented(self) -> bool:
        return self.max_size_bytes > 0

    def path_for(self, index: int) -> Path:
        return self.base_path.with_name(f"{self.base_path.name}_{index}")

    def should_advance(self) -> bool:
        return self.segmented and self.accumulated_bytes > self.max_size_bytes

    def advance(self) -> Path:
        self.index += 1
        self.accumulated_bytes = 0
        self.current_path = self.path_for(self.index)
        return self.current_path

    def record(self, size: int) -> None:
        self.accumulated_bytes += size


@dataclass
class PackagingContext:
    """Mutable state owned by one configuration's run."""

    configuration: Configuration
    segment: SegmentState
    use_trash: bool = False
    icon_packer: str = DEFAULT_ICON_PACKER
    contact_images: Optional[List[Image.Image]] = None
    written: List[Path] = field(default_factory=list)

    @classmethod
    def for_configuration(
        cls,
        configuration: Configuration,
        use_trash: bool = False,
        icon_packer: str = DEFAULT_ICON_PACKER,
    ) -> "PackagingContext":
        if configuration.destination is None:
            raise PackagingError("Missing dst.")
        budget = 0
        if configuration.output_package is PackageType.CATALOG_FOLDER:
            budget = max(0, configuration.catalog_folder_max_size)
        return cls(
            configuration=configuration,
            segment=SegmentState(base_path=configuration.destination, max_size_bytes=budget),
            use_trash=use_trash,
            icon_packer=icon_packer,
            contact_images=[] if configuration.contact_sheet_path is not None else None,
        )

    @property
    def folder(self) -> Path:
        return self.segment.current_path

    def catalog_tags(self) -> List[str]:
        tag = self.configuration.catalog_folder_tag
        if not tag:
            return []
        if self.segment.segmented:
            return [f"{tag}_{self.segment.index}"]
        return [tag]


# -- container maintenance -------------------------------------------------


def clear_sticker_pack(folder: Path, use_trash: bool = False) -> None:
    """Delete every sticker the pack descriptor lists and empty the list."""
    try:
        contents = read_contents(StickerPackContents, folder)
    except DescriptorError as exc:
        logger.error("Error in clear_sticker_pack: %s", exc)
        return

    for name in contents.stickers:
        item = folder / name
        if not item.exists():
            continue
        try:
            remove_path(item, use_trash)
        except FileOperationError as exc:
            logger.error("Error in clear_sticker_pack: %s", exc)
    contents.stickers = []
    try:
        write_contents(contents, folder)
    except DescriptorError as exc:
        logger.error("Error in clear_sticker_pack: %s", exc)


def set_sticker_pack_size(folder: Path, grid_size: str) -> None:
    try:
        contents = read_contents(StickerPackContents, folder)
        contents.grid_size = grid_size
        write_contents(contents, folder)
    except DescriptorError as exc:
        logger.error("Error in set_sticker_pack_size: %s", exc)


def catalog_contents(context: PackagingContext, is_folder: bool = False) -> CatalogContents:
    return CatalogContents(
        info=Info(),
        is_folder=is_folder,
        provides_namespace=context.configuration.catalog_folder_provides_namespace,
        on_demand_resource_tags=context.catalog_tags(),
    )


def clear_catalog(context: PackagingContext, folder: Path, is_folder: bool = False) -> None:
    """Empty ``folder`` and write a fresh catalog descriptor into it."""
    clear_directory(folder, context.use_trash)
    try:
        write_contents(catalog_contents(context, is_folder), folder)
    except DescriptorError as exc:
        logger.error("Error in clear_catalog: %s", exc)


def clear_split_catalogs(base_path: Path, use_trash: bool = False) -> int:
    """Remove ``<base>_0``, ``<base>_1``... up to the first missing index."""
    index = 0
    while True:
        path = base_path.with_name(f"{base_path.name}_{index}")
        if not path.exists():
            return index
        try:
            remove_path(path, use_trash)
        except FileOperationError as exc:
            logger.error("Error deleting %s: %s", path, exc)
        index += 1


def setup_catalog_folder_segment(context: PackagingContext) -> Path:
    folder = context.segment.current_path
    try:
        ensure_directory(folder)
    except FileOperationError as exc:
        logger.error("%s", exc)
    clear_catalog(context, folder, is_folder=True)
    return folder


def advance_segment_if_needed(context: PackagingContext) -> bool:
    segment = context.segment
    if not segment.should_advance():
        return False
    logger.info(
        "Segment %d reached %d bytes (limit %d); starting segment %d",
        segment.index,
        segment.accumulated_bytes,
        segment.max_size_bytes,
        segment.index + 1,
    )
    segment.advance()
    setup_catalog_folder_segment(context)
    return True


def insert_sticker_to_pack(path: Path) -> Optional[Path]:
    """Wrap ``path`` in a ``.sticker`` bundle and list it in the pack descriptor.

    Returns where the image itself belongs inside the bundle.
    """
    pack = path.parent
    sticker_dir = change_file_extension(path, "sticker")
    try:
        contents = read_contents(StickerPackContents, pack)
        ensure_directory(sticker_dir)
        write_contents(StickerContents(filename=path.name), sticker_dir)
        if sticker_dir.name not in contents.stickers:
            contents.stickers.append(sticker_dir.name)
            write_contents(contents, pack)
    except (DescriptorError, FileOperationError) as exc:
        logger.error("Error in insert_sticker_to_pack: %s", exc)
        return None
    return sticker_dir / path.name


def clear_image_set(path: Path, use_trash: bool = False) -> Path:
    """Recreate the empty image set that ``path`` belongs to."""
    set_path = image_set_path(path)
    if set_path.exists():
        try:
            remove_path(set_path, use_trash)
        except FileOperationError as exc:
            logger.error("Error deleting %s: %s", set_path, exc)
    try:
        ensure_directory(set_path)
        write_contents(ImageSetContents(), set_path)
    except (DescriptorError, FileOperationError) as exc:
        logger.error("Error in clear_image_set: %s", exc)
    return set_path


def insert_image_to_set(path: Path) -> Optional[Path]:
    set_path = image_set_path(path)
    try:
        contents = read_contents(ImageSetContents, set_path)
        contents.images.append(
            ImageSetImage(
                filename=path.name,
                idiom=UNIVERSAL_IDIOM,
                scale=scale_for_filename(path),
            )
        )
        write_contents(contents, set_path)
    except DescriptorError as exc:
        logger.error("Error in insert_image_to_set: %s", exc)
        return None
    return set_path / path.name


# -- packagers ---------------------------------------------------------------


class Packager:
    """No container: images are written straight into the destination."""

    package_type = PackageType.NONE

    def prepare(self, context: PackagingContext, units: Sequence[SourceUnit]) -> None:
        folder = context.folder
        _ensure(folder)
        if context.configuration.replace_existing:
            clear_directory(folder, context.use_trash)

    def insert(self, context: PackagingContext, dst_path: Path, first_for_source: bool) -> Optional[Path]:
        return dst_path


class StickerPackPackager(Packager):
    package_type = PackageType.STICKER_PACK

    def prepare(self, context: PackagingContext, units: Sequence[SourceUnit]) -> None:
        folder = context.folder
        if folder.suffix != STICKER_PACK_SUFFIX:
            raise PackagingError(f"{folder} is not a .stickerpack directory.")
        _ensure(folder)
        if not contents_path(folder).exists():
            _write_descriptor(StickerPackContents(), folder)
        elif context.configuration.replace_existing:
            clear_sticker_pack(folder, context.use_trash)
        set_sticker_pack_size(folder, context.configuration.preset.grid_size)

    def insert(self, context: PackagingContext, dst_path: Path, first_for_source: bool) -> Optional[Path]:
        return insert_sticker_to_pack(dst_path)


class ImageSetPackager(Packager):
    package_type = PackageType.IMAGE_SET

    def prepare(self, context: PackagingContext, units: Sequence[SourceUnit]) -> None:
        _ensure(context.folder)

    def insert(self, context: PackagingContext, dst_path: Path, first_for_source: bool) -> Optional[Path]:
        if first_for_source:
            clear_image_set(dst_path, context.use_trash)
        return insert_image_to_set(dst_path)


class CatalogPackager(ImageSetPackager):
    package_type = PackageType.CATALOG

    def prepare(self, context: PackagingContext, units: Sequence[SourceUnit]) -> None:
        folder = context.folder
        if folder.suffix != CATALOG_SUFFIX:
            raise PackagingError(f"{folder} is not a .xcassets directory.")
        _ensure(folder)
        if context.configuration.replace_existing:
            clear_catalog(context, folder)
        elif not contents_path(folder).exists():
            _write_descriptor(catalog_contents(context), folder)


class CatalogFolderPackager(ImageSetPackager):
    package_type = PackageType.CATALOG_FOLDER

    def prepare(self, context: PackagingContext, units: Sequence[SourceUnit]) -> None:
        base = context.segment.base_path
        if not any(part.endswith(CATALOG_SUFFIX) for part in base.parts):
            raise PackagingError(f"{base} is not in a .xcassets directory.")
        if context.segment.segmented:
            if context.configuration.replace_existing:
                clear_split_catalogs(base, context.use_trash)
            setup_catalog_folder_segment(context)
            return
        _ensure(base)
        if context.configuration.replace_existing:
            clear_catalog(context, base, is_folder=True)
        elif not contents_path(base).exists():
            _write_descriptor(catalog_contents(context, is_folder=True), base)


class IconPackager(Packager, ABC):
    """Icon containers render their own image ladder for each plan."""

    @abstractmethod
    def produce(self, context: PackagingContext, unit: SourceUnit, plan: Plan) -> int:
        """Write every image ``plan`` calls for; returns the largest size written."""


class IconSetPackager(IconPackager):
    """Icon sets are rewritten from the entries their descriptor already declares.

    A plain ``.iconset`` has no descriptor; it receives the fixed icon ladder.
    """

    package_type = PackageType.ICON_SET

    def prepare(self, context: PackagingContext, units: Sequence[SourceUnit]) -> None:
        folder = context.folder
        if folder.suffix not in ICON_SET_SUFFIXES:
            raise PackagingError(f"{folder} is not a .iconset, .appiconset, or .stickersiconset directory.")
        if len(units) != 1:
            raise PackagingError(f"Only 1 source image allowed when using iconset package. Found {len(units)}.")
        _ensure(folder)

    def produce(self, context: PackagingContext, unit: SourceUnit, plan: Plan) -> int:
        folder = context.folder
        if folder.suffix == GENERIC_ICON_SET_SUFFIX:
            return write_icon_ladder(context, unit.path, plan, folder)
        return self._rewrite_entries(context, unit, plan, folder)

    def _rewrite_entries(self, context: PackagingContext, unit: SourceUnit, plan: Plan, folder: Path) -> int:
        contents = read_contents(ImageSetContents, folder)
        decoded: Dict[Path, Optional[Image.Image]] = {}
        largest = 0

        for entry in contents.images:
            if entry.size is None:
                raise DescriptorError("Missing size.")
            if entry.scale is None:
                raise DescriptorError("Missing scale.")
            req_width, req_height = _parse_entry_size(entry.size)
            req_scale = _parse_entry_scale(entry.scale)
            needed_width = int(req_width * req_scale)
            needed_height = int(req_height * req_scale)

            if entry.filename:
                current = folder / entry.filename
                if current.is_file():
                    try:
                        remove_path(current, context.use_trash)
                        entry.filename = ""
                    except FileOperationError as exc:
                        logger.error("Error deleting %s: %s", current, exc)

            source = unit.path
            if unit.oval_path is not None and req_width != req_height:
                source = unit.oval_path

            if plan.required_suffix and not has_file_suffix(source, plan.required_suffix):
                logger.info("%s does not have the required suffix: %s", source, plan.required_suffix)
                continue
            if ImageFormat.for_path(source) is ImageFormat.UNCHANGED:
                logger.warning("%s has an unsupported source format.", source)
                continue

            dst_name = Path(source.name)
            if plan.output_format is not ImageFormat.UNCHANGED:
                dst_name = change_file_extension(dst_name, plan.output_format.value)
            dst_name = change_file_suffix(dst_name, "", f"-{entry.size}-{entry.scale}")

            if source not in decoded:
                decoded[source] = decode_image(source)
            image = decoded[source]
            if image is None or needed_width < 1 or needed_height < 1:
                continue

            rendered = scale_image(image, needed_width, needed_height, ScaleMode.FILL)
            size = write_artifact(context, folder / dst_name.name, rendered, ImageFormat.for_path(dst_name))
            largest = max(largest, size)
            entry.filename = dst_name.name

        write_contents(contents, folder)
        return largest


class IcnsPackager(IconPackager):
    package_type = PackageType.ICNS

    def prepare(self, context: PackagingContext, units: Sequence[SourceUnit]) -> None:
        destination = context.folder
        if destination.suffix != ICNS_SUFFIX:
            raise PackagingError(f"{destination} is not a .icns file.")
        if len(units) != 1 or units[0].oval_path is not None:
            raise PackagingError(f"Only 1 source image allowed when using icns package. Found {len(units)}.")
        _ensure(destination.parent)

    def produce(self, context: PackagingContext, unit: SourceUnit, plan: Plan) -> int:
        destination = context.folder
        scratch = destination.with_suffix(GENERIC_ICON_SET_SUFFIX)
        try:
            ensure_directory(scratch)
        except FileOperationError as exc:
            logger.error("Error creating %s: %s", scratch, exc)
            return 0

        # iconutil only accepts PNG members
        written = write_icon_ladder(context, unit.path, plan, scratch, force_format=ImageFormat.PNG)
        packed = written > 0 and pack_iconset(scratch, destination, context.icon_packer)

        try:
            remove_path(scratch)
        except FileOperationError as exc:
            logger.error("Error deleting %s: %s", scratch, exc)

        if not packed:
            return 0
        context.written.append(destination)
        return file_size(destination)


PACKAGERS: Dict[PackageType, Packager] = {
    PackageType.NONE: Packager(),
    PackageType.STICKER_PACK: StickerPackPackager(),
    PackageType.IMAGE_SET: ImageSetPackager(),
    PackageType.ICON_SET: IconSetPackager(),
    PackageType.ICNS: IcnsPackager(),
    PackageType.CATALOG: CatalogPackager(),
    PackageType.CATALOG_FOLDER: CatalogFolderPackager(),
}


def packager_for(package_type: PackageType) -> Packager:
    return PACKAGERS[package_type]


# -- shared helpers ------------------------------------------------------------


def write_artifact(context: PackagingContext, path: Path, image: Image.Image, fmt: ImageFormat) -> int:
    """Encode and write one image; returns bytes written, 0 after a logged failure."""
    try:
        data = encode_image(image, fmt)
    except ImageEncodeError as exc:
        logger.error("Issue writing image to %s: %s", path, exc)
        return 0
    return write_encoded(context, path, data)


def write_encoded(context: PackagingContext, path: Path, data: bytes) -> int:
    try:
        size = write_file(path, data)
    except FileOperationError as exc:
        logger.error("Issue writing image to %s: %s", path, exc)
        return 0
    context.written.append(path)
    return size


def write_icon_ladder(
    context: PackagingContext,
    source: Path,
    plan: Plan,
    folder: Path,
    force_format: Optional[ImageFormat] = None,
) -> int:
    """Fill-scale ``source`` into every rung of the icon ladder inside ``folder``."""
    if plan.required_suffix and not has_file_suffix(source, plan.required_suffix):
        logger.info("%s does not have the required suffix: %s", source, plan.required_suffix)
        return 0
    source_format = ImageFormat.for_path(source)
    if source_format is ImageFormat.UNCHANGED:
        logger.warning("%s has an unsupported source format.", source)
        return 0

    fmt = force_format or plan.output_format
    if fmt is ImageFormat.UNCHANGED:
        fmt = source_format

    image = decode_image(source)
    if image is None:
        return 0

    largest = 0
    for scale, box in ICON_LADDER:
        needed = box * scale
        rendered = scale_image(
            image,
            needed,
            needed,
            ScaleMode.FILL,
            background=context.configuration.background_color,
        )
        size = write_artifact(context, folder / iconset_filename(box, scale, fmt.value), rendered, fmt)
        largest = max(largest, size)
    return largest


def _parse_entry_size(value: str) -> Tuple[float, float]:
    width, _, height = value.partition("x")
    try:
        return float(width), float(height or width)
    except ValueError as exc:
        raise DescriptorError(f"Invalid size: {value}") from exc


def _parse_entry_scale(value: str) -> float:
    try:
        return float(value.rstrip("x"))
    except ValueError as exc:
        raise DescriptorError(f"Invalid scale: {value}") from exc


def _ensure(folder: Path) -> None:
    try:
        ensure_directory(folder)
    except FileOperationError as exc:
        raise PackagingError(str(exc)) from exc


def _write_descriptor(contents, folder: Path) -> None:
    try:
        write_contents(contents, folder)
    except DescriptorError as exc:
        raise PackagingError(str(exc)) from exc

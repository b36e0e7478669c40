from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from PIL import Image

from .config import AppConfig
from .configuration import Configuration, ValidationError
from .descriptors import DescriptorError
from .geometry import Size, aspect_fit, search_padding
from .imaging import ImageEncodeError, decode_image, encode_image, make_contact_sheet, scale_image
from .models import ImageFormat, PackageType, Plan, ProcessMode, SourceGroup, SourceUnit
from .naming import base_name, change_file_extension, change_file_suffix, has_file_suffix, mask_name
from .packaging import (
    IconPackager,
    Packager,
    PackagingContext,
    PackagingError,
    advance_segment_if_needed,
    packager_for,
    write_encoded,
)

logger = logging.getLogger(__name__)


class CollectionError(Exception):
    pass


@dataclass
class RunSummary:
    configurations: int = 0
    files_written: int = 0
    failed: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


@dataclass
class PlanOutcome:
    image: Image.Image
    size: int


def collect_files(configuration: Configuration, group: SourceGroup) -> List[Path]:
    """Source files for ``group`` in processing order.

    A directory is listed alphabetically and filtered by extension. When
    the manifest names files explicitly, every one of them has to exist and
    only those are used, in the manifest's order.
    """
    source = configuration.source_for(group)
    if source is None:
        return []

    if source.is_dir():
        directory = source
        try:
            available = sorted(entry.name for entry in source.iterdir() if entry.is_file())
        except OSError as exc:
            raise CollectionError(f"Unable to list {source}: {exc}") from exc
    elif source.is_file():
        directory = source.parent
        available = [source.name]
    else:
        raise CollectionError(f"Src directory does not exist: {source}")

    available = configuration.filter_by_extension(available)
    listed = configuration.listed_files(group)
    if not listed:
        return [directory / name for name in available]

    present = set(available)
    missing = [name for name in listed if name not in present]
    if missing:
        logger.error("Listed but not found in %s: %s", directory, ", ".join(missing))
        raise CollectionError("Src is missing files listed in manifest.")
    return [directory / name for name in listed]


def collect_units(configuration: Configuration) -> List[SourceUnit]:
    if configuration.oval_source_dir is not None and configuration.square_source_dir is not None:
        ovals = collect_files(configuration, SourceGroup.OVAL)
        squares = collect_files(configuration, SourceGroup.SQUARE)
        if len(ovals) != len(squares):
            raise CollectionError(
                f"Oval and square sources must pair up. Found {len(ovals)}/{len(squares)}."
            )
        if ovals:
            return [SourceUnit(path=square, oval_path=oval) for oval, square in zip(ovals, squares)]
        if configuration.source_dir is None:
            return []
    return [SourceUnit(path=path) for path in collect_files(configuration, SourceGroup.GENERAL)]


def target_size(source: Size, plan: Plan) -> Optional[Size]:
    """Pixel size ``plan`` asks for, or None to keep the source as it is."""
    if plan.scale:
        if plan.scale == 1:
            return None
        return Size(
            max(1, int(math.floor(source.width * plan.scale + 0.5))),
            max(1, int(math.floor(source.height * plan.scale + 0.5))),
        )
    if not plan.box_width and not plan.box_height:
        return None
    width = plan.box_width or plan.box_height
    height = plan.box_height or plan.box_width
    if plan.aspect_with_max_box:
        fitted = aspect_fit(source, Size(width, height))
        return Size(max(1, int(fitted.width)), max(1, int(fitted.height)))
    return Size(width, height)


def destination_name(source: Path, plan: Plan, mode: ProcessMode) -> Path:
    name = Path(source.name)
    if plan.output_format is not ImageFormat.UNCHANGED:
        name = change_file_extension(name, plan.output_format.value)
    if plan.renames:
        name = change_file_suffix(name, plan.remove_suffix or "", plan.add_suffix or "")
    if mode is ProcessMode.MASK:
        name = change_file_extension(mask_name(name), ImageFormat.PNG.value)
    return name


def write_out_manifest(path: Path, names: Iterable[str]) -> bool:
    try:
        path.write_text(json.dumps(list(names), indent=2) + "\n", encoding="utf-8")
    except OSError as exc:
        logger.error("Error writing out manifest %s: %s", path, exc)
        return False
    return True


class ImagePipeline:
    def __init__(self, app_config: AppConfig):
        self.app_config = app_config
        self._decoded: Dict[Path, Optional[Image.Image]] = {}

    def run(self, configurations: Iterable[Configuration]) -> RunSummary:
        summary = RunSummary()
        for configuration in configurations:
            summary.configurations += 1
            try:
                summary.files_written += self.process_configuration(configuration)
            except (ValidationError, CollectionError, PackagingError, DescriptorError) as exc:
                logger.error("Configuration %s aborted: %s", configuration.name, exc)
                summary.failed.append(configuration.name)
        logger.info(
            "Done. %d configuration(s), %d failed, %d file(s) written.",
            summary.configurations,
            len(summary.failed),
            summary.files_written,
        )
        return summary

    def process_configuration(self, configuration: Configuration) -> int:
        configuration.validate()
        units = collect_units(configuration)
        context = PackagingContext.for_configuration(
            configuration,
            use_trash=self.app_config.use_trash,
            icon_packer=self.app_config.icon_packer,
        )
        packager = packager_for(configuration.output_package)
        packager.prepare(context, units)

        logger.info("Processing %d image(s) into %s", len(units), configuration.destination)
        names: List[str] = []
        for unit in units:
            advance_segment_if_needed(context)
            try:
                self.process_unit(context, packager, unit)
            finally:
                self._decoded.clear()
            names.append(base_name(unit.path))

        if configuration.contact_sheet_path is not None and context.contact_images is not None:
            make_contact_sheet(context.contact_images, configuration.contact_sheet_path)
        if configuration.out_manifest_path is not None:
            write_out_manifest(configuration.out_manifest_path, names)
        return len(context.written)

    def process_unit(self, context: PackagingContext, packager: Packager, unit: SourceUnit) -> None:
        logger.info("Processing: %s", unit.path.name)
        configuration = context.configuration

        if isinstance(packager, IconPackager):
            largest = 0
            for plan in configuration.plans:
                largest = max(largest, packager.produce(context, unit, plan))
            context.segment.record(largest)
            return

        modes = [ProcessMode.NORMAL]
        if configuration.masks_too:
            modes.append(ProcessMode.MASK)

        contact_stored = False
        for mode in modes:
            first_for_source = True
            largest = 0
            for plan in configuration.plans:
                outcome = self.process_plan(context, packager, unit.path, plan, mode, first_for_source)
                if outcome is None:
                    continue
                first_for_source = False
                largest = max(largest, outcome.size)
                if not contact_stored and context.contact_images is not None:
                    context.contact_images.append(outcome.image)
                    contact_stored = True
            # the pass adds its largest artifact, not the sum of all of them
            context.segment.record(largest)

    def process_plan(
        self,
        context: PackagingContext,
        packager: Packager,
        source: Path,
        plan: Plan,
        mode: ProcessMode,
        first_for_source: bool,
    ) -> Optional[PlanOutcome]:
        if plan.required_suffix and not has_file_suffix(source, plan.required_suffix):
            logger.info("%s does not have the required suffix: %s", source.name, plan.required_suffix)
            return None
        if ImageFormat.for_path(source) is ImageFormat.UNCHANGED:
            logger.warning("%s has an unsupported source format.", source)
            return None

        dst_name = destination_name(source, plan, mode)
        dst_format = ImageFormat.for_path(dst_name)
        if dst_format is ImageFormat.UNCHANGED:
            logger.warning("%s has an unsupported destination format.", dst_name)
            return None

        image = self._decode(source)
        if image is None:
            return None

        target = target_size(Size(*image.size), plan)
        background = context.configuration.background_color

        def render(padding: float) -> Image.Image:
            return self._render(image, target, mode, padding, background)

        def encode(rendered: Image.Image) -> bytes:
            return encode_image(rendered, dst_format)

        try:
            if packager.package_type is PackageType.STICKER_PACK:
                result = search_padding(
                    render,
                    encode,
                    size_limit=self.app_config.sticker_size_limit,
                    step=self.app_config.padding_step,
                    max_padding=self.app_config.max_padding,
                )
                rendered, data = result.image, result.data
            else:
                rendered = render(0.0)
                data = encode(rendered)
        except ImageEncodeError as exc:
            logger.error("Issue writing image %s: %s", dst_name, exc)
            return None

        dst_path = packager.insert(context, context.folder / dst_name.name, first_for_source)
        if dst_path is None:
            return PlanOutcome(image=rendered, size=0)
        size = write_encoded(context, dst_path, data)
        logger.debug("Wrote %s (%d bytes)", dst_path, size)
        return PlanOutcome(image=rendered, size=size)

    def _decode(self, path: Path) -> Optional[Image.Image]:
        if path not in self._decoded:
            self._decoded[path] = decode_image(path)
        return self._decoded[path]

    @staticmethod
    def _render(image, target, mode, padding, background):
        if target is None:
            if mode is ProcessMode.NORMAL and not padding:
                return image
            target = Size(*image.size)
        return scale_image(
            image,
            int(target.width),
            int(target.height),
            process_mode=mode,
            padding=padding,
            background=background,
        )

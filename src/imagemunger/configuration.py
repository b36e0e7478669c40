from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models import ImageFormat, PackageType, Plan, Preset, SourceGroup
from .plans import generate_plans
from .settings import _coerce_bool, _coerce_float, _coerce_int, _coerce_str

logger = logging.getLogger(__name__)

DEFAULT_VALID_EXTENSIONS = ("jpg", "png", "gif", "tif")
MANIFEST_RELATIVE_PREFIX = "~~/"
OUTPUT_RELATIVE_PREFIX = "~~~/"

CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


class ValidationError(Exception):
    pass


def normalize_key(key: str) -> str:
    """``maxWidthPx`` / ``max_width_px`` / ``max-width-px`` -> ``max-width-px``."""
    return CAMEL_BOUNDARY.sub("-", key).replace("_", "-").lower()


def resolve_path(value: str, manifest_path: Optional[Path], output_dir: Path) -> Path:
    if value.startswith(OUTPUT_RELATIVE_PREFIX):
        return output_dir / value[len(OUTPUT_RELATIVE_PREFIX):]
    if value.startswith(MANIFEST_RELATIVE_PREFIX):
        base = manifest_path.parent if manifest_path is not None else output_dir
        return base / value[len(MANIFEST_RELATIVE_PREFIX):]
    return Path(value).expanduser()


def parse_color(value: str) -> Optional[Tuple[int, int, int, int]]:
    """``red:green:blue`` or ``red:green:blue:alpha`` with components in 0-255."""
    parts = [part.strip() for part in value.split(":")]
    if len(parts) not in (3, 4):
        return None
    try:
        components = [int(part) for part in parts]
    except ValueError:
        return None
    if any(component < 0 or component > 255 for component in components):
        return None
    if len(components) == 3:
        components.append(255)
    return (components[0], components[1], components[2], components[3])


@dataclass
class Configuration:
    manifest_path: Optional[Path] = None
    source_dir: Optional[Path] = None
    oval_source_dir: Optional[Path] = None
    square_source_dir: Optional[Path] = None
    destination: Optional[Path] = None
    preset: Preset = Preset.NONE
    output_format: ImageFormat = ImageFormat.UNCHANGED
    output_package: PackageType = PackageType.NONE
    replace_existing: bool = False
    scale: float = 0.0
    max_width: int = 0
    max_height: int = 0
    catalog_folder_max_size: int = 0
    catalog_folder_tag: Optional[str] = None
    catalog_folder_provides_namespace: bool = False
    background_color: Optional[Tuple[int, int, int, int]] = None
    masks_too: bool = False
    valid_extensions: Tuple[str, ...] = DEFAULT_VALID_EXTENSIONS
    out_manifest_path: Optional[Path] = None
    contact_sheet_path: Optional[Path] = None
    files: List[str] = field(default_factory=list)
    oval_files: List[str] = field(default_factory=list)
    square_files: List[str] = field(default_factory=list)

    @cached_property
    def plans(self) -> List[Plan]:
        return generate_plans(self)

    @property
    def name(self) -> str:
        if self.destination is not None:
            return self.destination.name
        return "<no destination>"

    def source_for(self, group: SourceGroup) -> Optional[Path]:
        if group is SourceGroup.GENERAL:
            return self.source_dir
        if group is SourceGroup.OVAL:
            return self.oval_source_dir
        return self.square_source_dir

    def listed_files(self, group: SourceGroup) -> List[str]:
        if group is SourceGroup.GENERAL:
            return self.files
        if group is SourceGroup.OVAL:
            return self.oval_files
        return self.square_files

    def filter_by_extension(self, names: Iterable[str]) -> List[str]:
        allowed = {ext.lower() for ext in self.valid_extensions}
        return [name for name in names if Path(name).suffix.lower().lstrip(".") in allowed]

    def validate(self) -> None:
        if self.source_dir is None and (
            self.oval_source_dir is None or self.square_source_dir is None
        ):
            raise ValidationError("Missing src.")
        if self.destination is None:
            raise ValidationError("Missing dst.")
        if self.scale != 0 and (self.max_width != 0 or self.max_height != 0):
            raise ValidationError("Can not specify scale and max-width / max-height.")

    @classmethod
    def from_settings(
        cls,
        settings: Dict[str, Any],
        files: Optional[List[str]] = None,
        manifest_path: Optional[Path] = None,
        output_dir: Optional[Path] = None,
    ) -> "Configuration":
        output = Path(output_dir) if output_dir is not None else Path.cwd()
        config = cls(manifest_path=manifest_path, files=list(files or []))

        for raw_key, raw_value in settings.items():
            key = normalize_key(str(raw_key))
            if raw_value is None:
                continue
            if key == "files":
                config.files = _string_list(raw_value)
                continue
            if key in ("oval-files", "square-files"):
                setattr(config, key.replace("-", "_"), _string_list(raw_value))
                continue

            value = raw_value if isinstance(raw_value, str) else str(raw_value)
            text = value.strip()
            if not text:
                continue

            if key == "src":
                config.source_dir = resolve_path(text, manifest_path, output)
            elif key == "src-oval":
                config.oval_source_dir = resolve_path(text, manifest_path, output)
            elif key == "src-square":
                config.square_source_dir = resolve_path(text, manifest_path, output)
            elif key == "dst":
                config.destination = resolve_path(text, manifest_path, output)
            elif key == "out-manifest":
                config.out_manifest_path = resolve_path(text, manifest_path, output)
            elif key == "out-contact-sheet":
                config.contact_sheet_path = resolve_path(text, manifest_path, output)
            elif key == "preset":
                config.preset = _enum_value(Preset, text, config.preset, key)
            elif key == "out-format":
                config.output_format = _enum_value(ImageFormat, text.lower(), config.output_format, key)
            elif key == "out-package":
                config.output_package = _enum_value(PackageType, text.lower(), config.output_package, key)
            elif key == "out-package-replace":
                config.replace_existing = bool(_coerce_bool(raw_value))
            elif key == "masks-too":
                config.masks_too = bool(_coerce_bool(raw_value))
            elif key == "scale":
                config.scale = _coerce_float(raw_value) or 0.0
            elif key == "max-px":
                config.max_width = _coerce_int(raw_value) or 0
                config.max_height = config.max_width
            elif key == "max-width-px":
                config.max_width = _coerce_int(raw_value) or 0
            elif key == "max-height-px":
                config.max_height = _coerce_int(raw_value) or 0
            elif key == "catalog-folder-max-size":
                config.catalog_folder_max_size = _coerce_int(raw_value) or 0
            elif key == "catalog-folder-tag":
                config.catalog_folder_tag = _coerce_str(value)
            elif key == "catalog-folder-namespace":
                config.catalog_folder_provides_namespace = bool(_coerce_bool(raw_value))
            elif key == "background-color":
                color = parse_color(text)
                if color is None:
                    logger.warning("Ignoring invalid background-color: %s", text)
                config.background_color = color
            elif key == "valid-format":
                extensions = tuple(part.strip().lower() for part in text.split(":") if part.strip())
                config.valid_extensions = extensions or DEFAULT_VALID_EXTENSIONS
            else:
                logger.warning("Unknown manifest setting ignored: %s", raw_key)

        return config


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value if item is not None]


def _enum_value(enum_cls, text: str, default, key: str):
    try:
        return enum_cls(text)
    except ValueError:
        logger.warning("Unknown %s value %r; keeping %s", key, text, default.value)
        return default

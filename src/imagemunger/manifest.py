"""YAML manifest reading and the annotated sample manifest."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

from .configuration import Configuration

logger = logging.getLogger(__name__)

ManifestEntry = Tuple[Dict[str, Any], List[str]]

SAMPLE_MANIFEST: Dict[str, Any] = {
    "backgroundColor": "custom background color (0-255) red:green:blue or red:green:blue:alpha",
    "catalogFolderNamespace": "true | false",
    "catalogFolderTag": "catalog folder tag",
    "catalogFolderMaxSize": "maximum size of catalog folder in bytes",
    "dst": "directory to write images to",
    "files": [
        "ordered list of files to load, only listed files will be used instead of all if omitted"
    ],
    "masksToo": "output images masks along side the images (true | false)",
    "maxHeightPx": "max output image height (fit in rectangle)",
    "maxPx": "max output image width or height (fit in square)",
    "maxWidthPx": "max output image width (fit in rectangle)",
    "outContactSheet": "output a contact sheet file at this path",
    "outFormat": "output image format (unchanged, jpg, png, gif, tif)",
    "outManifest": "output a manifest file at this path",
    "outPackage": "output package format (none, stickerpack, imageset, iconset, icns, catalog, catalogfolder)",
    "outPackageReplace": "replace existing package contents (true | false)",
    "preset": (
        "preset to use (none, smallSticker, mediumSticker, largeSticker, thumb256, imageSet, "
        "stickerImageSet1, stickerImageSet2, stickerImageSet3, stickerImageSet12, "
        "stickerImageSet13, stickerImageSet23, stickerImageSet123, stickerImageFiles1, "
        "stickerImageFiles2, stickerImageFiles3, stickerImageFiles12, stickerImageFiles13, "
        "stickerImageFiles23, stickerImageFiles123)"
    ),
    "scale": "image scale (1.0, 2.0, 3.0)",
    "src": (
        "path to source folder; ~~/ == relative to manifest file directory; "
        "~~~/ == relative to output directory (defaults to directory tool is run from)"
    ),
    "srcOval": "alternate to src for files meant to oval outputs",
    "srcSquare": "alternate to src for files meant to square outputs",
    "validFormat": (
        "colon separated list of valid file extensions (without period); "
        "default is jpg:png:gif:tif"
    ),
}


class ManifestError(Exception):
    pass


def read_manifest(path: Path) -> List[ManifestEntry]:
    """Each YAML document in ``path`` becomes one ``(settings, files)`` entry."""
    path = Path(path)
    if not path.exists():
        raise ManifestError(f"Manifest does not exist: {path}")

    try:
        with path.open("r", encoding="utf-8") as handle:
            documents = list(yaml.safe_load_all(handle))
    except yaml.YAMLError as exc:
        raise ManifestError(f"Invalid YAML in {path}: {exc}") from exc
    except OSError as exc:
        raise ManifestError(f"Failed to read {path}: {exc}") from exc

    entries: List[ManifestEntry] = []
    for index, document in enumerate(documents):
        # an empty document (e.g. a trailing ---) carries no configuration
        if document is None:
            continue
        if not isinstance(document, dict):
            raise ManifestError(f"Document {index + 1} in {path} is not a mapping.")
        settings = dict(document)
        files = settings.pop("files", None) or []
        if isinstance(files, str):
            files = [files]
        if not isinstance(files, list):
            raise ManifestError(f"'files' in document {index + 1} of {path} must be a list.")
        entries.append((settings, [str(item) for item in files if item is not None]))
    return entries


def load_configurations(
    paths: Iterable[Path],
    output_dir: Optional[Path] = None,
) -> List[Configuration]:
    configurations: List[Configuration] = []
    manifest_count = 0
    for raw_path in paths:
        manifest_path = Path(raw_path).expanduser().resolve()
        manifest_count += 1
        for settings, files in read_manifest(manifest_path):
            configurations.append(
                Configuration.from_settings(
                    settings,
                    files=files,
                    manifest_path=manifest_path,
                    output_dir=output_dir,
                )
            )
    logger.info(
        "Read %d configuration(s) from %d manifest file(s).",
        len(configurations),
        manifest_count,
    )
    return configurations


def write_sample(path: Path) -> Path:
    path = Path(path).expanduser()
    text = yaml.safe_dump(SAMPLE_MANIFEST, default_flow_style=False, sort_keys=False, width=1000)
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"Failed to write sample manifest {path}: {exc}") from exc
    logger.info("Sample manifest written to %s", path)
    return path

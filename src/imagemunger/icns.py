"""Icon ladders and .icns packing, either built in or through ``iconutil``."""
from __future__ import annotations

import io
import logging
import struct
import subprocess
from pathlib import Path
from typing import Dict, List, Tuple

from PIL import Image

from .config import BUILTIN_ICON_PACKER

logger = logging.getLogger(__name__)

ICON_LADDER: List[Tuple[int, int]] = [
    (1, 16),
    (2, 16),
    (1, 32),
    (2, 32),
    (1, 128),
    (2, 128),
    (1, 256),
    (2, 256),
    (1, 512),
    (2, 512),
]

# (box, scale) -> icns chunk type
ICON_TYPES: Dict[Tuple[int, int], str] = {
    (16, 1): "icp4",
    (16, 2): "ic11",
    (32, 1): "icp5",
    (32, 2): "ic12",
    (128, 1): "ic07",
    (128, 2): "ic13",
    (256, 1): "ic08",
    (256, 2): "ic14",
    (512, 1): "ic09",
    (512, 2): "ic10",
}


class IcnsPackError(Exception):
    pass


def iconset_filename(box: int, scale: int, extension: str) -> str:
    name = f"icon_{box}x{box}"
    if scale == 2:
        name += "@2x"
    return f"{name}.{extension}"


def _parse_iconset_name(path: Path) -> Tuple[int, int]:
    stem = path.stem
    scale = 1
    if stem.endswith("@2x"):
        scale = 2
        stem = stem[:-3]
    if not stem.startswith("icon_"):
        raise IcnsPackError(f"Unexpected file in iconset: {path.name}")
    try:
        width, _, height = stem[len("icon_"):].partition("x")
        box = int(width)
        if int(height) != box:
            raise ValueError(stem)
    except ValueError as exc:
        raise IcnsPackError(f"Unexpected file in iconset: {path.name}") from exc
    return box, scale


def encode_chunk(tag: str, image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    payload = buffer.getvalue()
    header = tag.encode("ascii") + struct.pack(">I", len(payload) + 8)
    return header + payload


def build_icns(iconset_dir: Path, destination: Path) -> int:
    """Assemble ``destination`` from the images in ``iconset_dir``; returns bytes written."""
    chunks: List[bytes] = []
    for path in sorted(iconset_dir.iterdir()):
        if path.name.startswith("."):
            continue
        box, scale = _parse_iconset_name(path)
        tag = ICON_TYPES.get((box, scale))
        if tag is None:
            logger.warning("No icns slot for %s; skipped.", path.name)
            continue
        try:
            with Image.open(path) as image:
                chunks.append(encode_chunk(tag, image.convert("RGBA")))
        except OSError as exc:
            raise IcnsPackError(f"Failed to read {path}: {exc}") from exc

    if not chunks:
        raise IcnsPackError(f"No icon images found in {iconset_dir}")

    body = b"".join(chunks)
    icns_header = b"icns" + struct.pack(">I", len(body) + 8)
    data = icns_header + body
    try:
        destination.write_bytes(data)
    except OSError as exc:
        raise IcnsPackError(f"Failed to write {destination}: {exc}") from exc
    return len(data)


def pack_iconset(iconset_dir: Path, destination: Path, tool: str) -> bool:
    if tool == BUILTIN_ICON_PACKER:
        try:
            size = build_icns(iconset_dir, destination)
        except IcnsPackError as exc:
            logger.error("icns packing failed: %s", exc)
            return False
        logger.info("ICNS written to %s (%d bytes)", destination, size)
        return True

    try:
        result = subprocess.run(
            [tool, "--convert", "icns", "--output", str(destination), str(iconset_dir)],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        logger.error("Unable to run %s: %s", tool, exc)
        return False

    if result.returncode != 0:
        logger.error(
            "%s exited with status %d: %s",
            tool,
            result.returncode,
            (result.stderr or result.stdout).strip(),
        )
        return False
    logger.info("ICNS written to %s", destination)
    return True

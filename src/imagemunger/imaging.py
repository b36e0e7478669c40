"""Pillow-backed decode, resample and encode helpers."""

from __future__ import annotations

import io
import logging
import math
from pathlib import Path
from typing import Optional, Sequence, Tuple

from PIL import Image, ImageDraw

from .geometry import Rect, Size, aspect_fit_rect, fill, fill_size, padded_box, rect_remainder
from .models import ImageFormat, ProcessMode, ScaleMode

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int, int]

CONTACT_CELL = 160
CONTACT_MIN_WIDTH = 640
CONTACT_MIN_HEIGHT = 920
CONTACT_BACKGROUND = (55, 55, 55, 255)


class ImageEncodeError(Exception):
    pass


def decode_image(path: Path) -> Optional[Image.Image]:
    try:
        with Image.open(path) as opened:
            opened.load()
            image = opened.convert("RGBA") if opened.mode != "RGBA" else opened.copy()
    except (OSError, ValueError) as exc:
        logger.error("Failed to load image %s: %s", path, exc)
        return None
    return image


def _box(rect: Rect) -> Tuple[int, int, int, int]:
    return (
        int(rect.x),
        int(rect.y),
        int(rect.x + rect.width) - 1,
        int(rect.y + rect.height) - 1,
    )


def _fit_into(image: Image.Image, frame: Rect, scale_mode: ScaleMode) -> Tuple[Image.Image, Rect]:
    src = Size(*image.size)
    if scale_mode is ScaleMode.FILL:
        scaled = fill_size(src, frame.size)
        crop = fill(src, frame.size)
        resized = image.resize((max(1, int(scaled.width)), max(1, int(scaled.height))), Image.LANCZOS)
        cropped = resized.crop(
            (int(crop.x), int(crop.y), int(crop.x + crop.width), int(crop.y + crop.height))
        )
        return cropped, Rect(frame.x, frame.y, crop.width, crop.height)

    placed = aspect_fit_rect(src, frame)
    width = max(1, int(placed.width))
    height = max(1, int(placed.height))
    placed = Rect(placed.x, placed.y, width, height)
    return image.resize((width, height), Image.LANCZOS), placed


def scale_image(
    image: Image.Image,
    width: int,
    height: int,
    scale_mode: ScaleMode = ScaleMode.ASPECT_FIT,
    process_mode: ProcessMode = ProcessMode.NORMAL,
    padding: float = 0.0,
    background: Optional[Color] = None,
) -> Image.Image:
    """Render ``image`` onto a ``width`` x ``height`` canvas.

    Normal mode places the scaled image over a transparent canvas, matted
    with ``background`` inside the target box when given. Mask mode
    produces a grayscale image: white where the source is opaque, black
    everywhere else.
    """
    frame = padded_box(width, height, padding)
    scaled, placed = _fit_into(image.convert("RGBA"), frame, scale_mode)

    if process_mode is ProcessMode.MASK:
        canvas = Image.new("L", (width, height), 0)
        draw = ImageDraw.Draw(canvas)
        draw.rectangle(_box(frame), fill=255)
        # white painted through the source alpha
        canvas.paste(scaled.getchannel("A"), (int(placed.x), int(placed.y)))
        for rect in rect_remainder(frame, placed):
            draw.rectangle(_box(rect), fill=0)
        return canvas

    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    if background is not None:
        ImageDraw.Draw(canvas).rectangle(_box(frame), fill=background)
    canvas.alpha_composite(scaled, (int(placed.x), int(placed.y)))
    return canvas


def encode_image(image: Image.Image, fmt: ImageFormat) -> bytes:
    codec = fmt.pillow_format
    if codec is None:
        raise ImageEncodeError(f"Unsupported output format: {fmt.value}")

    prepared = image
    if codec == "JPEG" and image.mode not in ("RGB", "L"):
        prepared = image.convert("RGB")
    elif codec == "GIF" and image.mode == "RGBA":
        prepared = image.convert("P", palette=Image.Palette.ADAPTIVE)

    buffer = io.BytesIO()
    try:
        prepared.save(buffer, format=codec)
    except (OSError, ValueError) as exc:
        raise ImageEncodeError(f"Failed to encode {codec}: {exc}") from exc
    return buffer.getvalue()


def make_contact_sheet(images: Sequence[Image.Image], path: Path) -> bool:
    count = len(images)
    if count == 0:
        logger.info("No images collected; contact sheet skipped.")
        return False

    columns = int(math.ceil(math.sqrt(count * 2.0 / 3.0)))
    width = max(columns * CONTACT_CELL, CONTACT_MIN_WIDTH)
    columns = width // CONTACT_CELL
    rows = int(math.ceil(count / columns))
    height = max(rows * CONTACT_CELL, CONTACT_MIN_HEIGHT)

    sheet = Image.new("RGBA", (width, height), CONTACT_BACKGROUND)
    for idx, image in enumerate(images):
        cell = Rect((idx % columns) * CONTACT_CELL, (idx // columns) * CONTACT_CELL, CONTACT_CELL, CONTACT_CELL)
        thumb, placed = _fit_into(image.convert("RGBA"), cell, ScaleMode.ASPECT_FIT)
        sheet.alpha_composite(thumb, (int(placed.x), int(placed.y)))

    fmt = ImageFormat.for_path(path)
    if fmt is ImageFormat.UNCHANGED:
        fmt = ImageFormat.PNG
    try:
        Path(path).write_bytes(encode_image(sheet, fmt))
    except (OSError, ImageEncodeError) as exc:
        logger.error("Issue writing contact sheet to %s: %s", path, exc)
        return False
    logger.info("Contact sheet with %d image(s) written to %s", count, path)
    return True

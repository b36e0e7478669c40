"""Placement math for resized artifacts.

All functions here are pure. Sizes and rectangles use pixel units; a
rectangle's origin is its minimum corner on both axes.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, List, NamedTuple

logger = logging.getLogger(__name__)

STICKER_SIZE_LIMIT = 500_000
PADDING_STEP = 0.01
MAX_PADDING = 0.5


class Size(NamedTuple):
    width: float
    height: float


class Rect(NamedTuple):
    x: float
    y: float
    width: float
    height: float

    @property
    def min_x(self) -> float:
        return self.x

    @property
    def min_y(self) -> float:
        return self.y

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    @property
    def area(self) -> float:
        return self.width * self.height


def aspect_fit(src: Size, dst: Size) -> Size:
    """Largest size with the aspect ratio of ``src`` that fits inside ``dst``."""
    width = dst.width
    height = math.floor(src.height / src.width * width)
    if height > dst.height:
        height = dst.height
        width = math.floor(src.width / src.height * height)
    return Size(width, height)


def aspect_fit_rect(src: Size, dst: Rect) -> Rect:
    """Aspect-fit ``src`` into ``dst`` and centre the result inside it."""
    fitted = aspect_fit(src, dst.size)
    x = dst.x + math.floor((dst.width - fitted.width) / 2)
    y = dst.y + math.floor((dst.height - fitted.height) / 2)
    return Rect(x, y, fitted.width, fitted.height)


def fill_size(src: Size, dst: Size) -> Size:
    """Smallest size with the aspect ratio of ``src`` that covers ``dst``."""
    width = dst.width
    height = math.floor(src.height / src.width * width)
    if height < dst.height:
        height = dst.height
        width = math.floor(src.width / src.height * height)
    return Size(width, height)


def fill(src: Size, dst: Size) -> Rect:
    """Crop window of size ``dst`` centred inside ``src`` scaled by :func:`fill_size`.

    The returned origin is expressed in scaled-source coordinates.
    """
    scaled = fill_size(src, dst)
    x = math.trunc((scaled.width - dst.width) / 2)
    y = math.trunc((scaled.height - dst.height) / 2)
    return Rect(x, y, dst.width, dst.height)


def _divide(rect: Rect, amount: float, edge: str) -> "tuple[Rect, Rect]":
    if edge == "min_x":
        return (
            Rect(rect.x, rect.y, amount, rect.height),
            Rect(rect.x + amount, rect.y, rect.width - amount, rect.height),
        )
    if edge == "max_x":
        return (
            Rect(rect.max_x - amount, rect.y, amount, rect.height),
            Rect(rect.x, rect.y, rect.width - amount, rect.height),
        )
    if edge == "min_y":
        return (
            Rect(rect.x, rect.y, rect.width, amount),
            Rect(rect.x, rect.y + amount, rect.width, rect.height - amount),
        )
    return (
        Rect(rect.x, rect.max_y - amount, rect.width, amount),
        Rect(rect.x, rect.y, rect.width, rect.height - amount),
    )


def rect_remainder(outer: Rect, used: Rect) -> List[Rect]:
    """Strips of ``outer`` not covered by ``used``.

    Slices are cut successively (left, right, bottom, top) so the strips
    never overlap each other or ``used``.
    """
    remainders: List[Rect] = []
    rest = outer
    cuts = (
        ("min_x", used.min_x - rest.min_x),
        ("max_x", rest.max_x - used.max_x),
        ("min_y", used.min_y - rest.min_y),
        ("max_y", rest.max_y - used.max_y),
    )
    for edge, amount in cuts:
        if amount <= 0:
            continue
        slice_, rest = _divide(rest, amount, edge)
        remainders.append(slice_)
    return remainders


def padded_box(width: int, height: int, padding: float) -> Rect:
    """Target box of ``width`` x ``height`` inset by ``padding`` of each axis."""
    if padding <= 0:
        return Rect(0, 0, width, height)
    inset_x = math.floor(round(width * padding, 6))
    inset_y = math.floor(round(height * padding, 6))
    inner_width = max(1, width - 2 * inset_x)
    inner_height = max(1, height - 2 * inset_y)
    return Rect(
        min(inset_x, width - inner_width),
        min(inset_y, height - inner_height),
        inner_width,
        inner_height,
    )


@dataclass
class PaddingResult:
    image: Any
    data: bytes
    padding: float
    attempts: int

    @property
    def size(self) -> int:
        return len(self.data)


def search_padding(
    render: Callable[[float], Any],
    encode: Callable[[Any], bytes],
    size_limit: int = STICKER_SIZE_LIMIT,
    step: float = PADDING_STEP,
    max_padding: float = MAX_PADDING,
) -> PaddingResult:
    """Grow the inset padding until the encoded image fits ``size_limit``.

    ``render`` produces an image for a padding fraction and ``encode`` turns
    it into bytes; nothing is written to disk. The last attempt is accepted
    once the next padding would exceed ``max_padding``.
    """
    attempt = 0
    padding = 0.0
    image = render(padding)
    data = encode(image)
    while len(data) > size_limit:
        next_padding = round((attempt + 1) * step, 6)
        if next_padding > max_padding + 1e-9:
            logger.warning(
                "Still %d bytes at padding %.2f; accepting oversized result.",
                len(data),
                padding,
            )
            break
        logger.info(
            "Encoded size %d exceeds %d bytes; retrying with padding %.2f",
            len(data),
            size_limit,
            next_padding,
        )
        attempt += 1
        padding = next_padding
        image = render(padding)
        data = encode(image)
    return PaddingResult(image=image, data=data, padding=padding, attempts=attempt + 1)

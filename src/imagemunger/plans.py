"""Preset expansion into ordered resize plans."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List

from .models import ImageFormat, ImageScale, Plan, Preset

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .configuration import Configuration

STICKER_BOXES: Dict[Preset, int] = {
    Preset.SMALL_STICKER: 300,
    Preset.MEDIUM_STICKER: 408,
    Preset.LARGE_STICKER: 618,
}
THUMB_BOX = 256
STICKER_SUFFIX = "@3x"

# box edge for each density of the sticker image presets
STICKER_IMAGE_BOXES: Dict[ImageScale, int] = {
    ImageScale.ONE_X: 206,
    ImageScale.TWO_X: 412,
    ImageScale.THREE_X: 618,
}
IMAGE_SET_SUFFIXES: Dict[ImageScale, str] = {
    ImageScale.ONE_X: "",
    ImageScale.TWO_X: "@2x",
    ImageScale.THREE_X: "@3x",
}
IMAGE_FILES_SUFFIXES: Dict[ImageScale, str] = {
    ImageScale.ONE_X: "@1x",
    ImageScale.TWO_X: "@2x",
    ImageScale.THREE_X: "@3x",
}
PLACEHOLDER_BOX = 1


def generate_plans(configuration: "Configuration") -> List[Plan]:
    preset = configuration.preset
    if preset is Preset.NONE:
        return _none_plans(configuration)
    if preset in STICKER_BOXES:
        return _sticker_plans(configuration, STICKER_BOXES[preset])
    if preset is Preset.THUMB_256:
        return _thumb_plans(configuration)
    if preset is Preset.IMAGE_SET:
        return _image_set_plans(configuration)
    if preset.is_sticker_image_set:
        return _sticker_image_set_plans(configuration, preset)
    return _sticker_image_files_plans(configuration, preset)


def _none_plans(configuration: "Configuration") -> List[Plan]:
    return [
        Plan(
            scale=configuration.scale,
            box_width=configuration.max_width,
            box_height=configuration.max_height,
            output_format=configuration.output_format,
            output_package=configuration.output_package,
        )
    ]


def _sticker_plans(configuration: "Configuration", box: int) -> List[Plan]:
    return [
        Plan(
            box_width=box,
            box_height=box,
            aspect_with_max_box=True,
            output_format=ImageFormat.PNG,
            output_package=configuration.output_package,
            add_suffix=STICKER_SUFFIX,
        )
    ]


def _thumb_plans(configuration: "Configuration") -> List[Plan]:
    return [
        Plan(
            box_width=THUMB_BOX,
            box_height=THUMB_BOX,
            aspect_with_max_box=True,
            output_format=configuration.output_format,
            output_package=configuration.output_package,
        )
    ]


def _image_set_plans(configuration: "Configuration") -> List[Plan]:
    """@1x, @2x and @3x variants derived from a full-resolution @3x source."""
    renames = [
        ("@3x", ""),
        ("@3x", "@2x"),
        (None, None),
    ]
    plans = []
    for step, (remove_suffix, add_suffix) in enumerate(renames, start=1):
        if configuration.max_width or configuration.max_height:
            plans.append(
                Plan(
                    box_width=_third(configuration.max_width, step),
                    box_height=_third(configuration.max_height, step),
                    aspect_with_max_box=True,
                    output_format=configuration.output_format,
                    output_package=configuration.output_package,
                    required_suffix="@3x",
                    remove_suffix=remove_suffix,
                    add_suffix=add_suffix,
                )
            )
            continue
        base_scale = configuration.scale or 1.0
        plans.append(
            Plan(
                scale=base_scale * step / 3.0,
                output_format=configuration.output_format,
                output_package=configuration.output_package,
                required_suffix="@3x",
                remove_suffix=remove_suffix,
                add_suffix=add_suffix,
            )
        )
    return plans


def _third(value: int, step: int) -> int:
    if value == 0:
        return 0
    return max(1, int(value * step / 3.0 + 0.5))


def _sticker_image_set_plans(configuration: "Configuration", preset: Preset) -> List[Plan]:
    selected = preset.scales
    plans = []
    for scale in (ImageScale.ONE_X, ImageScale.TWO_X, ImageScale.THREE_X):
        box = STICKER_IMAGE_BOXES[scale] if scale in selected else PLACEHOLDER_BOX
        plans.append(
            Plan(
                box_width=box,
                box_height=box,
                output_format=ImageFormat.PNG,
                output_package=configuration.output_package,
                add_suffix=IMAGE_SET_SUFFIXES[scale],
            )
        )
    return plans


def _sticker_image_files_plans(configuration: "Configuration", preset: Preset) -> List[Plan]:
    selected = preset.scales
    return [
        Plan(
            box_width=STICKER_IMAGE_BOXES[scale],
            box_height=STICKER_IMAGE_BOXES[scale],
            output_format=ImageFormat.PNG,
            output_package=configuration.output_package,
            add_suffix=IMAGE_FILES_SUFFIXES[scale],
        )
        for scale in (ImageScale.ONE_X, ImageScale.TWO_X, ImageScale.THREE_X)
        if scale in selected
    ]

from pathlib import Path

import pytest

from imagemunger.configuration import (
    Configuration,
    ValidationError,
    normalize_key,
    parse_color,
    resolve_path,
)
from imagemunger.models import ImageFormat, PackageType, Preset, SourceGroup


def test_normalize_key():
    assert normalize_key("maxWidthPx") == "max-width-px"
    assert normalize_key("max_width_px") == "max-width-px"
    assert normalize_key("out-package") == "out-package"
    assert normalize_key("srcOval") == "src-oval"


def test_resolve_path_prefixes(tmp_path):
    manifest = tmp_path / "manifests" / "imp.yml"
    output = tmp_path / "out"
    assert resolve_path("~~/images", manifest, output) == tmp_path / "manifests" / "images"
    assert resolve_path("~~~/build", manifest, output) == output / "build"
    assert resolve_path("/abs/path", manifest, output) == Path("/abs/path")
    assert resolve_path("~/pics", manifest, output) == Path.home() / "pics"


def test_parse_color():
    assert parse_color("10:20:30") == (10, 20, 30, 255)
    assert parse_color("10:20:30:40") == (10, 20, 30, 40)
    assert parse_color("10:20") is None
    assert parse_color("10:20:300") is None
    assert parse_color("a:b:c") is None


def test_from_settings_reads_manifest_keys(tmp_path):
    manifest = tmp_path / "imp.yml"
    settings = {
        "src": "~~/art",
        "dst": "~~~/Stickers.stickerpack",
        "preset": "smallSticker",
        "outPackage": "stickerpack",
        "outFormat": "png",
        "outPackageReplace": "true",
        "masksToo": 1,
        "maxPx": 128,
        "catalogFolderMaxSize": "2048",
        "catalogFolderTag": "pack",
        "catalogFolderNamespace": True,
        "backgroundColor": "255:255:255",
        "validFormat": "png:jpg",
        "outManifest": "~~/names.json",
    }
    config = Configuration.from_settings(
        settings, files=["a.png"], manifest_path=manifest, output_dir=tmp_path / "out"
    )
    assert config.source_dir == tmp_path / "art"
    assert config.destination == tmp_path / "out" / "Stickers.stickerpack"
    assert config.preset is Preset.SMALL_STICKER
    assert config.output_package is PackageType.STICKER_PACK
    assert config.output_format is ImageFormat.PNG
    assert config.replace_existing is True
    assert config.masks_too is True
    assert (config.max_width, config.max_height) == (128, 128)
    assert config.catalog_folder_max_size == 2048
    assert config.catalog_folder_tag == "pack"
    assert config.catalog_folder_provides_namespace is True
    assert config.background_color == (255, 255, 255, 255)
    assert config.valid_extensions == ("png", "jpg")
    assert config.out_manifest_path == tmp_path / "names.json"
    assert config.files == ["a.png"]
    assert config.name == "Stickers.stickerpack"


def test_from_settings_unknown_values_keep_defaults(caplog):
    config = Configuration.from_settings(
        {"preset": "hugeSticker", "out-package": "zip", "mystery": "x", "scale": None}
    )
    assert config.preset is Preset.NONE
    assert config.output_package is PackageType.NONE
    assert config.scale == 0.0
    assert "mystery" in caplog.text


def test_false_booleans():
    config = Configuration.from_settings({"out-package-replace": "false", "masks-too": "0"})
    assert config.replace_existing is False
    assert config.masks_too is False


def test_source_groups(tmp_path):
    config = Configuration(
        source_dir=tmp_path / "g",
        oval_source_dir=tmp_path / "o",
        square_source_dir=tmp_path / "s",
        oval_files=["o.png"],
    )
    assert config.source_for(SourceGroup.GENERAL) == tmp_path / "g"
    assert config.source_for(SourceGroup.OVAL) == tmp_path / "o"
    assert config.source_for(SourceGroup.SQUARE) == tmp_path / "s"
    assert config.listed_files(SourceGroup.OVAL) == ["o.png"]
    assert config.listed_files(SourceGroup.SQUARE) == []


def test_filter_by_extension():
    config = Configuration()
    assert config.filter_by_extension(["a.PNG", "b.jpg", "c.txt", ".DS_Store", "d.tif"]) == [
        "a.PNG",
        "b.jpg",
        "d.tif",
    ]


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"destination": Path("out")}, "Missing src."),
        ({"oval_source_dir": Path("o"), "destination": Path("out")}, "Missing src."),
        ({"source_dir": Path("src")}, "Missing dst."),
        (
            {"source_dir": Path("src"), "destination": Path("out"), "scale": 2.0, "max_width": 10},
            "Can not specify scale and max-width / max-height.",
        ),
    ],
)
def test_validate(kwargs, message):
    with pytest.raises(ValidationError, match=message.replace(".", r"\.")):
        Configuration(**kwargs).validate()


def test_validate_accepts_paired_sources():
    Configuration(
        oval_source_dir=Path("o"), square_source_dir=Path("s"), destination=Path("d")
    ).validate()

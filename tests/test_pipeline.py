import json
from pathlib import Path

import pytest
from PIL import Image

from imagemunger.config import AppConfig
from imagemunger.configuration import Configuration
from imagemunger.descriptors import CatalogContents, ImageSetContents, StickerPackContents, read_contents
from imagemunger.geometry import Size
from imagemunger.models import ImageFormat, Plan, ProcessMode, SourceGroup
from imagemunger.pipeline import (
    CollectionError,
    ImagePipeline,
    collect_files,
    collect_units,
    destination_name,
    target_size,
)


def _configuration(tmp_path, settings, files=None):
    return Configuration.from_settings(
        settings,
        files=files,
        manifest_path=tmp_path / "imp.yml",
        output_dir=tmp_path / "out",
    )


def test_target_size():
    source = Size(300, 150)
    assert target_size(source, Plan()) is None
    assert target_size(source, Plan(scale=1.0)) is None
    assert target_size(source, Plan(scale=1 / 3)) == Size(100, 50)
    assert target_size(source, Plan(scale=2 / 3)) == Size(200, 100)
    assert target_size(source, Plan(box_width=64)) == Size(64, 64)
    assert target_size(source, Plan(box_height=40, box_width=80)) == Size(80, 40)
    assert target_size(source, Plan(box_width=100, box_height=100, aspect_with_max_box=True)) == Size(100, 50)


def _src(name):
    return Path("/src") / name


def test_destination_name():
    plan = Plan(output_format=ImageFormat.JPEG, remove_suffix="@3x", add_suffix="@2x")
    assert destination_name(_src("hero@3x.png"), plan, ProcessMode.NORMAL).name == "hero@2x.jpg"
    assert destination_name(_src("hero@3x.png"), plan, ProcessMode.MASK).name == "hero_mask@2x.png"
    sticker = Plan(output_format=ImageFormat.PNG, add_suffix="@3x")
    assert destination_name(_src("cat.jpg"), sticker, ProcessMode.NORMAL).name == "cat@3x.png"


def test_collect_files_sorted_and_filtered(tmp_path, make_image):
    for name in ("b.png", "a.png", "c.jpg"):
        make_image(tmp_path / "src" / name, mode="RGB" if name.endswith(".jpg") else "RGBA")
    (tmp_path / "src" / "notes.txt").write_text("x", encoding="utf-8")
    config = _configuration(tmp_path, {"src": str(tmp_path / "src")})
    assert [p.name for p in collect_files(config, SourceGroup.GENERAL)] == ["a.png", "b.png", "c.jpg"]


def test_collect_files_respects_manifest_list(tmp_path, make_image):
    for name in ("a.png", "b.png", "c.png"):
        make_image(tmp_path / "src" / name)
    config = _configuration(tmp_path, {"src": str(tmp_path / "src")}, files=["c.png", "a.png"])
    assert [p.name for p in collect_files(config, SourceGroup.GENERAL)] == ["c.png", "a.png"]


def test_collect_files_errors(tmp_path, make_image):
    make_image(tmp_path / "src" / "a.png")
    listed = _configuration(tmp_path, {"src": str(tmp_path / "src")}, files=["a.png", "gone.png"])
    with pytest.raises(CollectionError, match="Src is missing files listed in manifest"):
        collect_files(listed, SourceGroup.GENERAL)

    missing = _configuration(tmp_path, {"src": str(tmp_path / "nowhere")})
    with pytest.raises(CollectionError):
        collect_files(missing, SourceGroup.GENERAL)


def test_collect_single_file_source(tmp_path, make_image):
    path = make_image(tmp_path / "src" / "icon.png")
    config = _configuration(tmp_path, {"src": str(path)})
    assert collect_files(config, SourceGroup.GENERAL) == [path]


def test_collect_units_pairs(tmp_path, make_image):
    for name in ("1.png", "2.png"):
        make_image(tmp_path / "oval" / name)
        make_image(tmp_path / "square" / name)
    config = _configuration(
        tmp_path, {"src-oval": str(tmp_path / "oval"), "src-square": str(tmp_path / "square")}
    )
    units = collect_units(config)
    assert [(u.path.parent.name, u.oval_path.parent.name) for u in units] == [
        ("square", "oval"),
        ("square", "oval"),
    ]

    make_image(tmp_path / "oval" / "3.png")
    with pytest.raises(CollectionError, match="pair up"):
        collect_units(config)


def test_small_sticker_scenario(tmp_path, make_image, app_config):
    make_image(tmp_path / "src" / "cat.png", size=(1200, 1200))
    pack = tmp_path / "Cats.stickerpack"
    config = _configuration(
        tmp_path,
        {
            "src": str(tmp_path / "src"),
            "dst": str(pack),
            "preset": "smallSticker",
            "out-package": "stickerpack",
        },
    )

    summary = ImagePipeline(app_config).run([config])

    assert summary.ok
    image_path = pack / "cat@3x.sticker" / "cat@3x.png"
    with Image.open(image_path) as image:
        assert image.size == (300, 300)
        assert image.format == "PNG"
    contents = read_contents(StickerPackContents, pack)
    assert contents.stickers == ["cat@3x.sticker"]
    assert contents.grid_size == "small"


def test_sticker_padding_kicks_in_when_over_limit(tmp_path, make_image):
    make_image(tmp_path / "src" / "cat.png", size=(600, 600))
    pack = tmp_path / "Cats.stickerpack"
    config = _configuration(
        tmp_path,
        {
            "src": str(tmp_path / "src"),
            "dst": str(pack),
            "preset": "smallSticker",
            "out-package": "stickerpack",
        },
    )
    app_config = AppConfig(
        output_dir=str(tmp_path), icon_packer="builtin", sticker_size_limit=1, max_padding=0.03
    )

    ImagePipeline(app_config).run([config])

    with Image.open(pack / "cat@3x.sticker" / "cat@3x.png") as image:
        assert image.size == (300, 300)
        # 3% of 300px inset on every side
        assert image.getpixel((4, 150))[3] == 0
        assert image.getpixel((150, 150))[3] == 255
    assert read_contents(StickerPackContents, pack).stickers == ["cat@3x.sticker"]


def test_image_set_scenario(tmp_path, make_image, app_config):
    make_image(tmp_path / "src" / "hero@3x.png", size=(300, 150))
    make_image(tmp_path / "src" / "plain.png", size=(30, 30))
    out = tmp_path / "Images"
    config = _configuration(
        tmp_path,
        {
            "src": str(tmp_path / "src"),
            "dst": str(out),
            "preset": "imageSet",
            "out-package": "imageset",
        },
    )

    summary = ImagePipeline(app_config).run([config])

    assert summary.ok
    image_set = out / "hero.imageset"
    sizes = {}
    for name in ("hero.png", "hero@2x.png", "hero@3x.png"):
        with Image.open(image_set / name) as image:
            sizes[name] = image.size
    assert sizes == {"hero.png": (100, 50), "hero@2x.png": (200, 100), "hero@3x.png": (300, 150)}
    contents = read_contents(ImageSetContents, image_set)
    assert [(i.filename, i.scale) for i in contents.images] == [
        ("hero.png", "1x"),
        ("hero@2x.png", "2x"),
        ("hero@3x.png", "3x"),
    ]
    # no @3x suffix, so every plan skips it
    assert not (out / "plain.imageset").exists()


def test_masks_too(tmp_path, half_transparent_image, app_config):
    half_transparent_image(tmp_path / "src" / "shape.png", size=(40, 20))
    out = tmp_path / "out"
    config = _configuration(
        tmp_path, {"src": str(tmp_path / "src"), "dst": str(out), "masks-too": "true"}
    )

    ImagePipeline(app_config).run([config])

    with Image.open(out / "shape.png") as image:
        assert image.size == (40, 20)
    with Image.open(out / "shape_mask.png") as mask:
        assert mask.mode == "L"
        assert mask.size == (40, 20)
        assert mask.getpixel((5, 10)) == 255
        assert mask.getpixel((35, 10)) == 0


def test_image_set_masks_share_one_set(tmp_path, half_transparent_image, app_config):
    half_transparent_image(tmp_path / "src" / "hero@3x.png", size=(300, 150))
    out = tmp_path / "Images"
    config = _configuration(
        tmp_path,
        {
            "src": str(tmp_path / "src"),
            "dst": str(out),
            "preset": "imageSet",
            "out-package": "imageset",
            "masks-too": "true",
        },
    )

    summary = ImagePipeline(app_config).run([config])

    assert summary.ok
    assert sorted(p.name for p in out.iterdir()) == ["hero.imageset", "hero_mask.imageset"]
    mask_set = out / "hero_mask.imageset"
    contents = read_contents(ImageSetContents, mask_set)
    assert [(i.filename, i.scale) for i in contents.images] == [
        ("hero_mask.png", "1x"),
        ("hero_mask@2x.png", "2x"),
        ("hero_mask@3x.png", "3x"),
    ]
    with Image.open(mask_set / "hero_mask@2x.png") as mask:
        assert mask.mode == "L"
        assert mask.size == (200, 100)
        assert mask.getpixel((20, 50)) == 255
        assert mask.getpixel((180, 50)) == 0
    assert summary.files_written == 6


def test_catalog_masks_land_next_to_images(tmp_path, half_transparent_image, app_config):
    half_transparent_image(tmp_path / "src" / "hero@3x.png", size=(30, 30))
    catalog = tmp_path / "Assets.xcassets"
    config = _configuration(
        tmp_path,
        {
            "src": str(tmp_path / "src"),
            "dst": str(catalog),
            "preset": "imageSet",
            "out-package": "catalog",
            "masks-too": "true",
        },
    )

    ImagePipeline(app_config).run([config])

    names = sorted(p.name for p in (catalog / "hero_mask.imageset").iterdir())
    assert names == ["Contents.json", "hero_mask.png", "hero_mask@2x.png", "hero_mask@3x.png"]


def test_padded_sticker_mask_is_black_outside_the_inset(tmp_path, half_transparent_image):
    half_transparent_image(tmp_path / "src" / "cat.png", size=(600, 600))
    pack = tmp_path / "Cats.stickerpack"
    config = _configuration(
        tmp_path,
        {
            "src": str(tmp_path / "src"),
            "dst": str(pack),
            "preset": "smallSticker",
            "out-package": "stickerpack",
            "masks-too": "true",
        },
    )
    app_config = AppConfig(
        output_dir=str(tmp_path), icon_packer="builtin", sticker_size_limit=1, max_padding=0.03
    )

    ImagePipeline(app_config).run([config])

    assert read_contents(StickerPackContents, pack).stickers == [
        "cat@3x.sticker",
        "cat_mask@3x.sticker",
    ]
    with Image.open(pack / "cat_mask@3x.sticker" / "cat_mask@3x.png") as mask:
        assert mask.size == (300, 300)
        # 3% of 300px inset on every side
        assert mask.getpixel((4, 150)) == 0
        assert mask.getpixel((60, 150)) == 255
        assert mask.getpixel((250, 150)) == 0


def test_out_manifest_and_contact_sheet(tmp_path, make_image, app_config):
    make_image(tmp_path / "src" / "b@2x.png", size=(512, 256))
    make_image(tmp_path / "src" / "a.jpg", size=(100, 400), mode="RGB")
    out = tmp_path / "thumbs"
    config = _configuration(
        tmp_path,
        {
            "src": str(tmp_path / "src"),
            "dst": str(out),
            "preset": "thumb256",
            "out-manifest": "~~~/names.json",
            "out-contact-sheet": "~~~/sheet.png",
        },
    )
    (tmp_path / "out").mkdir()

    ImagePipeline(app_config).run([config])

    assert json.loads((tmp_path / "out" / "names.json").read_text(encoding="utf-8")) == ["a", "b"]
    with Image.open(out / "b@2x.png") as image:
        assert image.size == (256, 128)
    with Image.open(out / "a.jpg") as image:
        assert image.size == (64, 256)
    with Image.open(tmp_path / "out" / "sheet.png") as sheet:
        assert sheet.size == (640, 920)


def test_catalog_folder_segmentation(tmp_path, make_image, app_config):
    for name in ("a.png", "b.png", "c.png"):
        make_image(tmp_path / "src" / name, size=(16, 16))
    base = tmp_path / "Assets.xcassets" / "Stickers"
    config = _configuration(
        tmp_path,
        {
            "src": str(tmp_path / "src"),
            "dst": str(base),
            "out-package": "catalogfolder",
            "catalog-folder-max-size": 1,
            "catalog-folder-tag": "stickers",
        },
    )

    summary = ImagePipeline(app_config).run([config])

    assert summary.ok
    catalog = tmp_path / "Assets.xcassets"
    for index, name in enumerate(("a", "b", "c")):
        segment = catalog / f"Stickers_{index}"
        assert (segment / f"{name}.imageset" / f"{name}.png").exists()
        tags = read_contents(CatalogContents, segment).on_demand_resource_tags
        assert tags == [f"stickers_{index}"]


def test_builtin_icns(tmp_path, make_image, app_config):
    make_image(tmp_path / "src" / "app.png", size=(64, 64))
    destination = tmp_path / "App.icns"
    config = _configuration(
        tmp_path,
        {"src": str(tmp_path / "src" / "app.png"), "dst": str(destination), "out-package": "icns"},
    )

    summary = ImagePipeline(app_config).run([config])

    assert summary.ok
    assert destination.read_bytes()[:4] == b"icns"
    assert not (tmp_path / "App.iconset").exists()


def test_failures_do_not_stop_the_run(tmp_path, make_image, app_config):
    make_image(tmp_path / "src" / "a.png")
    broken = _configuration(tmp_path, {"src": str(tmp_path / "src")}, files=["missing.png"])
    broken.destination = tmp_path / "Broken"
    no_destination = _configuration(tmp_path, {"src": str(tmp_path / "src")})
    wrong_pack = _configuration(
        tmp_path,
        {"src": str(tmp_path / "src"), "dst": str(tmp_path / "Nope"), "out-package": "stickerpack"},
    )
    good = _configuration(tmp_path, {"src": str(tmp_path / "src"), "dst": str(tmp_path / "Good")})

    summary = ImagePipeline(app_config).run([broken, no_destination, wrong_pack, good])

    assert summary.configurations == 4
    assert summary.failed == ["Broken", "<no destination>", "Nope"]
    assert not summary.ok
    assert (tmp_path / "Good" / "a.png").exists()
    assert summary.files_written == 1


def test_unsupported_source_is_skipped(tmp_path, make_image, app_config):
    make_image(tmp_path / "src" / "a.png")
    (tmp_path / "src" / "b.bmp").write_bytes(b"BM")
    config = _configuration(
        tmp_path,
        {"src": str(tmp_path / "src"), "dst": str(tmp_path / "out"), "valid-format": "png:bmp"},
    )

    summary = ImagePipeline(app_config).run([config])

    assert summary.ok
    assert sorted(p.name for p in (tmp_path / "out").iterdir()) == ["a.png"]

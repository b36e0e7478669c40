"""Shared pytest fixtures for imagemunger tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Tuple

import pytest
from PIL import Image

from imagemunger.config import AppConfig
from imagemunger.settings import UserSettings

IMP_ENV_VARS = (
    "IMP_OUTPUT_DIR",
    "IMP_LOG_PATH",
    "IMP_ICON_PACKER",
    "IMP_STICKER_SIZE_LIMIT",
    "IMP_PADDING_STEP",
    "IMP_MAX_PADDING",
    "IMP_USE_TRASH",
)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the user's settings file and IMP_* variables out of every test."""
    for name in IMP_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("imagemunger.config.load_user_settings", lambda: UserSettings())


@pytest.fixture
def make_image() -> Callable[..., Path]:
    """Write a solid-colour image to ``path`` and return the path."""

    def _make(
        path: Path,
        size: Tuple[int, int] = (64, 64),
        color: Tuple[int, int, int, int] = (200, 30, 30, 255),
        mode: str = "RGBA",
    ) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        image = Image.new(mode, size, color if mode == "RGBA" else color[:3])
        image.save(path)
        return path

    return _make


@pytest.fixture
def half_transparent_image() -> Callable[[Path, Tuple[int, int]], Path]:
    """Left half opaque red, right half fully transparent."""

    def _make(path: Path, size: Tuple[int, int] = (40, 20)) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        image = Image.new("RGBA", size, (0, 0, 0, 0))
        image.paste((255, 0, 0, 255), (0, 0, size[0] // 2, size[1]))
        image.save(path)
        return path

    return _make


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(output_dir=str(tmp_path), icon_packer="builtin")

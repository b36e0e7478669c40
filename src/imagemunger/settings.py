from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

SETTINGS_DIR = Path.home() / ".config" / "imagemunger"
SETTINGS_FILE = SETTINGS_DIR / "settings.json"


@dataclass
class UserSettings:
    output_dir: Optional[str] = None
    log_path: Optional[str] = None
    icon_packer: Optional[str] = None
    sticker_size_limit: Optional[int] = None
    padding_step: Optional[float] = None
    max_padding: Optional[float] = None
    use_trash: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserSettings":
        return cls(
            output_dir=_coerce_str(data.get("output_dir")),
            log_path=_coerce_str(data.get("log_path")),
            icon_packer=_coerce_str(data.get("icon_packer")),
            sticker_size_limit=_coerce_int(data.get("sticker_size_limit")),
            padding_step=_coerce_float(data.get("padding_step")),
            max_padding=_coerce_float(data.get("max_padding")),
            use_trash=_coerce_bool(data.get("use_trash")),
        )


def load_user_settings(path: Path = SETTINGS_FILE) -> UserSettings:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return UserSettings()
    except OSError as exc:
        logging.getLogger(__name__).warning("Failed to read settings file %s: %s", path, exc)
        return UserSettings()

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        logging.getLogger(__name__).warning("Invalid JSON in settings file %s: %s", path, exc)
        return UserSettings()

    if not isinstance(data, dict):
        logging.getLogger(__name__).warning("Settings file %s must contain a JSON object.", path)
        return UserSettings()

    return UserSettings.from_dict(data)


def _coerce_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


def _coerce_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return None


def _coerce_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    text = str(value).strip().lower()
    if text in ("true", "yes", "on"):
        return True
    if text in ("false", "no", "off", ""):
        return False
    try:
        return int(text) != 0
    except ValueError:
        return None

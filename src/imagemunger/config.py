import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .geometry import MAX_PADDING, PADDING_STEP, STICKER_SIZE_LIMIT
from .settings import _coerce_bool, load_user_settings


BUILTIN_ICON_PACKER = "builtin"
DEFAULT_ICON_PACKER = "iconutil" if sys.platform == "darwin" else BUILTIN_ICON_PACKER
DEFAULT_LOG_PATH = Path.home() / "Library" / "Logs" / "imagemunger" / "imp.log"


@dataclass
class AppConfig:
    output_dir: str
    log_path: Optional[str] = None
    icon_packer: str = DEFAULT_ICON_PACKER
    sticker_size_limit: int = STICKER_SIZE_LIMIT
    padding_step: float = PADDING_STEP
    max_padding: float = MAX_PADDING
    use_trash: bool = False

    @classmethod
    def from_env(
        cls,
        output_dir: Optional[str] = None,
        log_path: Optional[str] = None,
        icon_packer: Optional[str] = None,
        sticker_size_limit: Optional[int] = None,
        padding_step: Optional[float] = None,
        max_padding: Optional[float] = None,
        use_trash: Optional[bool] = None,
    ) -> "AppConfig":
        settings = load_user_settings()

        output = (
            output_dir
            or os.environ.get("IMP_OUTPUT_DIR")
            or settings.output_dir
            or os.getcwd()
        )
        packer = (
            icon_packer
            or os.environ.get("IMP_ICON_PACKER")
            or settings.icon_packer
            or DEFAULT_ICON_PACKER
        )
        size_limit_value = _resolve_int(
            sticker_size_limit,
            os.environ.get("IMP_STICKER_SIZE_LIMIT"),
            settings.sticker_size_limit,
            STICKER_SIZE_LIMIT,
            "IMP_STICKER_SIZE_LIMIT",
        )
        step_value = _resolve_float(
            padding_step,
            os.environ.get("IMP_PADDING_STEP"),
            settings.padding_step,
            PADDING_STEP,
            "IMP_PADDING_STEP",
        )
        max_padding_value = _resolve_float(
            max_padding,
            os.environ.get("IMP_MAX_PADDING"),
            settings.max_padding,
            MAX_PADDING,
            "IMP_MAX_PADDING",
        )
        if step_value <= 0:
            raise ValueError(f"Padding step must be positive: {step_value}")
        log_path_value = (
            log_path
            or os.environ.get("IMP_LOG_PATH")
            or settings.log_path
            or (str(DEFAULT_LOG_PATH) if sys.platform == "darwin" else None)
        )
        trash_value = _resolve_bool(use_trash, os.environ.get("IMP_USE_TRASH"), settings.use_trash)

        return cls(
            output_dir=str(Path(output).expanduser()),
            log_path=log_path_value,
            icon_packer=packer,
            sticker_size_limit=size_limit_value,
            padding_step=step_value,
            max_padding=max_padding_value,
            use_trash=trash_value,
        )


def _resolve_int(
    direct_value: Optional[int],
    env_value: Optional[str],
    stored_value: Optional[int],
    default_value: int,
    env_name: str,
) -> int:
    if direct_value is not None:
        return direct_value
    if env_value is not None:
        try:
            return int(env_value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid integer for {env_name}: {env_value}") from exc
    if stored_value is not None:
        return stored_value
    return default_value


def _resolve_float(
    direct_value: Optional[float],
    env_value: Optional[str],
    stored_value: Optional[float],
    default_value: float,
    env_name: str,
) -> float:
    if direct_value is not None:
        return direct_value
    if env_value is not None:
        try:
            return float(env_value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid float for {env_name}: {env_value}") from exc
    if stored_value is not None:
        return stored_value
    return default_value


def _resolve_bool(
    direct_value: Optional[bool],
    env_value: Optional[str],
    stored_value: Optional[bool],
) -> bool:
    if direct_value is not None:
        return direct_value
    if env_value is not None:
        parsed = _coerce_bool(env_value)
        if parsed is None:
            raise ValueError(f"Invalid boolean for IMP_USE_TRASH: {env_value}")
        return parsed
    if stored_value is not None:
        return stored_value
    return False

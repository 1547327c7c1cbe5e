import os
from configparser import ConfigParser, Error as ConfigParserError
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from image_optimizer.models.errors import ConfigError
from image_optimizer.models.run_config import PngSlowPass

INI_ENV_VAR = "IMAGE_OPTIMIZER_INI"
INI_DEFAULT_NAME = ".image-optimizer.ini"


@dataclass(frozen=True)
class IniSettings:
    """Значения из INI; None означает "не задано", берётся умолчание или флаг CLI."""
    quality: Optional[int] = None
    lossless: Optional[bool] = None
    recursive: Optional[bool] = None
    backup: Optional[bool] = None
    max_edge_px: Optional[int] = None
    workers: Optional[int] = None
    png_slow_pass: Optional[PngSlowPass] = None
    png_time_budget_s: Optional[float] = None
    fail_on_error: Optional[bool] = None

    release_url: Optional[str] = None
    update_timeout_seconds: Optional[int] = None
    update_max_retries: Optional[int] = None


class IniConfig:
    """
    Adapter around ConfigParser and filesystem resolution.
    Keeps INI handling out of the services.
    """

    def __init__(self, ini_path: Optional[Path], required: bool = True):
        self._ini_path = ini_path
        self._cfg = ConfigParser()
        if ini_path is None:
            return
        try:
            read_ok = self._cfg.read(str(ini_path), encoding="utf-8-sig")
        except ConfigParserError as exc:
            raise ConfigError(f"Некорректный INI-файл {ini_path}: {exc}") from exc
        if not read_ok and required:
            raise ConfigError(f"INI-файл не найден или не читается: {ini_path}")

    @property
    def ini_path(self) -> Optional[Path]:
        return self._ini_path

    @staticmethod
    def from_env_or_default() -> "IniConfig":
        ini_raw = (os.getenv(INI_ENV_VAR) or "").strip()
        if ini_raw:
            # an explicitly named file must exist
            return IniConfig(Path(os.path.expandvars(os.path.expanduser(ini_raw))), required=True)
        return IniConfig(Path.home() / INI_DEFAULT_NAME, required=False)

    def _get(self, section: str, key: str, getter) -> Optional[object]:
        if not self._cfg.has_option(section, key):
            return None
        raw = (self._cfg.get(section, key, fallback="") or "").strip()
        if not raw:
            return None
        try:
            return getter(section, key)
        except ValueError as exc:
            raise ConfigError(f"Неверное значение [{section}] {key} = {raw!r}: {exc}") from exc

    def load_settings(self) -> IniSettings:
        slow_pass_raw = self._get("optimize", "png_slow_pass", self._cfg.get)
        try:
            png_slow_pass = PngSlowPass(str(slow_pass_raw).lower()) if slow_pass_raw else None
        except ValueError as exc:
            raise ConfigError(f"Неверное значение [optimize] png_slow_pass = {slow_pass_raw!r}") from exc

        return IniSettings(
            # Optimization
            quality=self._get("optimize", "quality", self._cfg.getint),
            lossless=self._get("optimize", "lossless", self._cfg.getboolean),
            recursive=self._get("optimize", "recursive", self._cfg.getboolean),
            backup=self._get("optimize", "backup", self._cfg.getboolean),
            max_edge_px=self._get("optimize", "max_edge_px", self._cfg.getint),
            workers=self._get("optimize", "workers", self._cfg.getint),
            png_slow_pass=png_slow_pass,
            png_time_budget_s=self._get("optimize", "png_time_budget_s", self._cfg.getfloat),
            fail_on_error=self._get("optimize", "fail_on_error", self._cfg.getboolean),
            # Self-update
            release_url=self._get("update", "release_url", self._cfg.get),
            update_timeout_seconds=self._get("update", "timeout_seconds", self._cfg.getint),
            update_max_retries=self._get("update", "max_retries", self._cfg.getint),
        )

"""Конфигурация запуска.

`RunConfig` создаётся один раз до начала пакета и только читается воркерами,
поэтому потокобезопасна по построению.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from image_optimizer.models.errors import ConfigError

DEFAULT_QUALITY = 85
DEFAULT_PNG_TIME_BUDGET_S = 2.0


class PngSlowPass(Enum):
    """Когда выполнять медленный дополнительный проход PNG."""
    NEVER = "never"
    BUDGET = "budget"  # only if the fast pass finished within png_time_budget_s
    ALWAYS = "always"


@dataclass(frozen=True)
class RunConfig:
    input_root: Path
    output_root: Optional[Path] = None
    quality: int = DEFAULT_QUALITY
    lossless: bool = False
    recursive: bool = False
    max_edge_px: Optional[int] = None
    backup: bool = False
    workers: Optional[int] = None
    png_slow_pass: PngSlowPass = PngSlowPass.BUDGET
    png_time_budget_s: float = DEFAULT_PNG_TIME_BUDGET_S
    fail_on_error: bool = False

    def __post_init__(self) -> None:
        if not 1 <= int(self.quality) <= 100:
            raise ConfigError(f"Качество должно быть в диапазоне 1..100, получено {self.quality}")
        if self.max_edge_px is not None and self.max_edge_px <= 0:
            raise ConfigError(f"--max-size должен быть положительным, получено {self.max_edge_px}")
        if self.workers is not None and self.workers <= 0:
            raise ConfigError(f"Число воркеров должно быть положительным, получено {self.workers}")
        if self.png_time_budget_s < 0:
            raise ConfigError("Бюджет времени PNG не может быть отрицательным")

    @property
    def in_place(self) -> bool:
        return self.output_root is None

    @property
    def worker_count(self) -> int:
        return self.workers or os.cpu_count() or 4


DEFAULT_RELEASE_URL = "https://api.github.com/repos/nixuuu/image-optimizer/releases/latest"


@dataclass(frozen=True)
class UpdateConfig:
    current_version: str
    release_url: str = DEFAULT_RELEASE_URL
    timeout_seconds: int = 30
    max_retries: int = 3

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ConfigError("Таймаут обновления должен быть положительным")
        if self.max_retries <= 0:
            raise ConfigError("Число попыток должно быть положительным")

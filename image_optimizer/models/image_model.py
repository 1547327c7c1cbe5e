"""Модели данных для задач оптимизации и их результатов.

Принципы:
- SRP: только структура данных, без логики обработки.
- Чистый код: неизменяемость (`frozen=True`) для предсказуемости.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from image_optimizer.models.run_config import RunConfig


class ImageFormat(Enum):
    """Закрытый набор поддерживаемых форматов."""
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    SVG = "svg"

    @property
    def is_raster(self) -> bool:
        return self is not ImageFormat.SVG

    @classmethod
    def from_extension(cls, suffix: str) -> Optional["ImageFormat"]:
        """Возвращает формат по расширению (без учёта регистра) или None."""
        return _EXTENSIONS.get(suffix.lower().lstrip("."))


_EXTENSIONS = {
    "jpg": ImageFormat.JPEG,
    "jpeg": ImageFormat.JPEG,
    "png": ImageFormat.PNG,
    "webp": ImageFormat.WEBP,
    "svg": ImageFormat.SVG,
}

SUPPORTED_EXTENSIONS = frozenset(_EXTENSIONS)


class OutcomeStatus(Enum):
    OPTIMIZED = "optimized"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ImageTask:
    """Неизменяемая задача: один найденный файл и снимок конфигурации.

    Fields:
        source_path: Путь к исходному файлу.
        detected_format: Формат, определённый по расширению при сканировании.
        config_snapshot: Общая для всех задач конфигурация запуска.
    """
    source_path: Path
    detected_format: ImageFormat
    config_snapshot: RunConfig


@dataclass(frozen=True)
class OptimizationOutcome:
    """Итог обработки одного файла.

    `optimized_size` имеет смысл только при статусе `OPTIMIZED`;
    для остальных статусов он равен `original_size`.
    """
    source_path: Path
    original_size: int
    optimized_size: int
    status: OutcomeStatus
    error_detail: Optional[str] = None

    @property
    def saved_bytes(self) -> int:
        if self.status is not OutcomeStatus.OPTIMIZED:
            return 0
        return self.original_size - self.optimized_size

    @property
    def percent_saved(self) -> float:
        if self.original_size <= 0:
            return 0.0
        return self.saved_bytes * 100.0 / self.original_size

    @classmethod
    def optimized(cls, path: Path, original_size: int, optimized_size: int) -> "OptimizationOutcome":
        return cls(path, original_size, optimized_size, OutcomeStatus.OPTIMIZED)

    @classmethod
    def skipped(cls, path: Path, original_size: int, reason: Optional[str] = None) -> "OptimizationOutcome":
        return cls(path, original_size, original_size, OutcomeStatus.SKIPPED, reason)

    @classmethod
    def failed(cls, path: Path, original_size: int, detail: str) -> "OptimizationOutcome":
        return cls(path, original_size, original_size, OutcomeStatus.FAILED, detail)

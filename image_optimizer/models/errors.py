"""Иерархия исключений оптимизатора.

Принципы:
- Фатальные ошибки (сканирование, конфигурация, обновление) прерывают запуск.
- Ошибки отдельного файла (`FileOptimizationError`) не покидают воркер:
  оркестратор превращает их в результат `Failed`.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from image_optimizer.models.release_model import UpdateState


class ImageOptimizerError(Exception):
    """Базовое исключение приложения."""


class ConfigError(ImageOptimizerError):
    """Недопустимые параметры запуска или INI-файла."""


class ScanError(ImageOptimizerError):
    """Корневой каталог отсутствует или недоступен для чтения."""


# ---------- Ошибки отдельного файла ----------
class FileOptimizationError(ImageOptimizerError):
    """Ошибка обработки одного файла; пакет при этом продолжается."""

    def __init__(self, path: Optional[Path], message: str) -> None:
        super().__init__(message)
        self.path = path
        self.message = message

    def __str__(self) -> str:
        return self.message


class FormatMismatch(FileOptimizationError):
    pass


class DecodeError(FileOptimizationError):
    pass


class OptimizeError(FileOptimizationError):
    pass


class IoError(FileOptimizationError):
    pass


class BackupFailed(FileOptimizationError):
    pass


# ---------- Ошибки самообновления ----------
class UpdateError(ImageOptimizerError):
    """Ошибка самообновления; прерывает только режим обновления."""

    def __init__(self, message: str, state: Optional["UpdateState"] = None) -> None:
        super().__init__(message)
        self.state = state


class NetworkError(UpdateError):
    pass


class ParseError(UpdateError):
    pass


class NoMatchingAsset(UpdateError):
    def __init__(self, target: str, available: Sequence[str], state: Optional["UpdateState"] = None) -> None:
        names = ", ".join(available) if available else "нет"
        super().__init__(f"Нет сборки для платформы {target}. Доступные файлы: {names}", state)
        self.target = target
        self.available = list(available)


class CorruptArtifact(UpdateError):
    pass


class SwapError(UpdateError):
    pass

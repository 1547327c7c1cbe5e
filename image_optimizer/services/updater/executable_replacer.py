"""Атомарная замена запущенного исполняемого файла.

Инвариант восстановления: по исходному пути всегда лежит либо старый, либо
новый файл; если замену прервали между шагами Windows-протокола, старый файл
остаётся рядом как `<exe>.old` и возвращается на место при следующем запуске.
"""
from __future__ import annotations

import logging
import os
import shutil
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from image_optimizer.models.errors import SwapError

logger = logging.getLogger(__name__)

OLD_SUFFIX = ".old"
STAGED_SUFFIX = ".new"


def current_executable() -> Path:
    """Путь к запущенной программе (собранный бинарник или скрипт точки входа)."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve()
    return Path(sys.argv[0]).resolve()


def _staged_path(current: Path) -> Path:
    return current.with_name(f".{current.name}{STAGED_SUFFIX}")


def _old_path(current: Path) -> Path:
    return current.with_name(current.name + OLD_SUFFIX)


class ExecutableReplacer(ABC):
    def replace(self, current: Path, artifact: Path) -> None:
        """Ставит `artifact` на место `current`.

        Raises:
            SwapError: замена не выполнена; `current` остался прежним.
        """
        staged = _staged_path(current)
        try:
            # same directory -> same filesystem, so the final rename is atomic
            shutil.copy2(artifact, staged)
            mode = current.stat().st_mode & 0o7777 if current.exists() else 0o755
            os.chmod(staged, mode | 0o111)
        except OSError as exc:
            self._discard(staged)
            raise SwapError(f"Не удалось подготовить новый файл рядом с {current}: {exc}") from exc
        self._swap(current, staged)

    @abstractmethod
    def _swap(self, current: Path, staged: Path) -> None:
        ...

    def cleanup_leftovers(self, current: Path) -> None:
        """Убирает следы прерванной или отложенной замены."""
        old = _old_path(current)
        if old.exists() and not current.exists():
            logger.warning("Восстановление %s из %s", current, old)
            os.replace(old, current)
        elif old.exists():
            self._discard(old)
        self._discard(_staged_path(current))

    @staticmethod
    def _discard(path: Path) -> bool:
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return True
        except OSError as exc:
            logger.debug("cannot remove %s yet: %s", path, exc)
            return False


class PosixReplacer(ExecutableReplacer):
    """POSIX: работающий файл можно подменить одним `rename`."""

    def _swap(self, current: Path, staged: Path) -> None:
        try:
            os.replace(staged, current)
        except OSError as exc:
            self._discard(staged)
            raise SwapError(f"Не удалось заменить {current}: {exc}") from exc


class WindowsReplacer(ExecutableReplacer):
    """
    Windows: запущенный файл нельзя перезаписать, но можно переименовать.
    current -> current.old, staged -> current, затем удаление old
    (если файл занят, удаление откладывается до следующего запуска).
    """

    def _swap(self, current: Path, staged: Path) -> None:
        old = _old_path(current)
        if old.exists() and not self._discard(old):
            self._discard(staged)
            raise SwapError(f"Не удалось удалить старую копию {old}")
        try:
            os.replace(current, old)
        except OSError as exc:
            self._discard(staged)
            raise SwapError(f"Не удалось переименовать {current}: {exc}") from exc
        try:
            os.replace(staged, current)
        except OSError as exc:
            os.replace(old, current)
            self._discard(staged)
            raise SwapError(f"Не удалось установить новый файл {current}: {exc}") from exc
        if not self._discard(old):
            logger.info("Старая версия %s будет удалена при следующем запуске", old)


def get_replacer(os_name: Optional[str] = None) -> ExecutableReplacer:
    return WindowsReplacer() if (os_name or os.name) == "nt" else PosixReplacer()

"""Файловые операции: резервные копии, маршрутизация вывода, атомарная запись.

Принципы:
- SRP: только пути и запись байтов; никаких решений об оптимизации.
- Запись через временный файл + `os.replace`: прерванная запись не оставляет
  повреждённого файла по целевому пути.
- Маршрутизатор никогда не пишет вне `output_root` (или исходного дерева).
"""
from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from image_optimizer.models.errors import BackupFailed, IoError

BACKUP_SUFFIX = ".bak"


def write_atomic(path: Path, data: bytes) -> None:
    """Записывает `data` в `path` атомарно (в пределах одной файловой системы)."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        if path.exists():
            os.chmod(tmp_name, path.stat().st_mode & 0o7777)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def backup_path_for(path: Path) -> Path:
    """photo.jpg -> photo.jpg.bak"""
    return path.with_name(path.name + BACKUP_SUFFIX)


class BackupService:
    def create_backup(self, source: Path, original: bytes) -> Path:
        """Сохраняет исходные байты рядом с файлом; существующая копия перезаписывается.

        Raises:
            BackupFailed: копия не записана; исходный файл трогать нельзя.
        """
        target = backup_path_for(source)
        try:
            write_atomic(target, original)
        except OSError as exc:
            raise BackupFailed(source, f"Не удалось создать резервную копию {target}: {exc}") from exc
        return target


@dataclass(frozen=True)
class OutputRouter:
    input_root: Path
    output_root: Optional[Path] = None

    def destination(self, source: Path) -> Path:
        """Путь назначения: сам `source` (на месте) или зеркальный путь в `output_root`.

        Промежуточные каталоги создаются.

        Raises:
            IoError: файл вне входного дерева или путь выходит за `output_root`.
        """
        if self.output_root is None:
            return source

        root = self.input_root.resolve()
        src = source.resolve()
        if root.is_file():
            root = root.parent
        try:
            relative = src.relative_to(root)
        except ValueError as exc:
            raise IoError(source, f"Файл {source} находится вне входного каталога {self.input_root}") from exc
        if any(part == ".." for part in relative.parts):
            raise IoError(source, f"Недопустимый относительный путь: {relative}")

        out_root = self.output_root.resolve()
        target = (out_root / relative).resolve()
        if target != out_root and out_root not in target.parents:
            raise IoError(source, f"Путь {target} выходит за пределы {out_root}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise IoError(source, f"Не удалось создать каталог {target.parent}: {exc}") from exc
        return target

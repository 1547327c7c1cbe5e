"""Поиск файлов изображений в дереве каталогов.

Принципы:
- Ленивый конечный обход: пути выдаются по мере нахождения, ничего не кэшируется;
  повторный вызов `scan()` обходит дерево заново.
- Циклы символических ссылок не приводят к повторному обходу каталога.
- Недоступные файлы и каталоги пропускаются с предупреждением; фатальна
  только недоступность корня.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Set, Tuple

from image_optimizer.models.errors import ScanError
from image_optimizer.models.image_model import ImageFormat

logger = logging.getLogger(__name__)


@dataclass
class ImageScanner:
    root: Path
    recursive: bool = False
    exclude: Tuple[Path, ...] = ()
    warnings: List[str] = field(default_factory=list)

    def scan(self) -> Iterator[Path]:
        """Проверяет корень и возвращает ленивую последовательность путей.

        Raises:
            ScanError: корень не существует или не читается.
        """
        root = Path(self.root)
        if not root.exists():
            raise ScanError(f"Путь не найден: {root}")
        if not os.access(root, os.R_OK):
            raise ScanError(f"Нет доступа на чтение: {root}")
        if root.is_file():
            return self._single(root)
        try:
            with os.scandir(root):
                pass
        except OSError as exc:
            raise ScanError(f"Не удалось прочитать каталог {root}: {exc}") from exc
        self.warnings.clear()
        return self._walk(root)

    def _single(self, path: Path) -> Iterator[Path]:
        if ImageFormat.from_extension(path.suffix) is not None:
            yield path

    def _walk(self, root: Path) -> Iterator[Path]:
        visited: Set[Tuple[int, int]] = set()
        pending = [root]
        while pending:
            directory = pending.pop()
            try:
                st = directory.stat()
            except OSError as exc:
                self._warn(directory, exc)
                continue
            key = (st.st_dev, st.st_ino)
            if key in visited:
                self._warn(directory, "цикл символических ссылок, пропущено")
                continue
            visited.add(key)

            try:
                with os.scandir(directory) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except OSError as exc:
                self._warn(directory, exc)
                continue

            subdirs: List[Path] = []
            for entry in entries:
                path = Path(entry.path)
                try:
                    if entry.is_dir():
                        if self.recursive and not self._excluded(path):
                            subdirs.append(path)
                        continue
                    if not entry.is_file():
                        continue
                except OSError as exc:
                    self._warn(path, exc)
                    continue
                if ImageFormat.from_extension(path.suffix) is None:
                    continue
                if not os.access(path, os.R_OK):
                    self._warn(path, "нет доступа на чтение")
                    continue
                yield path
            # depth-first, alphabetical
            pending.extend(reversed(subdirs))

    def _excluded(self, path: Path) -> bool:
        # keeps a mirrored output tree nested in the input root out of the scan
        resolved = path.resolve()
        return any(resolved == Path(p).resolve() for p in self.exclude)

    def _warn(self, path: Path, reason: object) -> None:
        message = f"{path}: {reason}"
        self.warnings.append(message)
        logger.warning("Пропуск при сканировании: %s", message)

"""Модели самообновления: версия, релиз, состояния.

Принципы:
- SRP: разбор и сравнение версий, без сетевого кода.
- `Version` упорядочена как кортеж (major, minor, patch).
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from image_optimizer.models.errors import ParseError


class UpdateState(Enum):
    IDLE = "idle"
    CHECKING = "checking"
    COMPARING = "comparing"
    DOWNLOADING = "downloading"
    VERIFYING = "verifying"
    SWAPPING = "swapping"
    DONE = "done"
    FAILED = "failed"


_VERSION_RE = re.compile(r"^\d+(\.\d+){0,2}$")


@dataclass(frozen=True, order=True)
class Version:
    major: int
    minor: int = 0
    patch: int = 0

    @classmethod
    def parse(cls, raw: str) -> "Version":
        """Разбирает "v1.2.3", "1.2.3" или "1.2" (недостающие части = 0).

        Raises:
            ParseError: если строка не является версией.
        """
        text = (raw or "").strip()
        if text[:1] in ("v", "V"):
            text = text[1:]
        if not _VERSION_RE.match(text):
            raise ParseError(f"Некорректный формат версии: {raw!r}")
        parts = [int(p) for p in text.split(".")]
        parts += [0] * (3 - len(parts))
        return cls(*parts)

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


@dataclass(frozen=True)
class ReleaseAsset:
    name: str
    download_url: str


@dataclass(frozen=True)
class ReleaseInfo:
    version_tag: str
    assets: Tuple[ReleaseAsset, ...] = ()

    @property
    def asset_names(self) -> List[str]:
        return [a.name for a in self.assets]

    @classmethod
    def from_json(cls, payload: object) -> "ReleaseInfo":
        """Строит `ReleaseInfo` из JSON ответа эндпоинта релизов.

        Принимает как поля GitHub (`tag_name`, `browser_download_url`),
        так и короткие (`version`/`tag`, `url`).
        """
        if not isinstance(payload, dict):
            raise ParseError("Ответ эндпоинта релизов не является JSON-объектом")
        tag = payload.get("tag_name") or payload.get("tag") or payload.get("version")
        if not isinstance(tag, str) or not tag.strip():
            raise ParseError("В ответе нет тега версии")
        raw_assets = payload.get("assets", [])
        if not isinstance(raw_assets, list):
            raise ParseError("Поле assets должно быть списком")
        assets = []
        for item in raw_assets:
            if not isinstance(item, dict):
                raise ParseError("Элемент assets должен быть объектом")
            name = item.get("name")
            url = item.get("browser_download_url") or item.get("url")
            if not isinstance(name, str) or not isinstance(url, str):
                raise ParseError("У файла релиза нет имени или ссылки")
            assets.append(ReleaseAsset(name=name, download_url=url))
        return cls(version_tag=tag.strip(), assets=tuple(assets))


@dataclass(frozen=True)
class UpdateResult:
    """Итог запуска самообновления."""
    final_state: UpdateState
    current_version: Version
    latest_version: Optional[Version] = None
    up_to_date: bool = False
    installed_path: Optional[Path] = None
    visited: Tuple[UpdateState, ...] = field(default=())

    @property
    def message(self) -> str:
        if self.up_to_date:
            return f"Уже установлена последняя версия (v{self.current_version})"
        return f"Обновлено до v{self.latest_version}"

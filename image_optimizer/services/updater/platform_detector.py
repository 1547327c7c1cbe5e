from __future__ import annotations

import platform
from typing import Optional, Sequence

from image_optimizer.models.errors import NoMatchingAsset
from image_optimizer.models.release_model import ReleaseAsset

_OS_ALIASES = {
    "linux": "linux",
    "darwin": "macos",
    "macos": "macos",
    "windows": "windows",
    "win32": "windows",
}

_ARCH_ALIASES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "x64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
}


def platform_target(system: Optional[str] = None, machine: Optional[str] = None) -> Optional[str]:
    """
    Идентификатор платформы вида "linux-x86_64", "macos-aarch64".
    None, если сочетание ОС и архитектуры не поддерживается.
    """
    os_name = _OS_ALIASES.get((system or platform.system()).lower())
    arch = _ARCH_ALIASES.get((machine or platform.machine()).lower())
    if os_name is None or arch is None:
        return None
    return f"{os_name}-{arch}"


def select_asset(assets: Sequence[ReleaseAsset], target: Optional[str]) -> ReleaseAsset:
    """Первый файл релиза, имя которого содержит `target` как подстроку.

    Raises:
        NoMatchingAsset: подходящего файла нет (со списком доступных имён).
    """
    names = [a.name for a in assets]
    if target:
        for asset in assets:
            if target in asset.name:
                return asset
    raise NoMatchingAsset(target or f"{platform.system()}-{platform.machine()}", names)

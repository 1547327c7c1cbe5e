from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple


@dataclass(frozen=True)
class FailureRecord:
    path: Path
    detail: str


@dataclass(frozen=True)
class RunSummary:
    """Итог пакета; создаётся агрегатором после барьера завершения."""
    total_files: int
    optimized: int
    skipped: int
    failed: int
    total_original_bytes: int
    total_optimized_bytes: int
    failures: Tuple[FailureRecord, ...] = ()
    scan_warnings: Tuple[str, ...] = ()
    cancelled: bool = False

    @property
    def saved_bytes(self) -> int:
        return self.total_original_bytes - self.total_optimized_bytes

    @property
    def percent_saved(self) -> float:
        if self.total_original_bytes <= 0:
            return 0.0
        return self.saved_bytes * 100.0 / self.total_original_bytes

    @property
    def has_failures(self) -> bool:
        return self.failed > 0

"""Потокобезопасный накопитель результатов обработки.

Принципы:
- Единственное разделяемое изменяемое состояние пакета; все счётчики
  меняются под одной блокировкой.
- Порядок поступления результатов не важен.
- Отображение (`listener`) вызывается вне блокировки.
"""
from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Set

from image_optimizer.models.image_model import OptimizationOutcome, OutcomeStatus
from image_optimizer.models.summary_model import FailureRecord, RunSummary

OutcomeListener = Callable[[OptimizationOutcome], None]


class ProgressAggregator:
    def __init__(self, listener: Optional[OutcomeListener] = None) -> None:
        self._listener = listener
        self._lock = threading.Lock()
        self._seen: Set[Path] = set()
        self._processed = 0
        self._optimized = 0
        self._skipped = 0
        self._failed = 0
        self._original_bytes = 0
        self._optimized_bytes = 0
        self._failures: List[FailureRecord] = []

    def record(self, outcome: OptimizationOutcome) -> None:
        """Учитывает результат одного файла.

        Raises:
            ValueError: для этого пути результат уже был записан.
        """
        with self._lock:
            if outcome.source_path in self._seen:
                raise ValueError(f"Повторный результат для {outcome.source_path}")
            self._seen.add(outcome.source_path)
            self._processed += 1
            self._original_bytes += outcome.original_size
            if outcome.status is OutcomeStatus.OPTIMIZED:
                self._optimized += 1
                self._optimized_bytes += outcome.optimized_size
            else:
                self._optimized_bytes += outcome.original_size
                if outcome.status is OutcomeStatus.SKIPPED:
                    self._skipped += 1
                else:
                    self._failed += 1
                    self._failures.append(FailureRecord(outcome.source_path, outcome.error_detail or "неизвестная ошибка"))
        if self._listener is not None:
            self._listener(outcome)

    @property
    def processed(self) -> int:
        with self._lock:
            return self._processed

    def summary(self, *, cancelled: bool = False, scan_warnings: Sequence[str] = ()) -> RunSummary:
        with self._lock:
            return RunSummary(
                total_files=self._processed,
                optimized=self._optimized,
                skipped=self._skipped,
                failed=self._failed,
                total_original_bytes=self._original_bytes,
                total_optimized_bytes=self._optimized_bytes,
                failures=tuple(self._failures),
                scan_warnings=tuple(scan_warnings),
                cancelled=cancelled,
            )

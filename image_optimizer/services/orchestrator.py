"""Оркестратор пакетной оптимизации.

Принципы:
- Полный конвейер одного файла (чтение -> масштаб -> оптимизация -> size guard ->
  резервная копия -> запись -> отчёт) выполняется целиком в одном воркере.
- Ошибка одного файла превращается в результат `Failed` и не прерывает пакет.
- Общее состояние: только `ProgressAggregator` и неизменяемый `RunConfig`.
- Отмена прекращает постановку новых задач; начатые задачи завершаются.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence, Set

from image_optimizer.models.errors import FileOptimizationError, IoError
from image_optimizer.models.image_model import ImageFormat, ImageTask, OptimizationOutcome
from image_optimizer.models.run_config import RunConfig
from image_optimizer.models.summary_model import RunSummary
from image_optimizer.services.file_service import BackupService, OutputRouter, write_atomic
from image_optimizer.services.image_service import MIN_ENCODED_SIZE
from image_optimizer.services.optimizers.base_optimizer import BaseOptimizer
from image_optimizer.services.optimizers.registry import build_registry
from image_optimizer.services.progress_aggregator import ProgressAggregator

logger = logging.getLogger(__name__)


class OptimizationOrchestrator:
    def __init__(
        self,
        config: RunConfig,
        aggregator: ProgressAggregator,
        optimizers: Optional[Dict[ImageFormat, BaseOptimizer]] = None,
        backup_service: Optional[BackupService] = None,
        router: Optional[OutputRouter] = None,
    ) -> None:
        self.config = config
        self.aggregator = aggregator
        self._optimizers = optimizers or build_registry()
        self._backup = backup_service or BackupService()
        self._router = router or OutputRouter(config.input_root, config.output_root)
        self._cancel = threading.Event()

    # ---- Public API ----
    def cancel(self) -> None:
        """Останавливает постановку новых задач; начатые доводятся до конца."""
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def run(self, paths: Iterable[Path], scan_warnings: Sequence[str] = ()) -> RunSummary:
        """Обрабатывает все пути на пуле потоков и возвращает итог после барьера.

        KeyboardInterrupt во время пакета трактуется как отмена: итог
        возвращается по уже обработанным файлам.
        """
        workers = self.config.worker_count
        max_in_flight = workers * 2
        in_flight: Set[Future] = set()
        submitted: Set[Path] = set()

        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="optimizer")
        try:
            try:
                for path in paths:
                    if self._cancel.is_set():
                        break
                    key = path.resolve()
                    if key in submitted:
                        logger.debug("already queued: %s", path)
                        continue
                    task = self._make_task(path)
                    if task is None:
                        continue
                    submitted.add(key)
                    in_flight.add(executor.submit(self._process_and_record, task))
                    if len(in_flight) >= max_in_flight:
                        done, in_flight = wait(in_flight, return_when=FIRST_COMPLETED)
                        self._collect(done)
                done, in_flight = wait(in_flight)
                self._collect(done)
            except KeyboardInterrupt:
                logger.warning("Прерывание: новые задачи не ставятся, ожидаем начатые")
                self.cancel()
                done, in_flight = wait(in_flight)
                self._collect(done)
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        return self.aggregator.summary(cancelled=self.cancelled, scan_warnings=list(scan_warnings))

    def process(self, task: ImageTask) -> OptimizationOutcome:
        """Полный конвейер одного файла; никогда не выбрасывает исключений."""
        path = task.source_path
        original_size = 0
        try:
            data = self._read(path)
            original_size = len(data)
            return self._optimize_bytes(task, data)
        except FileOptimizationError as exc:
            logger.info("Ошибка %s: %s", path, exc)
            return OptimizationOutcome.failed(path, original_size, str(exc))
        except Exception as exc:
            logger.exception("Непредвиденная ошибка при обработке %s", path)
            return OptimizationOutcome.failed(path, original_size, f"{type(exc).__name__}: {exc}")

    # ---- Helpers ----
    def _make_task(self, path: Path) -> Optional[ImageTask]:
        fmt = ImageFormat.from_extension(path.suffix)
        if fmt is None:
            logger.debug("unsupported extension: %s", path)
            return None
        return ImageTask(source_path=path, detected_format=fmt, config_snapshot=self.config)

    def _process_and_record(self, task: ImageTask) -> OptimizationOutcome:
        outcome = self.process(task)
        self.aggregator.record(outcome)
        return outcome

    @staticmethod
    def _collect(done: Iterable[Future]) -> None:
        for future in done:
            # surfaces bugs in the aggregator itself; per-file errors never get here
            future.result()

    @staticmethod
    def _read(path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as exc:
            raise IoError(path, f"Не удалось прочитать {path}: {exc}") from exc

    def _optimize_bytes(self, task: ImageTask, data: bytes) -> OptimizationOutcome:
        path = task.source_path
        config = task.config_snapshot
        original_size = len(data)

        if original_size < MIN_ENCODED_SIZE[task.detected_format] or original_size == 0:
            self._mirror_original(path, data, config)
            return OptimizationOutcome.skipped(path, original_size, "файл уже минимален")

        optimizer = self._optimizers[task.detected_format]
        result = optimizer.optimize(data, config, path)

        if len(result) >= original_size:
            # size guard: never grow a file
            self._mirror_original(path, data, config)
            return OptimizationOutcome.skipped(path, original_size, "оптимизация не уменьшила размер")

        destination = self._router.destination(path)
        if config.backup and config.in_place:
            self._backup.create_backup(path, data)
        self._write(destination, result)
        return OptimizationOutcome.optimized(path, original_size, len(result))

    def _mirror_original(self, path: Path, data: bytes, config: RunConfig) -> None:
        """В режиме выходного каталога копирует исходник, чтобы зеркало было полным."""
        if config.in_place:
            return
        self._write(self._router.destination(path), data)

    @staticmethod
    def _write(destination: Path, data: bytes) -> None:
        try:
            write_atomic(destination, data)
        except OSError as exc:
            raise IoError(destination, f"Не удалось записать {destination}: {exc}") from exc

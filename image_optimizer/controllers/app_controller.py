"""Контроллер приложения: связывает аргументы CLI, настройки и сервисы.

SOLID:
- SRP: класс только собирает конфигурацию и вызывает сервисы; обработка
  изображений и обновление живут в `services`.
- DIP: оптимизаторы, заменитель исполняемого файла и фабрика обновлятора
  передаются снаружи, что позволяет подменять их в тестах.
"""
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, TextIO

from image_optimizer.config.ini_config import IniSettings
from image_optimizer.models.errors import ConfigError, ScanError, UpdateError
from image_optimizer.models.image_model import ImageFormat
from image_optimizer.models.run_config import (
    DEFAULT_PNG_TIME_BUDGET_S,
    DEFAULT_QUALITY,
    DEFAULT_RELEASE_URL,
    PngSlowPass,
    RunConfig,
    UpdateConfig,
)
from image_optimizer.models.summary_model import RunSummary
from image_optimizer.services.optimizers.base_optimizer import BaseOptimizer
from image_optimizer.services.orchestrator import OptimizationOrchestrator
from image_optimizer.services.progress_aggregator import ProgressAggregator
from image_optimizer.services.scanner_service import ImageScanner
from image_optimizer.services.updater.executable_replacer import (
    ExecutableReplacer,
    current_executable,
    get_replacer,
)
from image_optimizer.services.updater.self_updater import SelfUpdater
from image_optimizer.ui.formatting import render_summary
from image_optimizer.ui.progress_display import ProgressDisplay
from image_optimizer.version import __version__

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 3
EXIT_INTERRUPTED = 130

UpdaterFactory = Callable[[UpdateConfig], SelfUpdater]


def _pick(cli_value, ini_value, default):
    if cli_value is not None:
        return cli_value
    if ini_value is not None:
        return ini_value
    return default


@dataclass
class AppController:
    """Выполняет один запуск программы и возвращает код выхода.

    Ответственности:
    - Слияние флагов CLI и INI-настроек в `RunConfig` / `UpdateConfig`.
    - Режим оптимизации: сканирование, пул потоков, живой вывод, итог.
    - Режим обновления: запуск автомата самообновления.
    - Отображение ошибок на коды выхода.
    """
    settings: IniSettings = field(default_factory=IniSettings)
    stdout: TextIO = sys.stdout
    replacer: ExecutableReplacer = field(default_factory=get_replacer)
    executable: Optional[Path] = None
    updater_factory: Optional[UpdaterFactory] = None
    optimizers: Optional[Dict[ImageFormat, BaseOptimizer]] = None

    def run(self, args: argparse.Namespace) -> int:
        self._cleanup_previous_update()
        try:
            if args.update:
                return self.run_update()
            return self.run_optimize(args)
        except (ConfigError, ScanError) as exc:
            logger.debug("fatal: %s", exc)
            self._print(f"Ошибка: {exc}")
            return EXIT_FATAL
        except KeyboardInterrupt:
            self._print("Прервано")
            return EXIT_INTERRUPTED

    # ---- Optimize mode ----
    def build_run_config(self, args: argparse.Namespace) -> RunConfig:
        s = self.settings
        input_path = Path(args.input)
        # a single file is processed relative to its own directory
        input_root = input_path.parent if input_path.is_file() else input_path
        slow_pass = PngSlowPass(args.png_slow_pass) if args.png_slow_pass else None
        return RunConfig(
            input_root=input_root,
            output_root=args.output,
            quality=_pick(args.quality, s.quality, DEFAULT_QUALITY),
            lossless=_pick(args.lossless, s.lossless, False),
            recursive=_pick(args.recursive, s.recursive, False),
            max_edge_px=_pick(args.max_size, s.max_edge_px, None),
            backup=_pick(args.backup, s.backup, False),
            workers=_pick(args.workers, s.workers, None),
            png_slow_pass=_pick(slow_pass, s.png_slow_pass, PngSlowPass.BUDGET),
            png_time_budget_s=_pick(None, s.png_time_budget_s, DEFAULT_PNG_TIME_BUDGET_S),
            fail_on_error=_pick(args.fail_on_error, s.fail_on_error, False),
        )

    def run_optimize(self, args: argparse.Namespace) -> int:
        config = self.build_run_config(args)
        if config.backup and not config.in_place:
            logger.info("--backup ignored: originals stay untouched when --output is set")

        exclude = (config.output_root,) if config.output_root is not None else ()
        scanner = ImageScanner(Path(args.input), recursive=config.recursive, exclude=exclude)
        paths: List[Path] = list(scanner.scan())
        self._print(f"Найдено изображений: {len(paths)}")
        if not paths:
            for warning in scanner.warnings:
                self._print(f"  {warning}")
            return EXIT_OK

        with ProgressDisplay(total=len(paths), enabled=not args.no_progress) as display:
            aggregator = ProgressAggregator(listener=display.on_outcome)
            orchestrator = OptimizationOrchestrator(config, aggregator, optimizers=self.optimizers)
            summary = orchestrator.run(paths, scan_warnings=scanner.warnings)

        self._print(render_summary(summary))
        return self.exit_code(summary, config)

    @staticmethod
    def exit_code(summary: RunSummary, config: RunConfig) -> int:
        if summary.cancelled:
            return EXIT_INTERRUPTED
        if summary.has_failures and config.fail_on_error:
            return EXIT_PARTIAL_FAILURE
        return EXIT_OK

    # ---- Update mode ----
    def build_update_config(self) -> UpdateConfig:
        s = self.settings
        return UpdateConfig(
            current_version=__version__,
            release_url=_pick(None, s.release_url, DEFAULT_RELEASE_URL),
            timeout_seconds=_pick(None, s.update_timeout_seconds, 30),
            max_retries=_pick(None, s.update_max_retries, 3),
        )

    def run_update(self) -> int:
        config = self.build_update_config()
        if self.updater_factory is not None:
            updater = self.updater_factory(config)
        else:
            updater = SelfUpdater(config, replacer=self.replacer, executable=self.executable)
        try:
            result = updater.run()
        except UpdateError as exc:
            where = f" ({exc.state.value})" if exc.state is not None else ""
            logger.debug("update failed%s: %s", where, exc)
            self._print(f"Ошибка обновления{where}: {exc}")
            return EXIT_FATAL
        self._print(result.message)
        return EXIT_OK

    # ---- Helpers ----
    def _cleanup_previous_update(self) -> None:
        executable = self.executable or current_executable()
        try:
            self.replacer.cleanup_leftovers(executable)
        except OSError as exc:
            logger.warning("Не удалось убрать следы прошлого обновления: %s", exc)

    def _print(self, message: str) -> None:
        print(message, file=self.stdout)

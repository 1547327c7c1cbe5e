"""Разбор аргументов командной строки и настройка логирования."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from image_optimizer.models.run_config import PngSlowPass
from image_optimizer.version import __version__

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
DATE_FORMAT = "%H:%M:%S"


def _positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"ожидается целое число, получено {raw!r}")
    if value <= 0:
        raise argparse.ArgumentTypeError(f"ожидается положительное число, получено {value}")
    return value


def _quality(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"ожидается целое число, получено {raw!r}")
    if not 1 <= value <= 100:
        raise argparse.ArgumentTypeError(f"качество должно быть в диапазоне 1..100, получено {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    # Defaults stay None so that INI values can fill the gaps.
    parser = argparse.ArgumentParser(
        prog="image-optimizer",
        description="Пакетная оптимизация JPEG, PNG, WebP и SVG.",
    )
    parser.add_argument("input", nargs="?", type=Path, help="Каталог или файл изображения")
    parser.add_argument("-o", "--output", type=Path, default=None,
                        help="Каталог для результатов (по умолчанию файлы заменяются на месте)")
    parser.add_argument("-q", "--quality", type=_quality, default=None,
                        help="Качество JPEG/WebP, 1..100 (по умолчанию 85)")
    parser.add_argument("--lossless", action="store_true", default=None,
                        help="Только оптимизации без потерь")
    parser.add_argument("-r", "--recursive", action="store_true", default=None,
                        help="Обходить подкаталоги")
    parser.add_argument("--max-size", dest="max_size", type=_positive_int, default=None, metavar="PX",
                        help="Уменьшить изображения так, чтобы длинная сторона была не больше PX")
    parser.add_argument("--backup", action="store_true", default=None,
                        help="Сохранять копию оригинала как <файл>.bak (только при замене на месте)")
    parser.add_argument("--workers", type=_positive_int, default=None, metavar="N",
                        help="Число потоков (по умолчанию число ядер)")
    parser.add_argument("--png-slow-pass", dest="png_slow_pass", default=None,
                        choices=[p.value for p in PngSlowPass],
                        help="Медленный проход PNG: never, budget (по умолчанию) или always")
    parser.add_argument("--fail-on-error", dest="fail_on_error", action="store_true", default=None,
                        help="Код выхода 3, если хотя бы один файл не удалось обработать")
    parser.add_argument("-v", "--verbose", action="store_true", help="Подробный лог")
    parser.add_argument("--log-file", dest="log_file", type=Path, default=None, metavar="PATH",
                        help="Дополнительно писать лог в файл")
    parser.add_argument("--no-progress", dest="no_progress", action="store_true",
                        help="Не показывать полосу прогресса")
    parser.add_argument("--update", action="store_true", help="Обновить программу до последней версии")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.input is None and not args.update:
        parser.error("требуется путь INPUT (или --update)")
    return args


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)
    logging.basicConfig(
        level=logging.DEBUG if log_file is not None else level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )
    handlers[0].setLevel(level)

    # Pillow is chatty at DEBUG
    for name in ("PIL", "PIL.Image", "PIL.PngImagePlugin", "PIL.TiffImagePlugin"):
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

from __future__ import annotations

import sys
from typing import Optional, TextIO

from tqdm import tqdm

from image_optimizer.models.image_model import OptimizationOutcome
from image_optimizer.ui.formatting import format_outcome


class ProgressDisplay:
    """Живой вывод: полоса прогресса и строка на каждый файл.

    Вызывается из потоков-воркеров; tqdm синхронизирует вывод сам.
    """
    def __init__(self, total: Optional[int] = None, enabled: bool = True,
                 stream: Optional[TextIO] = None) -> None:
        self._stream = stream or sys.stderr
        self._bar = tqdm(
            total=total,
            unit="file",
            desc="Оптимизация",
            disable=not enabled,
            file=self._stream,
            dynamic_ncols=True,
        )

    def on_outcome(self, outcome: OptimizationOutcome) -> None:
        tqdm.write(format_outcome(outcome), file=self._stream)
        self._bar.update(1)

    def close(self) -> None:
        self._bar.close()

    def __enter__(self) -> "ProgressDisplay":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

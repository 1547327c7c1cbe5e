from __future__ import annotations

import io
import logging
import time
from typing import Dict, Optional

import zopfli
from PIL import Image

from image_optimizer.models.image_model import ImageFormat
from image_optimizer.models.run_config import PngSlowPass, RunConfig
from image_optimizer.services.image_service import ImageService
from image_optimizer.services.optimizers.base_optimizer import RasterOptimizer
from image_optimizer.services.reduction_service import ReductionService

logger = logging.getLogger(__name__)

# zlib strategies: default, filtered, RLE
FAST_STRATEGIES = (0, 1, 3)


class PngOptimizer(RasterOptimizer):
    """
    PNG всегда без потерь:
    1) быстрый проход: беспотерьные редукции цвета x стратегии deflate, выбирается минимум;
    2) медленный проход (Zopfli) по политике `config.png_slow_pass`.
    """
    format = ImageFormat.PNG

    def __init__(self, image_service: Optional[ImageService] = None,
                 reduction_service: Optional[ReductionService] = None) -> None:
        super().__init__(image_service)
        self._reduction = reduction_service or ReductionService()

    def _encode(self, source: bytes, original: Image.Image, image: Image.Image, config: RunConfig) -> bytes:
        started = time.monotonic()
        best: Optional[bytes] = None
        best_label = ""
        for label, candidate, params in self._reduction.candidates(image):
            for strategy in FAST_STRATEGIES:
                encoded = self._save(candidate, compress_type=strategy, **params)
                if best is None or len(encoded) < len(best):
                    best, best_label = encoded, f"{label}/z{strategy}"
        elapsed = time.monotonic() - started
        logger.debug("png fast pass: %s, %d bytes in %.2fs", best_label, len(best), elapsed)

        if self._wants_slow_pass(config, elapsed):
            slow = zopfli.ZopfliPNG().optimize(best)
            if len(slow) < len(best):
                best = slow
        return best

    @staticmethod
    def _wants_slow_pass(config: RunConfig, fast_elapsed: float) -> bool:
        policy = config.png_slow_pass
        if policy is PngSlowPass.ALWAYS:
            return True
        if policy is PngSlowPass.NEVER:
            return False
        return fast_elapsed <= config.png_time_budget_s

    @staticmethod
    def _save(image: Image.Image, **params: object) -> bytes:
        extra: Dict[str, object] = {}
        if image.info.get("icc_profile"):
            extra["icc_profile"] = image.info["icc_profile"]
        buf = io.BytesIO()
        image.save(buf, format="PNG", compress_level=9, **params, **extra)
        return buf.getvalue()

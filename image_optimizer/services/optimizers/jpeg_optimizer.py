from __future__ import annotations

import io

from mozjpeg_lossless_optimization import optimize as mozjpeg_optimize
from PIL import Image

from image_optimizer.models.image_model import ImageFormat
from image_optimizer.models.run_config import RunConfig
from image_optimizer.services.optimizers.base_optimizer import RasterOptimizer

_JPEG_MODES = ("RGB", "L", "CMYK")


class JpegOptimizer(RasterOptimizer):
    """
    Потери: перекодирование с качеством `config.quality`.
    Без потерь: только перестройка энтропийного кодирования (MozJPEG),
    коэффициенты DCT и цветность не меняются; качество игнорируется.
    """
    format = ImageFormat.JPEG

    def _encode(self, source: bytes, original: Image.Image, image: Image.Image, config: RunConfig) -> bytes:
        resized = image is not original
        if config.lossless and not resized:
            return mozjpeg_optimize(source)

        if config.lossless:
            # resized pixels are new data: keep full chroma
            encoded = self._save(image, quality=100, subsampling=0)
        else:
            encoded = self._save(image, quality=int(config.quality))
        return mozjpeg_optimize(encoded)

    def _save(self, image: Image.Image, **params) -> bytes:
        if image.mode not in _JPEG_MODES:
            image = image.convert("RGB")
        extra = {}
        for key in ("icc_profile", "exif"):
            if image.info.get(key):
                extra[key] = image.info[key]
        buf = io.BytesIO()
        image.save(buf, format="JPEG", optimize=True, progressive=True, **params, **extra)
        return buf.getvalue()

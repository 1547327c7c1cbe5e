from __future__ import annotations

import io

from PIL import Image

from image_optimizer.models.image_model import ImageFormat
from image_optimizer.models.run_config import RunConfig
from image_optimizer.services.optimizers.base_optimizer import RasterOptimizer


class WebpOptimizer(RasterOptimizer):
    format = ImageFormat.WEBP

    def _encode(self, source: bytes, original: Image.Image, image: Image.Image, config: RunConfig) -> bytes:
        """
        Перекодирование WebP: с потерями при `config.quality`
        или без потерь при `config.lossless`. Альфа-канал, ICC и EXIF сохраняются.
        """
        extra = {key: image.info[key] for key in ("icc_profile", "exif") if image.info.get(key)}
        has_alpha = image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info)
        image = image.convert("RGBA" if has_alpha else "RGB")

        buf = io.BytesIO()
        if config.lossless:
            # quality is encoder effort in lossless mode
            image.save(buf, format="WEBP", lossless=True, quality=100, method=6, **extra)
        else:
            image.save(buf, format="WEBP", quality=int(config.quality), method=6, **extra)
        return buf.getvalue()

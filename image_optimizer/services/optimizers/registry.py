from __future__ import annotations

from typing import Dict, Optional

from image_optimizer.models.image_model import ImageFormat
from image_optimizer.services.image_service import ImageService
from image_optimizer.services.optimizers.base_optimizer import BaseOptimizer
from image_optimizer.services.optimizers.jpeg_optimizer import JpegOptimizer
from image_optimizer.services.optimizers.png_optimizer import PngOptimizer
from image_optimizer.services.optimizers.svg_optimizer import SvgOptimizer
from image_optimizer.services.optimizers.webp_optimizer import WebpOptimizer


def build_registry(image_service: Optional[ImageService] = None) -> Dict[ImageFormat, BaseOptimizer]:
    """Один обработчик на каждый вариант `ImageFormat`; набор закрыт."""
    image_service = image_service or ImageService()
    registry: Dict[ImageFormat, BaseOptimizer] = {
        ImageFormat.JPEG: JpegOptimizer(image_service),
        ImageFormat.PNG: PngOptimizer(image_service),
        ImageFormat.WEBP: WebpOptimizer(image_service),
        ImageFormat.SVG: SvgOptimizer(image_service),
    }
    missing = set(ImageFormat) - set(registry)
    if missing:
        raise RuntimeError(f"no optimizer for {missing}")
    return registry

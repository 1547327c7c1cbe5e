"""Общий контракт оптимизаторов: `optimize(bytes, RunConfig) -> bytes`.

Принципы:
- OCP/LSP: растровые форматы реализуют только `_encode`; декодирование,
  проверка формата и масштабирование общие для растровых форматов.
- Ошибки кодеков заворачиваются в `OptimizeError`; сравнение размеров
  (size guard) выполняет оркестратор, а не оптимизатор.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from PIL import Image

from image_optimizer.models.errors import FileOptimizationError, OptimizeError
from image_optimizer.models.image_model import ImageFormat
from image_optimizer.models.run_config import RunConfig
from image_optimizer.services.image_service import ImageService

logger = logging.getLogger(__name__)


class BaseOptimizer(ABC):
    format: ImageFormat

    def __init__(self, image_service: Optional[ImageService] = None) -> None:
        self._image_service = image_service or ImageService()

    def optimize(self, data: bytes, config: RunConfig, path: Optional[Path] = None) -> bytes:
        """Возвращает перекодированные байты (не обязательно меньше исходных).

        Raises:
            FormatMismatch: содержимое не соответствует формату оптимизатора.
            DecodeError: данные не декодируются.
            OptimizeError: кодировщик завершился ошибкой или вариант не поддерживается.
        """
        self._image_service.verify_format(data, self.format, path)
        try:
            return self._optimize_verified(data, config, path)
        except FileOptimizationError:
            raise
        except (OSError, ValueError, TypeError, RuntimeError) as exc:
            raise OptimizeError(path, f"Ошибка кодировщика {self.format.value}: {exc}") from exc

    @abstractmethod
    def _optimize_verified(self, data: bytes, config: RunConfig, path: Optional[Path]) -> bytes:
        """Оптимизирует данные, формат которых уже проверен."""


class RasterOptimizer(BaseOptimizer):
    """Декодирование и масштабирование перед кодированием растровых форматов."""

    def _optimize_verified(self, data: bytes, config: RunConfig, path: Optional[Path]) -> bytes:
        image = self._image_service.decode(data, self.format, path)
        if getattr(image, "is_animated", False):
            raise OptimizeError(path, f"Анимированный {self.format.value} не поддерживается")
        resized = self._image_service.resize(image, config.max_edge_px)
        if resized is not image:
            logger.debug("%s: resized %sx%s -> %sx%s", path, *image.size, *resized.size)
        return self._encode(data, image, resized, config)

    @abstractmethod
    def _encode(self, source: bytes, original: Image.Image, image: Image.Image, config: RunConfig) -> bytes:
        """Кодирует `image`; `original`/`source` доступны для беспотерьных путей."""

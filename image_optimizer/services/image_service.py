"""Определение формата, декодирование и масштабирование растровых данных.

Принципы:
- SRP: класс отвечает только за байты <-> `PIL.Image` и базовые проверки.
- Формат определяется по содержимому; расширению не доверяем вслепую.
"""
from __future__ import annotations

import io
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from image_optimizer.models.errors import DecodeError, FormatMismatch
from image_optimizer.models.image_model import ImageFormat
from image_optimizer.services.resize_calculator import target_dimensions

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8\xff"

# Smallest valid file of each raster format, in bytes.
MIN_ENCODED_SIZE = {
    ImageFormat.JPEG: 125,
    ImageFormat.PNG: 67,
    ImageFormat.WEBP: 26,
    ImageFormat.SVG: 0,
}

_PIL_FORMATS = {
    ImageFormat.JPEG: "JPEG",
    ImageFormat.PNG: "PNG",
    ImageFormat.WEBP: "WEBP",
}


def sniff_format(data: bytes) -> Optional[ImageFormat]:
    """Определяет формат по сигнатуре; None, если формат не распознан."""
    if data.startswith(PNG_SIGNATURE):
        return ImageFormat.PNG
    if data.startswith(JPEG_SIGNATURE):
        return ImageFormat.JPEG
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return ImageFormat.WEBP
    head = data[:4096].lstrip(b"\xef\xbb\xbf \t\r\n").lower()
    if head.startswith((b"<?xml", b"<svg", b"<!--", b"<!doctype svg")) and b"<svg" in data[:65536].lower():
        return ImageFormat.SVG
    return None


class ImageService:
    def verify_format(self, data: bytes, expected: ImageFormat, path: Optional[Path] = None) -> ImageFormat:
        """Проверяет, что содержимое соответствует ожидаемому формату.

        Raises:
            FormatMismatch: если сигнатура указывает на другой формат или не распознана.
        """
        actual = sniff_format(data)
        if actual is not expected:
            found = actual.value if actual else "неизвестный"
            raise FormatMismatch(path, f"Расширение указывает на {expected.value}, а содержимое: {found}")
        return actual

    def decode(self, data: bytes, fmt: ImageFormat, path: Optional[Path] = None) -> Image.Image:
        """Декодирует растровые байты в `PIL.Image.Image` (полностью загруженный).

        Raises:
            DecodeError: если данные повреждены или не читаются как `fmt`.
        """
        try:
            image = Image.open(io.BytesIO(data), formats=[_PIL_FORMATS[fmt]])
            image.load()
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
            raise DecodeError(path, f"Не удалось декодировать {fmt.value}: {exc}") from exc
        return image

    def resize(self, image: Image.Image, max_edge: Optional[int]) -> Image.Image:
        """Уменьшает изображение до `max_edge` по длинной стороне (Lanczos).

        Возвращает исходный объект, если масштабирование не требуется.
        """
        width, height = image.size
        new_size = target_dimensions(width, height, max_edge)
        if new_size == (width, height):
            return image
        if image.mode == "P":
            image = image.convert("RGBA")
        resized = image.resize(new_size, Image.Resampling.LANCZOS)
        if "icc_profile" in image.info:
            resized.info["icc_profile"] = image.info["icc_profile"]
        return resized

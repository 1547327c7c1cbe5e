from __future__ import annotations

import io
from pathlib import Path
from typing import Callable

import numpy as np
import pytest
from PIL import Image


def _encode(image: Image.Image, fmt: str, **params) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format=fmt, **params)
    return buf.getvalue()


@pytest.fixture
def encode() -> Callable[..., bytes]:
    """encode(image, "PNG", **save_params) -> bytes"""
    return _encode


@pytest.fixture
def noise_image() -> Callable[..., Image.Image]:
    """Deterministic RGB noise: hard to compress, large at high quality."""
    def make(width: int = 256, height: int = 256, mode: str = "RGB", seed: int = 7) -> Image.Image:
        rng = np.random.default_rng(seed)
        channels = len(mode)
        arr = rng.integers(0, 256, size=(height, width, channels), dtype=np.uint8)
        if channels == 1:
            arr = arr[:, :, 0]
        return Image.fromarray(arr)
    return make


@pytest.fixture
def flat_image() -> Callable[..., Image.Image]:
    defaults = {"RGBA": (200, 40, 40, 255), "RGB": (200, 40, 40), "L": 128, "LA": (128, 255)}

    def make(width: int = 200, height: int = 200, mode: str = "RGBA", color=None) -> Image.Image:
        return Image.new(mode, (width, height), defaults[mode] if color is None else color)
    return make


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, bytes], Path]:
    """write_file("sub/a.png", data) -> absolute path under tmp_path"""
    def write(relative: str, data: bytes) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path
    return write

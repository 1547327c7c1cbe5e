from __future__ import annotations

import io

import numpy as np
import pytest
from PIL import Image

from image_optimizer.models.errors import DecodeError, FormatMismatch, OptimizeError
from image_optimizer.models.image_model import ImageFormat
from image_optimizer.models.run_config import PngSlowPass, RunConfig
from image_optimizer.services.optimizers.jpeg_optimizer import JpegOptimizer
from image_optimizer.services.optimizers.png_optimizer import PngOptimizer
from image_optimizer.services.optimizers.registry import build_registry
from image_optimizer.services.optimizers.webp_optimizer import WebpOptimizer


def _open(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


def _config(**kwargs) -> RunConfig:
    kwargs.setdefault("png_slow_pass", PngSlowPass.NEVER)
    return RunConfig(input_root=None, **kwargs)


def test_registry_covers_every_format():
    registry = build_registry()
    assert set(registry) == set(ImageFormat)


# -----------------------------
# JPEG
# -----------------------------
def test_jpeg_lossy_reencode_shrinks_high_quality_source(encode, noise_image):
    source = encode(noise_image(256, 256), "JPEG", quality=100)

    out = JpegOptimizer().optimize(source, _config(quality=70))

    assert len(out) < len(source)
    image = _open(out)
    assert image.format == "JPEG"
    assert image.size == (256, 256)


def test_jpeg_resize_to_max_edge(encode, noise_image):
    source = encode(noise_image(400, 200), "JPEG", quality=90)

    out = JpegOptimizer().optimize(source, _config(max_edge_px=100))

    assert _open(out).size == (100, 50)


def test_jpeg_lossless_keeps_dimensions(encode, noise_image):
    source = encode(noise_image(128, 96), "JPEG", quality=90)

    out = JpegOptimizer().optimize(source, _config(lossless=True))

    image = _open(out)
    assert image.format == "JPEG"
    assert image.size == (128, 96)


def test_jpeg_rejects_png_content(encode, flat_image):
    with pytest.raises(FormatMismatch):
        JpegOptimizer().optimize(encode(flat_image(), "PNG"), _config())


def test_jpeg_truncated_is_decode_error(encode, noise_image):
    source = encode(noise_image(128, 128), "JPEG", quality=95)
    with pytest.raises(DecodeError):
        JpegOptimizer().optimize(source[: len(source) // 2], _config())


# -----------------------------
# PNG
# -----------------------------
def test_png_flat_image_shrinks_and_is_pixel_identical(encode, flat_image):
    original = flat_image(200, 200)
    source = encode(original, "PNG", compress_level=0)

    out = PngOptimizer().optimize(source, _config())

    assert len(out) < len(source)
    decoded = _open(out)
    assert decoded.size == original.size
    assert np.array_equal(np.asarray(decoded.convert("RGBA")), np.asarray(original))


def test_png_grayscale_rgb_is_pixel_identical(encode):
    gradient = np.tile(np.arange(256, dtype=np.uint8), (64, 1))
    original = Image.fromarray(np.stack([gradient] * 3, axis=2))
    source = encode(original, "PNG", compress_level=1)

    out = PngOptimizer().optimize(source, _config())

    assert np.array_equal(np.asarray(_open(out).convert("RGB")), np.asarray(original))


def test_png_transparency_survives_palette_reduction(encode):
    arr = np.zeros((32, 32, 4), dtype=np.uint8)
    arr[:16, :, :] = (255, 0, 0, 255)
    arr[16:, :16, :] = (0, 255, 0, 128)
    arr[16:, 16:, :] = (0, 0, 0, 0)
    original = Image.fromarray(arr)
    source = encode(original, "PNG", compress_level=0)

    out = PngOptimizer().optimize(source, _config())

    assert np.array_equal(np.asarray(_open(out).convert("RGBA")), arr)


def test_png_colour_key_transparency_survives_palette_reduction(encode):
    arr = np.zeros((32, 32, 3), dtype=np.uint8)
    arr[:, :16] = (255, 0, 0)
    arr[:, 16:] = (0, 255, 0)
    source = encode(Image.fromarray(arr), "PNG", transparency=(0, 255, 0), compress_level=0)
    before = np.asarray(_open(source).convert("RGBA"))
    assert before[..., 3].min() == 0

    out = PngOptimizer().optimize(source, _config())

    assert np.array_equal(np.asarray(_open(out).convert("RGBA")), before)


def test_png_slow_pass_output_is_pixel_identical(encode, noise_image):
    original = noise_image(32, 32)
    source = encode(original, "PNG")

    out = PngOptimizer().optimize(source, _config(png_slow_pass=PngSlowPass.ALWAYS))

    assert np.array_equal(np.asarray(_open(out).convert("RGB")), np.asarray(original))


@pytest.mark.parametrize(
    "policy, elapsed, expected",
    [
        (PngSlowPass.NEVER, 0.0, False),
        (PngSlowPass.ALWAYS, 100.0, True),
        (PngSlowPass.BUDGET, 0.5, True),
        (PngSlowPass.BUDGET, 5.0, False),
    ],
)
def test_png_slow_pass_policy(policy, elapsed, expected):
    config = RunConfig(input_root=None, png_slow_pass=policy, png_time_budget_s=2.0)
    assert PngOptimizer._wants_slow_pass(config, elapsed) is expected


def test_png_resize(encode, flat_image):
    source = encode(flat_image(300, 150), "PNG")
    out = PngOptimizer().optimize(source, _config(max_edge_px=60))
    assert _open(out).size == (60, 30)


def test_animated_png_is_rejected(encode, flat_image):
    first = flat_image(16, 16, color=(255, 0, 0, 255))
    second = flat_image(16, 16, color=(0, 0, 255, 255))
    source = encode(first, "PNG", save_all=True, append_images=[second])

    with pytest.raises(OptimizeError):
        PngOptimizer().optimize(source, _config())


# -----------------------------
# WebP
# -----------------------------
def test_webp_lossy_reencode_of_lossless_source_shrinks(encode, noise_image):
    source = encode(noise_image(128, 128), "WEBP", lossless=True)

    out = WebpOptimizer().optimize(source, _config(quality=60))

    assert len(out) < len(source)
    image = _open(out)
    assert image.format == "WEBP"
    assert image.size == (128, 128)


def test_webp_lossless_keeps_pixels_and_alpha(encode, noise_image):
    rgb = np.asarray(noise_image(48, 48))
    alpha = np.full((48, 48, 1), 128, dtype=np.uint8)
    original = Image.fromarray(np.concatenate([rgb, alpha], axis=2))
    source = encode(original, "WEBP", lossless=True)

    out = WebpOptimizer().optimize(source, _config(lossless=True))

    decoded = _open(out)
    assert decoded.mode == "RGBA"
    assert np.array_equal(np.asarray(decoded), np.asarray(original))


def test_webp_resize(encode, noise_image):
    source = encode(noise_image(200, 100), "WEBP", quality=90)
    out = WebpOptimizer().optimize(source, _config(max_edge_px=50))
    assert _open(out).size == (50, 25)


def test_webp_reencode_keeps_exif(encode, noise_image):
    exif = Image.Exif()
    exif[0x010F] = "TestCam"
    source = encode(noise_image(64, 64), "WEBP", lossless=True, exif=exif.tobytes())

    out = WebpOptimizer().optimize(source, _config(quality=60))

    assert _open(out).getexif().get(0x010F) == "TestCam"

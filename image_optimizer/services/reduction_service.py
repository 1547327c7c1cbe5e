from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import numpy as np
from PIL import Image

# (label, image, extra encoder kwargs)
Candidate = Tuple[str, Image.Image, Dict[str, object]]


class ReductionService:
    """Беспотерьные преобразования цветового представления перед кодированием PNG."""

    # ---------- Вспомогательные функции ----------
    def _image_to_np(self, image: Image.Image) -> np.ndarray:
        """
        Возвращает uint8-массив (H, W, C); для одноканальных режимов C = 1.
        """
        arr = np.asarray(image, dtype=np.uint8)
        if arr.ndim == 2:
            arr = arr[:, :, np.newaxis]
        return arr

    def _pack_colors(self, arr: np.ndarray) -> np.ndarray:
        """
        Упаковывает пиксели RGB/RGBA в uint32 (альфа в старшем байте),
        чтобы np.unique упорядочил полупрозрачные цвета первыми.
        """
        a = arr.astype(np.uint32)
        packed = (a[..., 0] << 16) | (a[..., 1] << 8) | a[..., 2]
        if arr.shape[2] == 4:
            packed |= a[..., 3] << 24
        else:
            packed |= np.uint32(0xFF000000)
        return packed.reshape(-1)

    # ---------- 1) Альфа-канал ----------
    def drop_opaque_alpha(self, image: Image.Image) -> Image.Image:
        """
        RGBA/LA с полностью непрозрачной альфой -> RGB/L.
        """
        if image.mode not in ("RGBA", "LA"):
            return image
        alpha = np.asarray(image.getchannel("A"), dtype=np.uint8)
        if alpha.size and int(alpha.min()) == 255:
            return image.convert("RGB" if image.mode == "RGBA" else "L")
        return image

    # ---------- 2) Оттенки серого ----------
    def collapse_grayscale(self, image: Image.Image) -> Image.Image:
        """
        RGB/RGBA, где R == G == B во всех пикселях -> L/LA.
        """
        if image.mode not in ("RGB", "RGBA"):
            return image
        arr = self._image_to_np(image)
        r, g, b = arr[..., 0], arr[..., 1], arr[..., 2]
        if np.array_equal(r, g) and np.array_equal(g, b):
            return image.convert("L" if image.mode == "RGB" else "LA")
        return image

    # ---------- 3) Точная палитра ----------
    def exact_palette(self, image: Image.Image) -> Optional[Tuple[Image.Image, Dict[str, object]]]:
        """
        Если в RGB/RGBA изображении не больше 256 уникальных цветов,
        строит палитровое (P) изображение без потерь.
        Возвращает (изображение, параметры кодировщика) или None.
        """
        if image.mode not in ("RGB", "RGBA"):
            return None
        arr = self._image_to_np(image)
        packed = self._pack_colors(arr)
        if packed.size == 0:
            return None
        colors, inverse = np.unique(packed, return_inverse=True)
        if colors.size > 256:
            return None

        rgb = np.stack(
            [(colors >> 16) & 0xFF, (colors >> 8) & 0xFF, colors & 0xFF], axis=1
        ).astype(np.uint8)
        indices = inverse.reshape(-1).astype(np.uint8)
        pal = Image.frombytes("P", image.size, indices.tobytes())
        pal.putpalette(rgb.tobytes())

        params: Dict[str, object] = {}
        alphas = ((colors >> 24) & 0xFF).astype(np.uint8).tobytes().rstrip(b"\xff")
        if alphas:
            params["transparency"] = alphas
        return pal, params

    def candidates(self, image: Image.Image) -> List[Candidate]:
        """
        Варианты представления одного и того же изображения для перебора
        кодировщиком. Первый элемент всегда присутствует.
        """
        if image.mode in ("RGB", "L") and "transparency" in image.info:
            # tRNS colour key becomes a real alpha channel
            image = image.convert("RGBA")
        params: Dict[str, object] = {}
        if image.mode == "P" and "transparency" in image.info:
            params["transparency"] = image.info["transparency"]
        reduced = self.collapse_grayscale(self.drop_opaque_alpha(image))
        out: List[Candidate] = [("truecolor" if reduced.mode != "P" else "palette", reduced, params)]

        palette = self.exact_palette(reduced)
        if palette is not None:
            pal_image, pal_params = palette
            out.append(("exact-palette", pal_image, pal_params))
        return out

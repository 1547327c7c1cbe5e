from __future__ import annotations

from typing import Optional, Tuple


def target_dimensions(width: int, height: int, max_edge: Optional[int]) -> Tuple[int, int]:
    """
    Целевые размеры при ограничении длинной стороны `max_edge`.
    Никогда не увеличивает изображение; пропорции сохраняются
    с точностью до округления (не меньше 1 px по каждой стороне).
    """
    longer = max(width, height)
    if max_edge is None or longer <= max_edge:
        return width, height

    scale = max_edge / longer
    new_w = max(1, int(width * scale + 0.5))
    new_h = max(1, int(height * scale + 0.5))
    return new_w, new_h

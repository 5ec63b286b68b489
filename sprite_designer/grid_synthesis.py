"""
Functions for rendering the grid overlay used as a sprite-sheet seed image.

The same (rows, cols, resolution) always renders the same pixels, so results
are memoised.
"""

from __future__ import annotations

import logging
import math
from functools import lru_cache

import cv2
import numpy as np

from sprite_designer.constants import (
    GRID_CACHE_SIZE,
    GRID_STROKE_BGRA,
    GRID_STROKE_DIVISOR,
    MIN_GRID_SHORT_EDGE,
)
from sprite_designer.image_io import encode_data_url, encode_png
from sprite_designer.models import Resolution, positive_int

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def grid_dimensions(rows: int, cols: int, resolution: Resolution | str) -> tuple[int, int]:
    """
    Compute the (width, height) of the seed image for a grid.

    The tier fixes the long edge; the short edge follows the cols/rows aspect
    ratio and never drops below MIN_GRID_SHORT_EDGE.
    """
    safe_rows = positive_int(rows)
    safe_cols = positive_int(cols)
    long_edge = Resolution.parse(resolution).long_edge

    ratio = safe_cols / safe_rows
    if ratio >= 1:
        return long_edge, max(MIN_GRID_SHORT_EDGE, _round_half_up(long_edge / ratio))
    return max(MIN_GRID_SHORT_EDGE, _round_half_up(long_edge * ratio)), long_edge


def stroke_width(width: int, height: int) -> int:
    return max(1, _round_half_up(min(width, height) / GRID_STROKE_DIVISOR))


def _stroke_span(center: int, thickness: int, limit: int) -> tuple[int, int]:
    """Pixel range [start, end) of a line of the given thickness centred on a pixel."""
    start = center - (thickness - 1) // 2
    return max(0, start), min(limit, start + thickness)


def _fill_columns(img: np.ndarray, x1: int, x2: int) -> None:
    cv2.rectangle(img, (x1, 0), (x2 - 1, img.shape[0] - 1), GRID_STROKE_BGRA, -1)


def _fill_rows(img: np.ndarray, y1: int, y2: int) -> None:
    cv2.rectangle(img, (0, y1), (img.shape[1] - 1, y2 - 1), GRID_STROKE_BGRA, -1)


def render_grid(rows: int, cols: int, resolution: Resolution | str) -> np.ndarray:
    """
    Render the grid overlay as a BGRA image.

    The canvas is fully transparent apart from a border along the outermost
    pixels and one line per internal row and column boundary, placed at
    round(i * size / n).

    Args:
        rows: Number of sprite rows (clamped to >= 1)
        cols: Number of sprite columns (clamped to >= 1)
        resolution: Resolution tier deciding the long edge

    Returns:
        BGRA image (uint8) of shape (height, width, 4)
    """
    safe_rows = positive_int(rows)
    safe_cols = positive_int(cols)
    width, height = grid_dimensions(safe_rows, safe_cols, resolution)
    thickness = stroke_width(width, height)

    img = np.zeros((height, width, 4), dtype=np.uint8)

    # Border, the same thickness inward from every edge
    _fill_columns(img, 0, min(thickness, width))
    _fill_columns(img, max(0, width - thickness), width)
    _fill_rows(img, 0, min(thickness, height))
    _fill_rows(img, max(0, height - thickness), height)

    for col in range(1, safe_cols):
        _fill_columns(img, *_stroke_span(_round_half_up(col * width / safe_cols), thickness, width))

    for row in range(1, safe_rows):
        _fill_rows(img, *_stroke_span(_round_half_up(row * height / safe_rows), thickness, height))

    return img


@lru_cache(maxsize=GRID_CACHE_SIZE)
def _synthesize(rows: int, cols: int, resolution: Resolution) -> str:
    try:
        img = render_grid(rows, cols, resolution)
        return encode_data_url(encode_png(img), "image/png")
    except (cv2.error, MemoryError, ValueError) as e:
        logger.warning("Could not render %dx%d grid at %s: %s", rows, cols, resolution.value, e)
        return ""


def synthesize_grid(rows: int, cols: int, resolution: Resolution | str) -> str:
    """
    Render the seed grid for a sprite sheet as a PNG data URL.

    Returns:
        "data:image/png;base64,..." or an empty string when the image could not
        be created. Callers treat an empty result as "no seed available".
    """
    return _synthesize(positive_int(rows), positive_int(cols), Resolution.parse(resolution))

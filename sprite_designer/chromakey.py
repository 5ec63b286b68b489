"""
Functions for removing a green-screen background from generated images.

Pixels are matched against pure green by how bright the green channel is, how
far it leads red and blue, and the squared RGB distance to (0, 255, 0).
"""

from __future__ import annotations

import cv2
import numpy as np

from sprite_designer.constants import (
    CHROMA_EXPAND,
    CHROMA_FRINGE,
    CHROMA_FRINGE_PASSES,
    CHROMA_SEED,
    CHROMA_STRONG,
)
from sprite_designer.image_io import to_bgra


def chroma_mask(img: np.ndarray, thresholds: tuple[int, int, int]) -> np.ndarray:
    """
    Mark pixels close to chroma green.

    Args:
        img: BGR or BGRA image (uint8)
        thresholds: (min green, min lead of green over max(red, blue), max squared distance to pure green)

    Returns:
        Boolean mask of matching pixels
    """
    min_green, min_lead, max_dist_sq = thresholds
    b = img[:, :, 0].astype(np.int32)
    g = img[:, :, 1].astype(np.int32)
    r = img[:, :, 2].astype(np.int32)

    lead = g - np.maximum(r, b)
    dist_sq = r * r + (255 - g) ** 2 + b * b
    return (g >= min_green) & (lead >= min_lead) & (dist_sq <= max_dist_sq)


def _inner_span(start: int, end: int) -> tuple[int, int]:
    if end > start + 1:
        return start + 1, end - 1
    return start, end


def border_mask(shape: tuple[int, ...], sprite_grid: tuple[int, int] | None = None) -> np.ndarray:
    """
    Mark the pixels where background flood fills may start.

    Without a grid these are the outermost image pixels. With a (rows, cols)
    grid they are the borders of each cell, one pixel inside the cell edge so
    neighbouring frames do not bleed into each other.
    """
    height, width = shape[:2]
    mask = np.zeros((height, width), dtype=bool)

    if sprite_grid is None:
        mask[0, :] = True
        mask[-1, :] = True
        mask[:, 0] = True
        mask[:, -1] = True
        return mask

    rows, cols = sprite_grid
    for row in range(rows):
        y_start = row * height // rows
        y_end = (row + 1) * height // rows - 1
        if y_start > y_end:
            continue
        top, bottom = _inner_span(y_start, y_end)
        for col in range(cols):
            x_start = col * width // cols
            x_end = (col + 1) * width // cols - 1
            if x_start > x_end:
                continue
            left, right = _inner_span(x_start, x_end)
            mask[top, left:right + 1] = True
            mask[bottom, left:right + 1] = True
            mask[top:bottom + 1, left] = True
            mask[top:bottom + 1, right] = True
    return mask


def remove_chromakey_background(img: np.ndarray, sprite_grid: tuple[int, int] | None = None) -> np.ndarray:
    """
    Make a green-screen background transparent.

    Background regions are grown from strongly green border pixels through
    loosely green 4-connected neighbours, so green details enclosed by the
    subject survive unless they are an unmistakable chroma green. Afterwards a
    few passes clear greenish fringe pixels touching transparency.

    Args:
        img: BGR or BGRA image (uint8)
        sprite_grid: (rows, cols) when the image is a sprite sheet; seeds are
                     then taken from every cell's border

    Returns:
        New BGRA image with the background cleared to (0, 0, 0, 0)
    """
    result = to_bgra(img).copy()
    if result.shape[0] == 0 or result.shape[1] == 0:
        return result

    expand = chroma_mask(result, CHROMA_EXPAND)
    seed = chroma_mask(result, CHROMA_SEED)

    seeds = np.zeros_like(seed)
    if sprite_grid is not None and sprite_grid[0] > 0 and sprite_grid[1] > 0:
        seeds = seed & border_mask(result.shape, sprite_grid)
    if not seeds.any():
        seeds = seed & border_mask(result.shape)

    # Every seed also matches the looser expand mask, so each seed sits inside a component
    _num_labels, labels = cv2.connectedComponents(expand.astype(np.uint8), connectivity=4)
    seeded_labels = np.unique(labels[seeds])
    seeded_labels = seeded_labels[seeded_labels > 0]
    result[np.isin(labels, seeded_labels)] = 0

    strong = chroma_mask(result, CHROMA_STRONG) & (result[:, :, 3] > 0)
    result[strong] = 0

    clear_chromakey_fringe(result, CHROMA_FRINGE_PASSES)
    return result


def clear_chromakey_fringe(img: np.ndarray, passes: int) -> None:
    """Clear greenish opaque pixels that touch a transparent pixel, in place."""
    kernel = np.ones((3, 3), np.uint8)
    for _ in range(passes):
        transparent = (img[:, :, 3] == 0).astype(np.uint8)
        touches_transparent = cv2.dilate(transparent, kernel) > 0
        to_clear = chroma_mask(img, CHROMA_FRINGE) & (img[:, :, 3] > 0) & touches_transparent
        if not to_clear.any():
            break
        img[to_clear] = 0

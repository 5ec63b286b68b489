"""
Functions for exporting output images and sprite-sheet frames to disk.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

import cv2
import numpy as np

from sprite_designer.chromakey import remove_chromakey_background
from sprite_designer.errors import ExportError, ImageDecodeError
from sprite_designer.image_io import decode_image

logger = logging.getLogger(__name__)


def export_image_to_path(
    source_image_path: str | Path,
    destination_path: str | Path,
    remove_chromakey: bool = False,
    sprite_grid: tuple[int, int] | None = None,
) -> Path:
    """
    Save an output image to a user-chosen destination.

    Args:
        source_image_path: Image produced by the backend
        destination_path: Target path; ".png" is appended when it has no extension
        remove_chromakey: Make a green-screen background transparent before saving
        sprite_grid: (rows, cols) of a sprite sheet, used to seed the chroma-key per cell

    Returns:
        The path actually written

    Raises:
        ExportError: If the source is missing or the destination cannot be written.
    """
    source = Path(source_image_path)
    if not source.exists():
        raise ExportError(f"source image path not found: {source}")

    output_path = Path(destination_path)
    if not output_path.suffix:
        output_path = output_path.with_suffix(".png")

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        if remove_chromakey:
            image = remove_chromakey_background(decode_image(str(source)), sprite_grid)
            if not cv2.imwrite(str(output_path), image):
                raise ExportError(f"could not write image to {output_path}")
        else:
            shutil.copyfile(source, output_path)
    except (OSError, ImageDecodeError, cv2.error) as e:
        raise ExportError(f"failed to export {source} to {output_path}: {e}") from e

    logger.info("Exported %s to %s", source, output_path)
    return output_path


def save_frames(frames: list[np.ndarray], output_path: str | Path) -> list[Path]:
    """
    Save each frame as an individual PNG next to output_path.

    Args:
        frames: Frame images (BGRA arrays)
        output_path: Base path; files are named "<stem>_frame_<i>.png"

    Returns:
        Paths written, in frame order

    Raises:
        ExportError: If a frame is empty or cannot be written.
    """
    output_path = Path(output_path)
    output_dir = output_path.parent
    output_dir.mkdir(parents=True, exist_ok=True)

    written = []
    for i, frame in enumerate(frames):
        frame_path = output_dir / f"{output_path.stem}_frame_{i}.png"
        if frame.size == 0:
            raise ExportError(f"frame {i} is empty")
        try:
            ok = cv2.imwrite(str(frame_path), frame)
        except cv2.error as e:
            raise ExportError(f"could not write frame {i} to {frame_path}: {e}") from e
        if not ok:
            raise ExportError(f"could not write frame {i} to {frame_path}")
        written.append(frame_path)
    return written

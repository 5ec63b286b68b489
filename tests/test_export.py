"""
Tests for exporting output images and frames.
"""

import cv2
import numpy as np
import pytest

from conftest import sheet_image

from sprite_designer.errors import ExportError
from sprite_designer.export import export_image_to_path, save_frames


@pytest.fixture
def source_png(tmp_path):
    img = np.zeros((20, 20, 3), dtype=np.uint8)
    img[:] = (0, 255, 0)
    img[5:15, 5:15] = (0, 0, 255)
    path = tmp_path / "out_0.png"
    cv2.imwrite(str(path), img)
    return path


def test_export_copies_and_adds_extension(source_png, tmp_path):
    written = export_image_to_path(source_png, tmp_path / "exports" / "knight")
    assert written == tmp_path / "exports" / "knight.png"
    assert written.read_bytes() == source_png.read_bytes()


def test_export_keeps_given_extension(source_png, tmp_path):
    written = export_image_to_path(source_png, tmp_path / "knight.webp.png")
    assert written.name == "knight.webp.png"


def test_export_with_chromakey_removal(source_png, tmp_path):
    written = export_image_to_path(source_png, tmp_path / "clean.png", remove_chromakey=True)
    image = cv2.imread(str(written), cv2.IMREAD_UNCHANGED)
    assert image.shape == (20, 20, 4)
    assert image[0, 0, 3] == 0
    assert image[10, 10, 3] == 255


def test_export_missing_source(tmp_path):
    with pytest.raises(ExportError, match="not found"):
        export_image_to_path(tmp_path / "nope.png", tmp_path / "out.png")


def test_save_frames(tmp_path):
    frames = [sheet_image(1, 1), sheet_image(1, 1)]
    written = save_frames(frames, tmp_path / "frames" / "walk.png")
    assert [p.name for p in written] == ["walk_frame_0.png", "walk_frame_1.png"]
    for path in written:
        assert cv2.imread(str(path), cv2.IMREAD_UNCHANGED).shape == (3, 4, 4)


def test_save_frames_rejects_empty_frame(tmp_path):
    frames = [sheet_image(1, 1), np.zeros((0, 4, 4), dtype=np.uint8)]
    with pytest.raises(ExportError, match="frame 1 is empty"):
        save_frames(frames, tmp_path / "walk.png")

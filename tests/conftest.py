"""
Shared builders for project snapshots and sprite-sheet images.
"""

import json

import numpy as np
import pytest

from sprite_designer.models import Child, ChildInputs, ChildMode, ChildOutputs, ChildType, Project, Resolution


def make_child(child_id, child_type="generate", base=None, mode=None, rows=None, cols=None,
               resolution="1K", seed_image=None, primary=None, image_paths=None, **inputs):
    """Build a Child the way the backend would record it."""
    child_type = ChildType(child_type)
    if mode is None:
        mode = ChildMode.EDIT if child_type is ChildType.EDIT else ChildMode.SPRITE
    if primary is None:
        primary = f"/images/{child_id}_0.png"
    return Child(
        id=child_id,
        project_id="proj-1",
        type=child_type,
        name=child_id,
        mode=ChildMode(mode),
        inputs=ChildInputs(
            rows=rows,
            cols=cols,
            base_child_id=base,
            resolution=Resolution(resolution) if resolution else None,
            seed_image=seed_image,
            **inputs,
        ),
        outputs=ChildOutputs(image_paths=tuple(image_paths or (primary,)), primary_image_path=primary),
    )


def make_project(*children, name="Knight"):
    return Project(id="proj-1", name=name, children=tuple(children))


@pytest.fixture
def history():
    """[Generate A, Edit B(base=A), Generate C, Edit D(base=C)]"""
    return make_project(
        make_child("A", rows=2, cols=4),
        make_child("B", "edit", base="A", edit_prompt="add a sword"),
        make_child("C", rows=3, cols=3, resolution="2K", object_description="knight",
                   style="pixel art", camera_angle="side"),
        make_child("D", "edit", base="C", edit_prompt="make the armour gold"),
    )


def sheet_image(rows, cols, frame_w=4, frame_h=3):
    """BGRA sprite sheet where every pixel of frame i has blue channel i + 1."""
    sheet = np.zeros((rows * frame_h, cols * frame_w, 4), dtype=np.uint8)
    for i in range(rows * cols):
        y = (i // cols) * frame_h
        x = (i % cols) * frame_w
        sheet[y:y + frame_h, x:x + frame_w] = (i + 1, 0, 0, 255)
    return sheet


@pytest.fixture
def project_file(tmp_path):
    """Project JSON in the backend's format, with real image files for its outputs."""
    import cv2

    sheet_path = tmp_path / "gen-0001_0.png"
    cv2.imwrite(str(sheet_path), sheet_image(2, 2))
    edit_path = tmp_path / "edit-0001_0.png"
    cv2.imwrite(str(edit_path), sheet_image(2, 2))

    data = {
        "id": "proj-1",
        "name": "Walking Knight",
        "createdAt": "2026-03-01T10:00:00Z",
        "updatedAt": "2026-03-01T10:05:00Z",
        "children": [
            {
                "id": "gen-0001",
                "projectId": "proj-1",
                "type": "generate",
                "name": "gen-0001",
                "createdAt": "2026-03-01T10:00:00Z",
                "mode": "sprite",
                "inputs": {
                    "rows": 2,
                    "cols": 2,
                    "objectDescription": "knight",
                    "style": "pixel art",
                    "cameraAngle": "side view",
                    "resolution": "1K",
                },
                "openrouter": {"model": "image-model", "payload": {"modalities": ["image", "text"]}},
                "outputs": {"imagePaths": [str(sheet_path)], "primaryImagePath": str(sheet_path)},
            },
            {
                "id": "edit-0001",
                "projectId": "proj-1",
                "type": "edit",
                "name": "edit-0001",
                "createdAt": "2026-03-01T10:05:00Z",
                "mode": "edit",
                "inputs": {"editPrompt": "make it blue", "baseChildId": "gen-0001",
                           "baseImagePath": str(sheet_path), "resolution": "1K"},
                "openrouter": {"model": "image-model", "payload": {}},
                "outputs": {"imagePaths": [str(edit_path)], "primaryImagePath": str(edit_path),
                            "completion": {"finishReason": "stop"}},
            },
        ],
    }
    path = tmp_path / "project.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path

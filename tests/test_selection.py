"""
Tests for state derived from the selected history node.
"""

import dataclasses

from conftest import make_child, make_project

from sprite_designer.drafts import default_generate_draft
from sprite_designer.grid_synthesis import synthesize_grid
from sprite_designer.selection import NEW_ITEM, Selection


def test_project_root_selection(history):
    """Selecting the project itself previews its latest child and edits from that child's base."""
    selection = Selection(project=history)
    assert selection.is_project_root
    assert selection.selected_child is None
    assert selection.preview_child.id == "D"
    assert selection.generate_preview_child.id == "C"
    assert selection.base_child_for_edit.id == "C"
    assert selection.preview_image_path == "/images/D_0.png"


def test_child_selection(history):
    selection = Selection(project=history, child_id="B")
    assert selection.selected_child.id == "B"
    assert selection.preview_child.id == "B"
    assert selection.edited_preview_child.id == "B"
    assert selection.generate_preview_child is None
    assert selection.base_child_for_edit.id == "A"
    assert selection.generate_draft().rows == 3, "Edit selection pre-fills from the latest generation"
    assert selection.edit_draft().edit_prompt == "add a sword"


def test_new_selection(history):
    selection = Selection(project=history, child_id=NEW_ITEM)
    assert selection.is_new
    assert selection.selected_child is None
    assert selection.preview_child is None
    assert selection.base_child_for_edit is None
    assert selection.generate_draft() == default_generate_draft(name="Knight")

    assert Selection.new().generate_draft() == default_generate_draft()


def test_unknown_child_id(history):
    selection = Selection(project=history, child_id="missing")
    assert selection.selected_child is None
    assert selection.preview_child is None
    assert selection.base_child_for_edit is None


def test_empty_selection():
    selection = Selection()
    assert selection.preview_child is None
    assert selection.base_child_for_edit is None
    assert selection.preview_grid == (1, 1)
    assert not selection.preview_is_sprite_sheet
    assert selection.export_file_name == "sprite-export.png"


def test_retained_edit_base_path():
    project = make_project(
        make_child("A"),
        make_child("B", "edit", base="A", base_image_path="/images/A_old.png"),
        make_child("C", "edit", base="A"),
    )
    assert Selection(project=project, child_id="B").retained_edit_base_path == "/images/A_old.png"
    assert Selection(project=project, child_id="C").retained_edit_base_path == "/images/A_0.png"
    assert Selection(project=project, child_id="A").retained_edit_base_path is None


def test_preview_grid_and_sprite_sheet(history):
    selection = Selection(project=history, child_id="A")
    assert selection.preview_grid == (2, 4)
    assert selection.preview_is_sprite_sheet

    edit = Selection(project=history, child_id="B")
    assert edit.preview_grid == (1, 1)
    assert not edit.preview_is_sprite_sheet


def test_preview_falls_back_to_first_image_path():
    child = make_child("A", primary="", image_paths=["/images/A_1.png", "/images/A_2.png"])
    selection = Selection(project=make_project(child))
    assert selection.preview_image_path == "/images/A_1.png"


def test_export_file_name():
    child = dataclasses.replace(make_child("A"), name="Walk Cycle #1")
    project = make_project(child)
    assert Selection(project=project).export_file_name == "Walk-Cycle-1.png"


def test_generate_draft_for_project_root():
    project = make_project(make_child("A", rows=2, cols=2))
    draft = Selection(project=project).generate_draft()
    assert (draft.rows, draft.cols) == (2, 2)
    assert draft.seed_image == synthesize_grid(2, 2, "1K")

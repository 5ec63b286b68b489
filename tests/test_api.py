"""
End-to-end tests for the sprite_designer library API.

Tests that the library can be used programmatically, from loading a project
snapshot to previewing its sprite sheet, without using the CLI.
"""

import asyncio

import numpy as np

from sprite_designer import (
    NEW_ITEM,
    PlayerState,
    Selection,
    SpriteSheetPlayer,
    load_project,
    resolve_base_child,
    synthesize_grid,
)
from sprite_designer.drafts import prepare_edit_request, prepare_generate_request, with_grid_changes
from sprite_designer.image_io import decode_image


def test_project_to_requests(project_file):
    """Load a project, resolve the edit base and prepare both kinds of request."""
    project = load_project(project_file)
    selection = Selection(project=project)

    # The project itself resolves to its latest child, an edit of the generation
    assert selection.preview_child.id == "edit-0001"
    assert selection.base_child_for_edit.id == "gen-0001"
    assert resolve_base_child(selection.preview_child, project) is selection.base_child_for_edit

    generate_draft = selection.generate_draft()
    assert generate_draft.name == "Walking Knight"
    assert (generate_draft.rows, generate_draft.cols) == (2, 2)
    assert generate_draft.seed_image == synthesize_grid(2, 2, "1K"), "Seed grid should be synthesised"

    # Changing the grid regenerates the seed image at the new layout
    wider = with_grid_changes(generate_draft, cols=4)
    seed = decode_image(wider.seed_image)
    assert seed.shape == (512, 1024, 4), "2x4 grid at 1K should be 1024x512"

    request, problem = prepare_generate_request(wider, project.id)
    assert problem is None
    assert request.to_dict()["cols"] == 4

    edit_request, problem = prepare_edit_request(
        project, selection.base_child_for_edit, generate_draft, selection.edit_draft())
    assert edit_request is None
    assert problem == "Edit prompt is required."


def test_new_selection_starts_from_defaults(project_file):
    project = load_project(project_file)
    draft = Selection(project=project, child_id=NEW_ITEM).generate_draft()
    assert (draft.rows, draft.cols) == (4, 4)
    assert draft.object_description == ""
    assert draft.seed_image == synthesize_grid(4, 4, "1K")


def test_preview_selected_sheet(project_file):
    """Play the selected child's sprite sheet the way a preview pane would."""
    project = load_project(project_file)
    selection = Selection(project=project, child_id="gen-0001")
    assert selection.preview_is_sprite_sheet

    async def preview():
        rows, cols = selection.preview_grid
        with SpriteSheetPlayer(frame_delay_ms=1000) as player:
            player.set_source(selection.preview_image_path, rows, cols)
            await player.load_task
            state = player.state
            first = player.surface.pixels.copy()
            player.advance()
            second = player.surface.pixels.copy()
        return state, first, second

    state, first, second = asyncio.run(preview())
    assert state is PlayerState.PLAYING
    assert first.shape == (3, 4, 4), "Surface should hold one 4x3 frame"
    assert (first[:, :, 0] == 1).all()
    assert (second[:, :, 0] == 2).all()
    assert not np.array_equal(first, second)

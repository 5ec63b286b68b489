"""
Editable form state derived from a project's history.

A draft is rebuilt from the project snapshot whenever the selection changes,
and turned into a backend request when the user submits it. Problems the user
must fix are returned as message strings rather than raised.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

from sprite_designer.constants import DEFAULT_GRID_COLS, DEFAULT_GRID_ROWS, SEED_UPLOAD_MIME_TYPES
from sprite_designer.errors import DataUrlError
from sprite_designer.grid_synthesis import synthesize_grid
from sprite_designer.image_io import parse_data_url
from sprite_designer.lineage import latest_generate_child
from sprite_designer.models import (
    Child,
    ChildMode,
    ChildType,
    EditRequest,
    GenerateRequest,
    Project,
    Resolution,
    positive_int,
)


@dataclass(frozen=True)
class GenerateDraft:
    name: str = ""
    sprite_mode: bool = True
    rows: int = DEFAULT_GRID_ROWS
    cols: int = DEFAULT_GRID_COLS
    object_description: str = ""
    style: str = ""
    camera_angle: str = ""
    prompt_text: str = ""
    resolution: Resolution = Resolution.ONE_K
    seed_image: str | None = None


@dataclass(frozen=True)
class EditDraft:
    edit_prompt: str = ""


def _seed_or_none(rows: int, cols: int, resolution: Resolution) -> str | None:
    return synthesize_grid(rows, cols, resolution) or None


def default_generate_draft(**overrides) -> GenerateDraft:
    """
    Draft for a brand new generation: sprite mode, 4x4 grid, 1K, with the
    matching seed grid.
    """
    base = GenerateDraft(seed_image=_seed_or_none(DEFAULT_GRID_ROWS, DEFAULT_GRID_COLS, Resolution.ONE_K))
    return dataclasses.replace(base, **overrides)


def resolve_generate_draft(project: Project | None, selected_child: Child | None = None) -> GenerateDraft:
    """
    Pre-fill the generate form from a project's history.

    The source of the parameters is the selected child when it is a generate
    child, otherwise the project's latest generate child. When no seed image was
    stored and sprite mode is on, the seed grid is synthesised from the resolved
    rows, cols and resolution.

    Args:
        project: Project the selection belongs to, None for a fresh project
        selected_child: Explicitly selected child, if any

    Returns:
        Draft with rows and cols clamped to >= 1
    """
    if project is None:
        return default_generate_draft()

    if selected_child is not None and selected_child.type is ChildType.GENERATE:
        source = selected_child
    else:
        source = latest_generate_child(project.children)

    if source is None:
        return default_generate_draft(name=project.name)

    inputs = source.inputs
    sprite_mode = source.mode is ChildMode.SPRITE
    rows = DEFAULT_GRID_ROWS if inputs.rows is None else positive_int(inputs.rows)
    cols = DEFAULT_GRID_COLS if inputs.cols is None else positive_int(inputs.cols)
    resolution = Resolution.parse(inputs.resolution)

    seed_image = inputs.seed_image
    if sprite_mode and not seed_image:
        seed_image = _seed_or_none(rows, cols, resolution)

    return GenerateDraft(
        name=project.name,
        sprite_mode=sprite_mode,
        rows=rows,
        cols=cols,
        object_description=inputs.object_description or "",
        style=inputs.style or "",
        camera_angle=inputs.camera_angle or "",
        prompt_text=inputs.prompt_text or "",
        resolution=resolution,
        seed_image=seed_image,
    )


def resolve_edit_draft(selected_child: Child | None) -> EditDraft:
    """Pre-fill the edit form with the prompt of a selected edit child."""
    if selected_child is not None and selected_child.type is ChildType.EDIT:
        return EditDraft(edit_prompt=selected_child.inputs.edit_prompt or "")
    return EditDraft()


def with_grid_changes(draft: GenerateDraft, **changes) -> GenerateDraft:
    """
    Apply form changes and, in sprite mode, replace the seed with a fresh grid
    for the new rows, cols and resolution.
    """
    updated = dataclasses.replace(draft, **changes)
    updated = dataclasses.replace(
        updated,
        rows=positive_int(updated.rows),
        cols=positive_int(updated.cols),
        resolution=Resolution.parse(updated.resolution),
    )
    if not updated.sprite_mode:
        return updated
    return dataclasses.replace(updated, seed_image=_seed_or_none(updated.rows, updated.cols, updated.resolution))


def with_sprite_mode(draft: GenerateDraft, enabled: bool) -> GenerateDraft:
    """Switch sprite mode on (regenerating the seed grid) or off (dropping the seed)."""
    if enabled:
        return with_grid_changes(draft, sprite_mode=True)
    return dataclasses.replace(draft, sprite_mode=False, seed_image=None)


def validate_seed_image(data_url: str) -> str | None:
    """Return an error message if a user-supplied seed image is not PNG, JPEG or WEBP."""
    try:
        parse_data_url(data_url, SEED_UPLOAD_MIME_TYPES)
    except DataUrlError:
        return "Only PNG, JPEG, and WEBP seed images are supported."
    return None


def with_seed_image(draft: GenerateDraft, data_url: str) -> tuple[GenerateDraft, str | None]:
    """Replace the seed with a user-supplied image, leaving the draft unchanged if it is rejected."""
    error = validate_seed_image(data_url)
    if error:
        return draft, error
    return dataclasses.replace(draft, seed_image=data_url), None


def validate_generate_draft(draft: GenerateDraft) -> str | None:
    """Return the first problem preventing submission, or None if the draft is complete."""
    if draft.sprite_mode:
        if draft.rows < 1 or draft.cols < 1:
            return "Rows and Cols must be positive integers."
        if not draft.object_description.strip():
            return "Description is required in sprite mode."
        if not draft.style.strip():
            return "Style is required in sprite mode."
        if not draft.camera_angle.strip():
            return "Camera angle is required in sprite mode."
        return None

    if not draft.prompt_text.strip():
        return "Prompt is required in normal mode."
    return None


def prepare_generate_request(
    draft: GenerateDraft,
    project_id: str | None = None,
) -> tuple[GenerateRequest | None, str | None]:
    """
    Build the backend generate request for a draft.

    Args:
        draft: Completed generate form
        project_id: Project to append to, None to create a new project

    Returns:
        (request, None) on success, (None, message) if the draft is invalid
    """
    error = validate_generate_draft(draft)
    if error:
        return None, error

    common = dict(
        project_id=project_id,
        name=draft.name.strip() or None,
        sprite_mode=draft.sprite_mode,
        resolution=draft.resolution,
        seed_image=draft.seed_image,
    )
    if draft.sprite_mode:
        return GenerateRequest(
            **common,
            rows=draft.rows,
            cols=draft.cols,
            object_description=draft.object_description,
            style=draft.style,
            camera_angle=draft.camera_angle,
        ), None
    return GenerateRequest(**common, prompt_text=draft.prompt_text), None


def prepare_edit_request(
    project: Project | None,
    base_child: Child | None,
    generate_draft: GenerateDraft,
    edit_draft: EditDraft,
    base_image_snapshot: str | None = None,
) -> tuple[EditRequest | None, str | None]:
    """
    Build the backend edit request for the resolved base child.

    Args:
        project: Selected project
        base_child: Child resolved as the base of the edit
        generate_draft: Current generate form, supplies name and resolution
        edit_draft: Current edit form
        base_image_snapshot: Optional data URL copy of the base image to retain with the edit

    Returns:
        (request, None) on success, (None, message) when the edit cannot be run
    """
    if project is None or base_child is None:
        return None, "Select a project and child before running edit."
    if not edit_draft.edit_prompt.strip():
        return None, "Edit prompt is required."

    base_image_path = base_child.outputs.primary_image_path
    if not base_image_path:
        return None, "No base image available to edit."

    return EditRequest(
        project_id=project.id,
        base_child_id=base_child.id,
        name=generate_draft.name.strip() or project.name,
        edit_prompt=edit_draft.edit_prompt,
        resolution=generate_draft.resolution,
        base_image_snapshot=base_image_snapshot,
        base_image_path=base_image_path,
    ), None

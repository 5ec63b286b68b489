"""
What the user is looking at in the history tree, and everything derived from it.
"""

from __future__ import annotations

from dataclasses import dataclass

from sprite_designer.drafts import (
    EditDraft,
    GenerateDraft,
    default_generate_draft,
    resolve_edit_draft,
    resolve_generate_draft,
)
from sprite_designer.formatting import safe_export_name
from sprite_designer.lineage import latest_child, latest_generate_child, resolve_base_child
from sprite_designer.models import Child, ChildMode, ChildType, Project

# Child id meaning "a fresh draft that is not based on any history node"
NEW_ITEM = "<new>"


@dataclass(frozen=True)
class Selection:
    """
    A selected history node.

    Attributes:
        project: Project snapshot, None when nothing is selected
        child_id: Selected child id, None for the project itself (its latest
                  state), or NEW_ITEM for a fresh draft
    """
    project: Project | None = None
    child_id: str | None = None

    @classmethod
    def new(cls) -> Selection:
        return cls(project=None, child_id=NEW_ITEM)

    @property
    def is_new(self) -> bool:
        return self.child_id == NEW_ITEM

    @property
    def is_project_root(self) -> bool:
        return self.project is not None and self.child_id is None

    @property
    def selected_child(self) -> Child | None:
        if self.project is None or self.is_new:
            return None
        return self.project.find_child(self.child_id)

    @property
    def generate_preview_child(self) -> Child | None:
        """The generate child whose outputs the generate view shows."""
        child = self.selected_child
        if child is not None and child.type is ChildType.GENERATE:
            return child
        if self.is_project_root:
            return latest_generate_child(self.project.children)
        return None

    @property
    def base_child_for_edit(self) -> Child | None:
        """The child a new edit would start from."""
        if self.project is None:
            return None
        child = self.selected_child
        if child is not None:
            return resolve_base_child(child, self.project)
        if self.is_project_root:
            return resolve_base_child(latest_child(self.project.children), self.project)
        return None

    @property
    def edited_preview_child(self) -> Child | None:
        child = self.selected_child
        if child is not None and child.type is ChildType.EDIT:
            return child
        return None

    @property
    def preview_child(self) -> Child | None:
        """The child shown in the preview and offered for export."""
        if self.project is None:
            return None
        child = self.selected_child
        if child is not None:
            return child
        if self.is_project_root:
            return latest_child(self.project.children)
        return None

    @property
    def retained_edit_base_path(self) -> str | None:
        """Image the selected edit was applied to, as recorded at edit time when available."""
        child = self.edited_preview_child
        if child is None:
            return None
        if child.inputs.base_image_path:
            return child.inputs.base_image_path
        base = self.base_child_for_edit
        return base.outputs.primary_image_path if base is not None else None

    @property
    def preview_image_path(self) -> str | None:
        child = self.preview_child
        return child.outputs.current_image_path if child is not None else None

    @property
    def preview_grid(self) -> tuple[int, int]:
        child = self.preview_child
        if child is None:
            return 1, 1
        return child.grid

    @property
    def preview_is_sprite_sheet(self) -> bool:
        child = self.preview_child
        rows, cols = self.preview_grid
        return child is not None and child.mode is ChildMode.SPRITE and rows * cols > 1

    @property
    def export_file_name(self) -> str:
        child = self.preview_child
        stem = safe_export_name(child.name) if child is not None and child.name else safe_export_name("")
        return f"{stem}.png"

    def generate_draft(self) -> GenerateDraft:
        if self.project is None or self.is_new:
            if self.project is not None:
                return default_generate_draft(name=self.project.name)
            return default_generate_draft()
        return resolve_generate_draft(self.project, self.selected_child)

    def edit_draft(self) -> EditDraft:
        return resolve_edit_draft(self.selected_child)


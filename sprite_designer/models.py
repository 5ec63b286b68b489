"""
Data model for projects and their generation history.

Projects and children are created by the generation backend and read here as
immutable snapshots. The JSON layout is the backend's camelCase format.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from sprite_designer.constants import DEFAULT_RESOLUTION, RESOLUTION_LONG_EDGE
from sprite_designer.errors import ProjectFormatError


class ChildType(str, Enum):
    GENERATE = "generate"
    EDIT = "edit"


class ChildMode(str, Enum):
    SPRITE = "sprite"
    NORMAL = "normal"
    EDIT = "edit"


class Resolution(str, Enum):
    ONE_K = "1K"
    TWO_K = "2K"
    FOUR_K = "4K"

    @property
    def long_edge(self) -> int:
        """Long edge in pixels for this tier."""
        return RESOLUTION_LONG_EDGE[self.value]

    @classmethod
    def parse(cls, value: Resolution | str | None, default: Resolution | None = None) -> Resolution:
        """
        Convert a tier name to a Resolution, falling back to the default tier.

        Args:
            value: Tier name ("1K", "2K", "4K"), a Resolution, or None
            default: Tier to use when value is missing or unknown (1K if not given)

        Returns:
            The matching Resolution
        """
        fallback = default if default is not None else cls(DEFAULT_RESOLUTION)
        if value is None:
            return fallback
        if isinstance(value, Resolution):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return fallback


def positive_int(value: Any, fallback: int = 1) -> int:
    """
    Clamp a grid dimension to a positive integer.

    Non-finite or non-numeric values become the fallback; anything else is
    floored and clamped to at least 1.
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        return max(1, fallback)
    if not math.isfinite(number):
        return max(1, fallback)
    return max(1, math.floor(number))


def _optional_grid_value(value: Any) -> int | None:
    if value is None:
        return None
    return positive_int(value)


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def _as_dict(value: Any, what: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ProjectFormatError(f"{what} must be an object, got {type(value).__name__}")
    return value


def _as_list(value: Any, what: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ProjectFormatError(f"{what} must be a list, got {type(value).__name__}")
    return value


def _require(data: dict[str, Any], key: str, what: str) -> str:
    value = data.get(key)
    if value is None or value == "":
        raise ProjectFormatError(f"{what} is missing required field '{key}'")
    return str(value)


@dataclass(frozen=True)
class CompletionMetadata:
    """Completion details reported by the generator for one child."""
    finish_reason: str | None = None
    refusal: str | None = None
    reasoning: str | None = None
    reasoning_details: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> CompletionMetadata | None:
        data = _as_dict(data, "completion")
        if not data:
            return None
        details = data.get("reasoningDetails")
        if details is not None and not isinstance(details, str):
            details = json.dumps(details)
        return cls(
            finish_reason=_optional_str(data.get("finishReason")),
            refusal=_optional_str(data.get("refusal")),
            reasoning=_optional_str(data.get("reasoning")),
            reasoning_details=details,
        )


@dataclass(frozen=True)
class ChildInputs:
    """
    Request parameters recorded for a child.

    Attributes:
        rows, cols: Sprite grid, only meaningful in sprite mode. Always >= 1 when present.
        seed_image: Guidance image (data URL) sent with a generate request.
        base_child_id: For edit children, the child the edit was derived from.
        base_image_path: For edit children, the image path the edit was applied to.
        base_image_snapshot: For edit children, a retained copy of the base image (data URL).
    """
    rows: int | None = None
    cols: int | None = None
    object_description: str | None = None
    style: str | None = None
    camera_angle: str | None = None
    prompt_text: str | None = None
    edit_prompt: str | None = None
    base_child_id: str | None = None
    resolution: Resolution | None = None
    seed_image: str | None = None
    base_image_path: str | None = None
    base_image_snapshot: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ChildInputs:
        data = _as_dict(data, "child inputs")
        resolution = data.get("resolution")
        return cls(
            rows=_optional_grid_value(data.get("rows")),
            cols=_optional_grid_value(data.get("cols")),
            object_description=_optional_str(data.get("objectDescription")),
            style=_optional_str(data.get("style")),
            camera_angle=_optional_str(data.get("cameraAngle")),
            prompt_text=_optional_str(data.get("promptText")),
            edit_prompt=_optional_str(data.get("editPrompt")),
            base_child_id=_optional_str(data.get("baseChildId")) or None,
            resolution=Resolution.parse(resolution) if resolution else None,
            seed_image=_optional_str(data.get("imagePriorDataUrl")) or None,
            base_image_path=_optional_str(data.get("baseImagePath")) or None,
            base_image_snapshot=_optional_str(data.get("baseImageDataUrl")) or None,
        )


@dataclass(frozen=True)
class ChildOutputs:
    """Results of a generation. Image path order is significant."""
    text: str | None = None
    image_paths: tuple[str, ...] = ()
    primary_image_path: str | None = None
    completion: CompletionMetadata | None = None

    @property
    def current_image_path(self) -> str | None:
        """The primary image if one is set, else the first produced image."""
        if self.primary_image_path:
            return self.primary_image_path
        if self.image_paths:
            return self.image_paths[0]
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ChildOutputs:
        data = _as_dict(data, "child outputs")
        return cls(
            text=_optional_str(data.get("text")),
            image_paths=tuple(str(path) for path in _as_list(data.get("imagePaths"), "imagePaths") if path),
            primary_image_path=_optional_str(data.get("primaryImagePath")) or None,
            completion=CompletionMetadata.from_dict(data.get("completion")),
        )


@dataclass(frozen=True)
class GeneratorSnapshot:
    """Model name and raw request payload the backend sent to the generator."""
    model: str = ""
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> GeneratorSnapshot | None:
        data = _as_dict(data, "generator snapshot")
        if not data:
            return None
        payload = data.get("payload")
        return cls(model=str(data.get("model", "")), payload=payload if isinstance(payload, dict) else {})


@dataclass(frozen=True)
class Child:
    """A single generate or edit result in a project's history."""
    id: str
    project_id: str
    type: ChildType
    name: str = ""
    created_at: datetime | None = None
    mode: ChildMode = ChildMode.NORMAL
    inputs: ChildInputs = field(default_factory=ChildInputs)
    outputs: ChildOutputs = field(default_factory=ChildOutputs)
    generator: GeneratorSnapshot | None = None

    @property
    def is_edit(self) -> bool:
        return self.type is ChildType.EDIT

    @property
    def is_generate(self) -> bool:
        return self.type is ChildType.GENERATE

    @property
    def grid(self) -> tuple[int, int]:
        """(rows, cols) of the output, 1x1 when the child has no grid."""
        return positive_int(self.inputs.rows), positive_int(self.inputs.cols)

    @property
    def is_sprite_sheet(self) -> bool:
        """True when the output is a multi-frame sprite sheet."""
        rows, cols = self.grid
        return self.mode is ChildMode.SPRITE and rows * cols > 1

    @classmethod
    def from_dict(cls, data: dict[str, Any], project_id: str | None = None) -> Child:
        data = _as_dict(data, "child")
        child_id = _require(data, "id", "child")
        try:
            child_type = ChildType(str(data.get("type", "")).lower())
        except ValueError as e:
            raise ProjectFormatError(f"child {child_id} has unknown type {data.get('type')!r}") from e
        try:
            mode = ChildMode(str(data.get("mode") or ChildMode.NORMAL.value).lower())
        except ValueError as e:
            raise ProjectFormatError(f"child {child_id} has unknown mode {data.get('mode')!r}") from e
        return cls(
            id=child_id,
            project_id=str(data.get("projectId") or project_id or ""),
            type=child_type,
            name=str(data.get("name") or ""),
            created_at=_parse_timestamp(data.get("createdAt")),
            mode=mode,
            inputs=ChildInputs.from_dict(data.get("inputs")),
            outputs=ChildOutputs.from_dict(data.get("outputs")),
            generator=GeneratorSnapshot.from_dict(data.get("openrouter")),
        )


@dataclass(frozen=True)
class ProjectSummary:
    id: str
    name: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    child_count: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectSummary:
        data = _as_dict(data, "project summary")
        try:
            child_count = int(data.get("childCount") or 0)
        except (TypeError, ValueError, OverflowError) as e:
            raise ProjectFormatError(f"project summary has invalid childCount {data.get('childCount')!r}") from e
        return cls(
            id=_require(data, "id", "project summary"),
            name=str(data.get("name") or ""),
            created_at=_parse_timestamp(data.get("createdAt")),
            updated_at=_parse_timestamp(data.get("updatedAt")),
            child_count=child_count,
        )


@dataclass(frozen=True)
class Project:
    """
    A project and its append-only history.

    The order of children is the version history: the last child is the latest,
    regardless of timestamps.
    """
    id: str
    name: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    children: tuple[Child, ...] = ()

    def find_child(self, child_id: str | None) -> Child | None:
        """Look up a child by id, None if it is not in this project."""
        if not child_id:
            return None
        for child in self.children:
            if child.id == child_id:
                return child
        return None

    def summary(self) -> ProjectSummary:
        return ProjectSummary(
            id=self.id,
            name=self.name,
            created_at=self.created_at,
            updated_at=self.updated_at,
            child_count=len(self.children),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Project:
        data = _as_dict(data, "project")
        project_id = _require(data, "id", "project")
        children = tuple(Child.from_dict(child, project_id) for child in _as_list(data.get("children"), "children"))
        seen: set[str] = set()
        for child in children:
            if child.id in seen:
                raise ProjectFormatError(f"project {project_id} has duplicate child id {child.id}")
            seen.add(child.id)
        return cls(
            id=project_id,
            name=str(data.get("name") or ""),
            created_at=_parse_timestamp(data.get("createdAt")),
            updated_at=_parse_timestamp(data.get("updatedAt")),
            children=children,
        )


@dataclass(frozen=True)
class ChildResult:
    """Response of a generate or edit call: the updated project summary and the new child."""
    project: ProjectSummary
    child: Child

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChildResult:
        data = _as_dict(data, "child result")
        project = ProjectSummary.from_dict(data.get("project") or {})
        return cls(project=project, child=Child.from_dict(data.get("child") or {}, project.id))


def _drop_empty(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


@dataclass(frozen=True)
class GenerateRequest:
    sprite_mode: bool
    resolution: Resolution
    project_id: str | None = None
    name: str | None = None
    rows: int | None = None
    cols: int | None = None
    object_description: str | None = None
    style: str | None = None
    camera_angle: str | None = None
    prompt_text: str | None = None
    seed_image: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Backend payload, absent fields omitted."""
        return _drop_empty({
            "projectId": self.project_id,
            "name": self.name,
            "spriteMode": self.sprite_mode,
            "rows": self.rows,
            "cols": self.cols,
            "objectDescription": self.object_description,
            "style": self.style,
            "cameraAngle": self.camera_angle,
            "promptText": self.prompt_text,
            "resolution": self.resolution.value,
            "imagePriorDataUrl": self.seed_image,
        })


@dataclass(frozen=True)
class EditRequest:
    project_id: str
    base_child_id: str
    edit_prompt: str
    name: str | None = None
    resolution: Resolution | None = None
    base_image_snapshot: str | None = None
    base_image_path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Backend payload, absent fields omitted."""
        return _drop_empty({
            "projectId": self.project_id,
            "baseChildId": self.base_child_id,
            "name": self.name,
            "editPrompt": self.edit_prompt,
            "resolution": self.resolution.value if self.resolution else None,
            "baseImageDataUrl": self.base_image_snapshot,
            "baseImagePath": self.base_image_path,
        })


def load_project(path: str | Path) -> Project:
    """
    Load a full project snapshot from a JSON file.

    Raises:
        ProjectFormatError: If the file is not valid JSON or lacks required fields.
        OSError: If the file cannot be read.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ProjectFormatError(f"{path} is not UTF-8 text: {e}") from e
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ProjectFormatError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ProjectFormatError(f"{path} does not contain a project object")
    return Project.from_dict(data)

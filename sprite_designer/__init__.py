"""
Sprite Designer

Core logic for iterating on AI-generated sprite sheets: resolving which history
node a new generation or edit builds on, synthesising seed grid images, and
replaying sprite sheets as frame animations.

Public API:
    - Project, Child and related models, load_project
    - latest_child, latest_generate_child, resolve_base_child, resolve_root_child
    - synthesize_grid: Seed grid image as a PNG data URL
    - resolve_generate_draft, default_generate_draft: Form pre-fill
    - Selection: Derived state for a selected history node
    - SpriteSheetPlayer, frame_rect: Sprite-sheet playback
"""

from sprite_designer.drafts import EditDraft, GenerateDraft, default_generate_draft, resolve_generate_draft
from sprite_designer.grid_synthesis import render_grid, synthesize_grid
from sprite_designer.lineage import latest_child, latest_generate_child, resolve_base_child, resolve_root_child
from sprite_designer.models import (
    Child,
    ChildMode,
    ChildType,
    Project,
    Resolution,
    load_project,
)
from sprite_designer.player import FrameSurface, PlayerState, SpriteSheetPlayer, frame_rect
from sprite_designer.selection import NEW_ITEM, Selection

__version__ = "0.1.0"
__all__ = [
    "Child", "ChildMode", "ChildType", "Project", "Resolution", "load_project",
    "latest_child", "latest_generate_child", "resolve_base_child", "resolve_root_child",
    "render_grid", "synthesize_grid",
    "EditDraft", "GenerateDraft", "default_generate_draft", "resolve_generate_draft",
    "NEW_ITEM", "Selection",
    "FrameSurface", "PlayerState", "SpriteSheetPlayer", "frame_rect",
    "__version__",
]

"""
Queries over a project's append-only history.

All functions are pure and never raise: a missing or dangling reference
degrades to a defined fallback.
"""

from __future__ import annotations

import logging
from typing import Sequence

from sprite_designer.models import Child, ChildType, Project

logger = logging.getLogger(__name__)


def latest_child(children: Sequence[Child]) -> Child | None:
    """Return the most recent child, or None for an empty history."""
    if not children:
        return None
    return children[-1]


def latest_generate_child(children: Sequence[Child]) -> Child | None:
    """
    Return the most recent generate child.

    Edits are refinements of a generation, so the parameters for a new generate
    form come from the latest pure generation rather than from an edit.
    """
    for child in reversed(children):
        if child.type is ChildType.GENERATE:
            return child
    return None


def resolve_base_child(candidate: Child | None, project: Project) -> Child | None:
    """
    Find the child whose image an edit of `candidate` should start from.

    Resolution is single-hop: an edit resolves to the child named by its
    base_child_id even when that child is itself an edit. Use resolve_root_child
    to walk the whole chain.

    Args:
        candidate: The selected child, or None
        project: Project snapshot the candidate belongs to

    Returns:
        None when candidate is None. The candidate itself when it is not an edit,
        has no base reference, or its base reference is dangling. Otherwise the
        referenced child.
    """
    if candidate is None:
        return None
    if candidate.type is not ChildType.EDIT:
        return candidate
    if not candidate.inputs.base_child_id:
        return candidate

    base = project.find_child(candidate.inputs.base_child_id)
    if base is None:
        logger.debug("Edit %s references unknown base %s, using the edit itself",
                     candidate.id, candidate.inputs.base_child_id)
        return candidate
    return base


def lineage_chain(child: Child | None, project: Project) -> list[Child]:
    """
    Walk base references from a child back to the generation it descends from.

    The walk stops at a non-edit child, an edit without a base, a dangling
    reference, or a reference that would revisit a child already in the chain.

    Returns:
        Children from `child` (first) to the oldest reachable ancestor (last).
        Empty when child is None.
    """
    chain: list[Child] = []
    seen: set[str] = set()
    current = child
    while current is not None and current.id not in seen:
        chain.append(current)
        seen.add(current.id)
        parent = resolve_base_child(current, project)
        if parent is None or parent.id == current.id:
            break
        current = parent

    if current is not None and current.id in seen and current is not chain[-1]:
        logger.warning("Lineage of %s contains a cycle at %s", chain[0].id, current.id)
    return chain


def resolve_root_child(candidate: Child | None, project: Project) -> Child | None:
    """Resolve a child to the oldest ancestor of its edit chain, with cycle protection."""
    chain = lineage_chain(candidate, project)
    if not chain:
        return None
    return chain[-1]

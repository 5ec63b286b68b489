"""
Tests for latest-child queries and base-image resolution over a project history.
"""

import dataclasses
from datetime import datetime

from conftest import make_child, make_project

from sprite_designer.lineage import (
    latest_child,
    latest_generate_child,
    lineage_chain,
    resolve_base_child,
    resolve_root_child,
)


def test_latest_queries(history):
    """Latest child is the last appended; latest generate skips trailing edits."""
    assert latest_child(history.children).id == "D"
    assert latest_generate_child(history.children).id == "C"


def test_latest_queries_empty_history():
    assert latest_child(()) is None
    assert latest_generate_child(()) is None


def test_latest_generate_child_with_only_edits():
    project = make_project(make_child("E1", "edit"), make_child("E2", "edit", base="E1"))
    assert latest_generate_child(project.children) is None


def test_order_is_history_not_timestamps():
    """The sequence order decides "latest" even when timestamps disagree."""
    older = dataclasses.replace(make_child("new"), created_at=datetime(2020, 1, 1))
    newer = dataclasses.replace(make_child("old"), created_at=datetime(2030, 1, 1))
    project = make_project(newer, older)
    assert latest_child(project.children).id == "new"


def test_resolve_base_child_basic_cases(history):
    assert resolve_base_child(None, history) is None
    assert resolve_base_child(history.find_child("A"), history).id == "A", "Generate child is its own base"
    assert resolve_base_child(history.find_child("D"), history).id == "C", "Edit resolves to its base"


def test_resolve_base_child_is_single_hop():
    """An edit of an edit resolves to its immediate parent, not the original generation."""
    project = make_project(
        make_child("A"),
        make_child("B", "edit", base="A"),
        make_child("E", "edit", base="B"),
    )
    assert resolve_base_child(project.find_child("E"), project).id == "B"


def test_resolve_base_child_dangling_reference():
    """An edit whose base no longer exists falls back to itself."""
    project = make_project(make_child("A"), make_child("F", "edit", base="unknown-id"))
    edit = project.find_child("F")
    assert resolve_base_child(edit, project) is edit


def test_resolve_base_child_without_base_id():
    project = make_project(make_child("G", "edit"))
    edit = project.find_child("G")
    assert resolve_base_child(edit, project) is edit


def test_lineage_chain_walks_to_root():
    project = make_project(
        make_child("A"),
        make_child("B", "edit", base="A"),
        make_child("E", "edit", base="B"),
    )
    chain = lineage_chain(project.find_child("E"), project)
    assert [child.id for child in chain] == ["E", "B", "A"]
    assert resolve_root_child(project.find_child("E"), project).id == "A"
    assert resolve_root_child(None, project) is None
    assert lineage_chain(None, project) == []


def test_lineage_chain_stops_on_cycle():
    """A reference cycle ends the walk instead of looping forever."""
    project = make_project(
        make_child("X", "edit", base="Y"),
        make_child("Y", "edit", base="X"),
    )
    chain = lineage_chain(project.find_child("X"), project)
    assert [child.id for child in chain] == ["X", "Y"]
    assert resolve_root_child(project.find_child("X"), project).id == "Y"


def test_lineage_chain_stops_on_dangling_reference():
    project = make_project(make_child("F", "edit", base="gone"))
    assert [child.id for child in lineage_chain(project.find_child("F"), project)] == ["F"]

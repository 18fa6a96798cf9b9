"""Tests for treechart/hierarchy/visibility.py - expand/collapse state.

These tests verify that visibility commands only move child lists around:
ids survive, nothing is dropped, and snapshots restore exactly.
"""
from __future__ import annotations

import pytest
from hypothesis import given, settings

from tests.helpers.strategies import operations, tree_sources
from treechart.hierarchy.builder import build_hierarchy
from treechart.hierarchy.traversal import iter_preorder
from treechart.hierarchy.visibility import (
    collapse,
    expand,
    restore_open_state,
    snapshot_open_state,
    toggle,
)


def _visible_ids(model):
    return [node.id for node in iter_preorder(model)]


def _child_sets(model):
    return {node_id: frozenset(node.all_children()) for node_id, node in model.nodes.items()}


def _apply(model, ops):
    for name, arg in ops:
        if name == "expand":
            expand(model, arg)
        else:
            collapse(model, arg)


class TestCollapse:

    def test_default_keeps_root_open(self, small_source):
        model = build_hierarchy(small_source)
        collapse(model)

        assert _visible_ids(model) == [1, 2, 3]
        assert model[3].hidden_children == [4]
        assert model[3].visible_children == []

    def test_collapse_zero_leaves_only_root(self, small_source):
        model = build_hierarchy(small_source)
        collapse(model, 0)

        assert _visible_ids(model) == [1]
        assert model[1].hidden_children == [2, 3]

    def test_has_descendants_survives_collapse(self, small_source):
        model = build_hierarchy(small_source)
        collapse(model, 0)

        assert model[1].has_descendants
        assert model[3].has_descendants
        assert not model[2].has_descendants

    def test_collapse_is_post_order(self, branching_source):
        model = build_hierarchy(branching_source)
        closed = collapse(model, 1)

        # A, A2 and B all had visible children.
        assert closed == 3
        assert model["A2"].hidden_children == ["A2x"]
        assert model["A"].hidden_children == ["A1", "A2"]

    def test_limit_beyond_height_is_noop(self, small_source):
        model = build_hierarchy(small_source)

        assert collapse(model, 99) == 0
        assert _visible_ids(model) == [1, 2, 3, 4]

    def test_negative_limit_clamps_to_zero(self, small_source):
        model = build_hierarchy(small_source)
        collapse(model, -5)

        assert _visible_ids(model) == [1]


class TestExpand:

    def test_full_expand_reveals_nested_levels_in_one_call(self, branching_source):
        model = build_hierarchy(branching_source)
        before = _visible_ids(model)
        collapse(model, 0)
        expand(model)

        assert _visible_ids(model) == before

    def test_depth_limit(self, branching_source):
        model = build_hierarchy(branching_source)
        collapse(model, 0)
        expand(model, 1)

        assert _visible_ids(model) == ["root", "A", "B", "C"]
        expand(model, 2)
        assert "A2" in _visible_ids(model)
        assert "A2x" not in _visible_ids(model)

    def test_non_positive_limit_is_noop(self, small_source):
        model = build_hierarchy(small_source)
        collapse(model, 0)

        assert expand(model, 0) == 0
        assert expand(model, -3) == 0
        assert _visible_ids(model) == [1]


class TestToggle:

    def test_toggle_flips_state(self, small_source):
        model = build_hierarchy(small_source)

        assert toggle(model, 3) is False
        assert 4 not in _visible_ids(model)
        assert toggle(model, 3) is True
        assert 4 in _visible_ids(model)

    def test_toggle_leaf_stays_closed(self, small_source):
        model = build_hierarchy(small_source)

        assert toggle(model, 2) is False
        assert model[2].visible_children == [] and model[2].hidden_children == []

    def test_unknown_id_raises(self, small_source):
        model = build_hierarchy(small_source)

        with pytest.raises(KeyError):
            toggle(model, "missing")


class TestSnapshots:

    def test_snapshot_marks_open_nodes(self, small_source):
        model = build_hierarchy(small_source)
        collapse(model)

        assert snapshot_open_state(model) == {1: True, 2: False, 3: False, 4: False}

    def test_restore_reopens_and_closes(self, branching_source):
        model = build_hierarchy(branching_source)
        toggle(model, "B")
        snapshot = snapshot_open_state(model)
        visible = _visible_ids(model)

        expand(model)
        collapse(model, 0)
        changed = restore_open_state(model, snapshot)

        assert changed > 0
        assert _visible_ids(model) == visible
        assert snapshot_open_state(model) == snapshot

    def test_restore_is_idempotent(self, branching_source):
        model = build_hierarchy(branching_source)
        collapse(model, 1)
        snapshot = snapshot_open_state(model)
        expand(model)

        restore_open_state(model, snapshot)
        assert restore_open_state(model, snapshot) == 0

    def test_partial_snapshot_and_unknown_ids(self, small_source):
        model = build_hierarchy(small_source)
        restore_open_state(model, {3: False, "ghost": True})

        assert model[3].hidden_children == [4]
        assert model[1].is_open


@pytest.mark.property
class TestVisibilityProperties:

    @settings(max_examples=60, deadline=None)
    @given(source=tree_sources, ops=operations)
    def test_ids_and_children_never_change(self, source, ops):
        model = build_hierarchy(source)
        ids = set(model.nodes)
        children = _child_sets(model)

        _apply(model, ops)

        assert set(model.nodes) == ids
        assert _child_sets(model) == children
        for node in model.nodes.values():
            assert not (node.visible_children and node.hidden_children)

    @settings(max_examples=60, deadline=None)
    @given(source=tree_sources, ops=operations)
    def test_collapse_then_full_expand_restores_build_state(self, source, ops):
        model = build_hierarchy(source)
        built = _visible_ids(model)

        _apply(model, ops)
        collapse(model, 1)
        expand(model)

        assert _visible_ids(model) == built

    @settings(max_examples=60, deadline=None)
    @given(source=tree_sources, ops=operations, later=operations)
    def test_snapshot_round_trip(self, source, ops, later):
        model = build_hierarchy(source)
        _apply(model, ops)
        snapshot = snapshot_open_state(model)
        visible = _visible_ids(model)

        restore_open_state(model, snapshot_open_state(model))
        assert _visible_ids(model) == visible

        _apply(model, later)
        restore_open_state(model, snapshot)
        assert _visible_ids(model) == visible
        assert snapshot_open_state(model) == snapshot

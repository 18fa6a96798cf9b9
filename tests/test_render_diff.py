"""Tests for treechart/render/diff.py - enter/update/exit reconciliation.

These tests verify:
1. The first commit draws everything in place
2. Collapsing sends nodes, links and connections toward the surviving ancestor
3. Expanding grows nodes out of the parent's previous position
4. Retained state always holds fresh targets
"""
from __future__ import annotations

import pytest

from treechart.config import ChartConfig
from treechart.hierarchy.builder import build_hierarchy
from treechart.hierarchy.connections import route_connections
from treechart.hierarchy.layout import compute_layout
from treechart.hierarchy.scales import TINY
from treechart.hierarchy.visibility import collapse, expand
from treechart.render.diff import (
    CONNECTION,
    ENTER,
    EXIT,
    LINK,
    NODE,
    UPDATE,
    RenderState,
    commit,
    partition,
)


def _commit(model, previous=None):
    layout = compute_layout(model, ChartConfig())
    instructions, state = commit(previous, model, layout, route_connections(model, layout))
    return layout, instructions, state


def _by(instructions, kind, phase=None):
    return {
        i.entity_id: i for i in instructions
        if i.kind == kind and (phase is None or i.phase == phase)
    }


class TestPartition:

    def test_order_preserved(self):
        entering, persisting, exiting = partition([1, 2, 3], [4, 3, 1])

        assert entering == [4]
        assert persisting == [3, 1]
        assert exiting == [2]


class TestFirstCommit:

    def test_everything_enters_in_place(self, small_source):
        model = build_hierarchy(small_source)
        layout, instructions, _ = _commit(model)

        nodes = _by(instructions, NODE)
        assert set(nodes) == {1, 2, 3, 4}
        for node_id, ins in nodes.items():
            assert ins.phase == ENTER
            assert ins.transition_from == ins.transition_to == (layout[node_id].point,)
            assert ins.opacity_from == ins.opacity_to == 1.0

    def test_links_drawn_in_place(self, small_source):
        model = build_hierarchy(small_source)
        _, instructions, _ = _commit(model)

        links = _by(instructions, LINK)
        assert set(links) == {2, 3, 4}
        for ins in links.values():
            assert ins.transition_from == ins.transition_to
            assert len(ins.transition_to) == 4

    def test_state_records_targets(self, small_source):
        model = build_hierarchy(small_source)
        layout, _, state = _commit(model)

        assert state.root_id == 1
        assert state.nodes[4].position == layout[4].point
        assert state.nodes[4].parent_id == 3
        assert set(state.links) == {2, 3, 4}

    def test_empty_state_property(self):
        assert RenderState().empty


class TestCollapseCommit:

    def test_hidden_node_exits_to_surviving_ancestor(self, small_source):
        model = build_hierarchy(small_source)
        _, _, state = _commit(model)
        collapse(model)
        layout, instructions, new_state = _commit(model, state)

        exiting = _by(instructions, NODE, EXIT)
        assert list(exiting) == [4]
        ins = exiting[4]
        assert ins.transition_from == (state.nodes[4].position,)
        assert ins.transition_to == (layout[3].point,)
        assert ins.opacity_to == TINY
        assert ins.radius_to == TINY
        assert 4 not in new_state.nodes

    def test_link_exits_with_node(self, small_source):
        model = build_hierarchy(small_source)
        _, _, state = _commit(model)
        collapse(model)
        layout, instructions, new_state = _commit(model, state)

        link = _by(instructions, LINK, EXIT)[4]
        assert link.transition_from == state.links[4]
        assert set(link.transition_to) == {layout[3].point}
        assert 4 not in new_state.links

    def test_survivors_update_from_previous_positions(self, small_source):
        model = build_hierarchy(small_source)
        _, _, state = _commit(model)
        collapse(model)
        layout, instructions, _ = _commit(model, state)

        updates = _by(instructions, NODE, UPDATE)
        assert set(updates) == {1, 2, 3}
        assert updates[3].transition_from == (state.nodes[3].position,)
        assert updates[3].transition_to == (layout[3].point,)
        assert updates[3].collapsed

    def test_deep_collapse_sends_everything_to_root(self, branching_source):
        model = build_hierarchy(branching_source)
        _, _, state = _commit(model)
        collapse(model, 0)
        layout, instructions, _ = _commit(model, state)

        exiting = _by(instructions, NODE, EXIT)
        assert set(exiting) == set(model.nodes) - {"root"}
        for ins in exiting.values():
            assert ins.transition_to == (layout["root"].point,)


class TestExpandCommit:

    def test_new_node_grows_from_parent_previous_position(self, small_source):
        model = build_hierarchy(small_source)
        collapse(model)
        _, _, state = _commit(model)
        expand(model)
        layout, instructions, _ = _commit(model, state)

        entering = _by(instructions, NODE, ENTER)
        assert list(entering) == [4]
        ins = entering[4]
        assert ins.transition_from == (state.nodes[3].position,)
        assert ins.transition_to == (layout[4].point,)
        assert ins.opacity_from == TINY
        assert ins.opacity_to == 1.0

    def test_new_link_starts_degenerate_at_origin(self, small_source):
        model = build_hierarchy(small_source)
        collapse(model)
        _, _, state = _commit(model)
        expand(model)
        _, instructions, _ = _commit(model, state)

        link = _by(instructions, LINK, ENTER)[4]
        assert set(link.transition_from) == {state.nodes[3].position}

    def test_grandchild_starts_from_hidden_parent_fallback(self, branching_source):
        model = build_hierarchy(branching_source)
        collapse(model, 1)
        _, _, state = _commit(model)
        expand(model)
        _, instructions, _ = _commit(model, state)

        entering = _by(instructions, NODE, ENTER)
        # A2x had no visible parent before, so it starts at the old root.
        assert entering["A1"].transition_from == (state.nodes["A"].position,)
        assert entering["A2x"].transition_from == (state.nodes["root"].position,)


class TestConnections:

    def test_connection_persists_while_endpoints_move(self, branching_source):
        model = build_hierarchy(branching_source, connections=[("A2x", "B1")])
        collapse(model, 1)
        _, _, state = _commit(model)
        assert set(state.connections) == {("A2x", "B1")}

        expand(model)
        layout, instructions, state = _commit(model, state)
        ins = _by(instructions, CONNECTION)[("A2x", "B1")]
        assert ins.phase == UPDATE
        assert ins.transition_to[0] in (layout["A2x"].point, layout["B1"].point)

    def test_removed_connection_collapses_to_source(self, branching_source):
        model = build_hierarchy(branching_source)
        _, _, state = _commit(model)
        model.connections = []
        layout, instructions, new_state = _commit(model, state)

        exiting = _by(instructions, CONNECTION, EXIT)
        assert set(exiting) == {("A2x", "B1"), ("A1", "C"), ("B", "B")}
        assert set(exiting[("A2x", "B1")].transition_to) == {layout["A2x"].point}
        assert new_state.connections == {}

    def test_added_connection_fades_in_from_source(self, branching_source):
        model = build_hierarchy(branching_source, connections=[])
        _, _, state = _commit(model)
        model.connections = build_hierarchy(branching_source).connections
        layout, instructions, _ = _commit(model, state)

        entering = _by(instructions, CONNECTION, ENTER)
        ins = entering[("A1", "C")]
        assert ins.opacity_from == TINY
        assert set(ins.transition_from) == {layout["A1"].point}


class TestRetainedState:

    def test_idempotent_recommit(self, branching_source):
        model = build_hierarchy(branching_source)
        _, _, state = _commit(model)
        _, instructions, again = _commit(model, state)

        assert {i.phase for i in instructions} == {UPDATE}
        for ins in instructions:
            assert ins.transition_from == ins.transition_to
        assert again == state

    def test_rebind_animates_from_old_state(self, small_source):
        old = build_hierarchy(small_source)
        _, _, state = _commit(old)
        new = build_hierarchy({"id": 1, "name": "root", "children": [{"id": 9, "name": "z"}]})
        layout, instructions, new_state = _commit(new, state)

        nodes = _by(instructions, NODE)
        assert nodes[9].phase == ENTER
        assert nodes[9].transition_from == (state.nodes[1].position,)
        for gone in (2, 3, 4):
            assert nodes[gone].phase == EXIT
            assert nodes[gone].transition_to == (layout[1].point,)
        assert set(new_state.nodes) == {1, 9}

    @pytest.mark.parametrize("depth", [0, 1, 2])
    def test_state_never_holds_exited_entities(self, branching_source, depth):
        model = build_hierarchy(branching_source)
        _, _, state = _commit(model)
        collapse(model, depth)
        layout, _, state = _commit(model, state)

        assert set(state.nodes) == set(layout.order)
        assert set(state.links) == set(layout.order) - {"root"}

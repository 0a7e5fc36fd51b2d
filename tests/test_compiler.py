"""Tests for wavecron.workflow.compiler and graph validation."""

import pytest
from pydantic import ValidationError

from wavecron.core.cron.types import ShellCommandNode, WorkflowEdge, WorkflowGraph
from wavecron.workflow.compiler import compile_waves


def _graph(node_ids, edges=()):
    return WorkflowGraph(
        nodes=[ShellCommandNode(id=n, data={"command": f"echo {n}"}) for n in node_ids],
        edges=[WorkflowEdge(source=s, target=t) for s, t in edges],
    )


def _ids(waves):
    return [[node.id for node in wave] for wave in waves]


def test_empty_graph():
    assert compile_waves(WorkflowGraph()) == []


def test_linear_chain():
    waves = compile_waves(_graph("ABC", [("A", "B"), ("B", "C")]))
    assert _ids(waves) == [["A"], ["B"], ["C"]]


def test_diamond():
    waves = compile_waves(_graph("ABCD", [("A", "B"), ("A", "C"), ("B", "D"), ("C", "D")]))
    ids = _ids(waves)
    assert len(ids) == 3
    assert ids[0] == ["A"]
    assert set(ids[1]) == {"B", "C"}
    assert ids[2] == ["D"]


def test_disconnected_nodes_share_a_wave():
    waves = compile_waves(_graph("XY"))
    assert len(waves) == 1
    assert {n.id for n in waves[0]} == {"X", "Y"}


def test_wave_order_follows_graph_order():
    waves = compile_waves(_graph(["n3", "n1", "n2"]))
    assert _ids(waves) == [["n3", "n1", "n2"]]


def test_two_cycle_terminates_with_every_node_once():
    waves = compile_waves(_graph("XY", [("X", "Y"), ("Y", "X")]))
    emitted = [n for wave in waves for n in _ids([wave])[0]]
    assert sorted(emitted) == ["X", "Y"]
    assert len(emitted) == len(set(emitted))


def test_cycle_after_acyclic_prefix_becomes_final_wave():
    waves = compile_waves(_graph("AXYZ", [("A", "X"), ("X", "Y"), ("Y", "X"), ("Y", "Z")]))
    ids = _ids(waves)
    assert ids[0] == ["A"]
    assert set(ids[1]) == {"X", "Y", "Z"}
    assert len(ids) == 2


def test_self_loop():
    waves = compile_waves(_graph("AB", [("B", "B")]))
    assert _ids(waves) == [["A"], ["B"]]


def test_duplicate_edges_count_twice():
    waves = compile_waves(_graph("AB", [("A", "B"), ("A", "B")]))
    assert _ids(waves) == [["A"], ["B"]]


# ── Graph validation ───────────────────────────────────────


def test_duplicate_node_ids_rejected():
    with pytest.raises(ValidationError, match="Duplicate node id"):
        _graph("AA")


def test_dangling_edge_rejected():
    with pytest.raises(ValidationError, match="unknown node"):
        _graph("A", [("A", "ghost")])

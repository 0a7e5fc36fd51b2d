"""Workflow compiler — DAG → execution waves (topological peeling)."""

from __future__ import annotations

from wavecron.core.cron.types import WorkflowGraph, WorkflowNode


def compile_waves(graph: WorkflowGraph) -> list[list[WorkflowNode]]:
    """Group nodes into waves; every node in a wave may run concurrently.

    Each round takes all remaining nodes whose predecessors have been
    emitted. If a round finds none while nodes remain (a cycle), every
    remaining node goes into one final wave: the run still executes all of
    its work, without ordering among those nodes.
    """
    if not graph.nodes:
        return []

    in_degree: dict[str, int] = {node.id: 0 for node in graph.nodes}
    adjacency: dict[str, list[str]] = {node.id: [] for node in graph.nodes}
    for edge in graph.edges:
        if edge.source not in adjacency or edge.target not in in_degree:
            continue
        adjacency[edge.source].append(edge.target)
        in_degree[edge.target] += 1

    waves: list[list[WorkflowNode]] = []
    processed: set[str] = set()

    while len(processed) < len(graph.nodes):
        wave = [
            node
            for node in graph.nodes
            if node.id not in processed and in_degree[node.id] == 0
        ]
        if not wave:
            wave = [node for node in graph.nodes if node.id not in processed]
            if not wave:
                break

        waves.append(wave)
        for node in wave:
            processed.add(node.id)
            for target in adjacency[node.id]:
                in_degree[target] -= 1

    return waves

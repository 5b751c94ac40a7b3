"""Longest-path leveling of a rooted DAG.

A node's level is the number of edges on the longest path from the root to
it, so a node always sits deeper than every one of its dependencies. Shortest
path would place a node with both a short and a long chain of dependencies too
close to the root.
"""

from graphlib import CycleError, TopologicalSorter

import structlog

from leveldag.errors import GraphInvariantError
from leveldag.graph.model import DirectedGraph

logger = structlog.get_logger(__name__)


def topological_order(graph: DirectedGraph) -> list[int]:
    """Dependencies before dependents, each ready batch ordered by offset.

    Raises:
        GraphInvariantError: If the graph has a cycle
    """
    sorter = TopologicalSorter({node: graph.predecessors(node) for node in graph.nodes()})
    try:
        sorter.prepare()
    except CycleError as e:
        msg = f"graph is not acyclic: {e.args[1]}"
        raise GraphInvariantError(msg) from e

    order: list[int] = []
    while sorter.is_active():
        ready = sorted(sorter.get_ready())
        order.extend(ready)
        sorter.done(*ready)
    return order


def compute_levels(graph: DirectedGraph, root: int) -> dict[int, int]:
    """Map every node to its longest-path distance from ``root``.

    Raises:
        GraphInvariantError: If a node cannot be reached from ``root``
    """
    levels: dict[int, int] = {root: 0}

    for node in topological_order(graph):
        if node not in levels:
            continue
        for dependent in graph.successors(node):
            levels[dependent] = max(levels.get(dependent, 0), levels[node] + 1)

    unreachable = [node for node in graph.nodes() if node not in levels]
    if unreachable:
        logger.error("unreachable_nodes_found", root=root, nodes=unreachable)
        msg = f"nodes unreachable from root {root}: {unreachable}"
        raise GraphInvariantError(msg)

    return levels


def group_levels(levels: dict[int, int]) -> list[list[int]]:
    """Group nodes by level; index is the level, nodes ascend by offset.

    The result is dense: it has ``max(level) + 1`` groups.
    """
    if not levels:
        return []
    groups: list[list[int]] = [[] for _ in range(max(levels.values()) + 1)]
    for node in sorted(levels):
        groups[levels[node]].append(node)
    return groups

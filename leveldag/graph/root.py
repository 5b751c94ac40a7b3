"""Root resolution: pick the single entry point of a validated graph."""

import structlog

from leveldag.config import ROOT_NAME
from leveldag.errors import NoRootFoundError
from leveldag.graph.model import GraphSnapshot, SyntheticRoot

logger = structlog.get_logger(__name__)


def natural_roots(snapshot: GraphSnapshot) -> list[int]:
    """Return the offsets of all objects without dependencies, ascending."""
    return [node for node in snapshot.graph.nodes() if snapshot.graph.in_degree(node) == 0]


def resolve_root(snapshot: GraphSnapshot) -> tuple[GraphSnapshot, int]:
    """Find the root of ``snapshot``, adding a synthetic one if needed.

    With exactly one natural root the snapshot is returned unchanged. With
    several, a new snapshot is returned that holds a ``SyntheticRoot`` at the
    next free offset with an edge to each natural root; the input snapshot is
    left untouched.

    Returns:
        The (possibly new) snapshot and the root offset

    Raises:
        NoRootFoundError: If every node has a dependency, which can only happen
            if a cycle slipped past validation
    """
    roots = natural_roots(snapshot)

    if not roots:
        logger.error("no_graph_roots_found", node_count=len(snapshot.graph))
        msg = "no graph roots found"
        raise NoRootFoundError(msg)

    if len(roots) == 1:
        logger.debug("natural_root_found", root=snapshot.names[roots[0]])
        return snapshot, roots[0]

    offset = len(snapshot.objects)
    synthetic = SyntheticRoot(dependencies=tuple(snapshot.names[r] for r in roots))

    graph = snapshot.graph.copy()
    graph.add_node(offset, ROOT_NAME)
    for root in roots:
        graph.add_edge(offset, root)

    logger.debug(
        "synthetic_root_added",
        offset=offset,
        natural_roots=list(synthetic.dependencies),
    )

    resolved = GraphSnapshot(
        objects=(*snapshot.objects, synthetic),
        graph=graph,
        names={**snapshot.names, offset: ROOT_NAME},
        offsets={**snapshot.offsets, ROOT_NAME: offset},
    )
    return resolved, offset

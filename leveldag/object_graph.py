"""ObjectGraph: build, inspect, describe and walk a graph of named objects.

Example:
    >>> graph = ObjectGraph()
    >>> graph.build([
    ...     NamedObject("db"),
    ...     NamedObject("cache"),
    ...     NamedObject("api", dependencies=("db", "cache")),
    ... ])
    >>> [[o.name for o in level] for level in graph.info().levels]
    [['__ROOT__'], ['db', 'cache'], ['api']]
    >>> await graph.walk(None, deploy)  # deploys api, then db and cache
"""

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import structlog

from leveldag.config import LevelDagConfig, get_config
from leveldag.errors import EmptyGraphError, ObjectGraphError
from leveldag.graph.export import describe
from leveldag.graph.levels import compute_levels, group_levels
from leveldag.graph.model import GraphObject, GraphSnapshot, SyntheticRoot
from leveldag.graph.root import resolve_root
from leveldag.graph.validator import GraphValidator, ValidationReport
from leveldag.orchestrator.walker import ActionFunc, CancellationSignal, LevelWalker

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class GraphInfo:
    """Root object and level groups of a built graph (index = level)."""

    root: GraphObject
    levels: tuple[tuple[GraphObject, ...], ...]


class ObjectGraph:
    """Builds and analyzes a graph of the supplied objects.

    ``build`` may be called repeatedly; each call starts from a clean state,
    and a failed build leaves the graph empty. The built structures are
    immutable, so concurrent actions may read them freely during a walk.

    Attributes:
        config: Walk and export settings; the shared configuration from
            ``leveldag.yaml`` and ``LEVELDAG_*`` variables when not given
        validator: Validator used to populate the graph
    """

    def __init__(self, config: LevelDagConfig | None = None):
        self.config = config or get_config()
        self.validator = GraphValidator()
        self._reset()

    def _reset(self) -> None:
        self._snapshot: GraphSnapshot | None = None
        self._root: int | None = None
        self._levels: tuple[tuple[GraphObject, ...], ...] = ()

    def build(self, objects: Iterable[GraphObject]) -> None:
        """Validate ``objects``, resolve the root and compute levels.

        Raises:
            InvalidNameError: Empty, reserved or duplicate name
            UnknownDependencyError: Dependency not among ``objects``
            SelfDependencyError: Object depends on itself
            CycleDetectedError: One or more dependency cycles
            NoRootFoundError: No objects were supplied
        """
        self._reset()
        objects = list(objects)
        logger.info("building_object_graph", object_count=len(objects))

        try:
            snapshot = self.validator.populate(objects)
            snapshot, root = resolve_root(snapshot)
            groups = group_levels(compute_levels(snapshot.graph, root))
        except ObjectGraphError as e:
            logger.error(
                "object_graph_build_failed",
                error=e.message,
                error_type=type(e).__name__,
            )
            raise

        self._snapshot = snapshot
        self._root = root
        self._levels = tuple(
            tuple(snapshot.object_at(offset) for offset in group) for group in groups
        )

        logger.info(
            "object_graph_built",
            node_count=len(snapshot.graph),
            edge_count=snapshot.graph.edge_count(),
            level_count=len(self._levels),
            root=snapshot.names[root],
        )

    def validate(self, objects: Iterable[GraphObject]) -> ValidationReport:
        """Report every structural problem in ``objects`` without building."""
        return self.validator.validate(list(objects))

    @property
    def is_built(self) -> bool:
        return self._snapshot is not None

    def _require_built(self) -> GraphSnapshot:
        if self._snapshot is None:
            msg = "graph is empty"
            raise EmptyGraphError(msg)
        return self._snapshot

    def info(self) -> GraphInfo:
        """Return the root object and the level groups.

        Raises:
            EmptyGraphError: If no build has succeeded
        """
        snapshot = self._require_built()
        return GraphInfo(root=snapshot.object_at(self._root), levels=self._levels)

    def describe(self, graph_name: str, output_format: str | None = None) -> bytes:
        """Return a graph description (Graphviz DOT by default) as bytes.

        Raises:
            EmptyGraphError: If no build has succeeded
            ExportError: If the graph can't be serialized
        """
        snapshot = self._require_built()
        return describe(
            snapshot,
            graph_name,
            output_format=output_format or self.config.export.default_format,
            indent=self.config.export.indent,
        )

    async def walk(
        self,
        cancel: CancellationSignal | None,
        action: ActionFunc,
    ) -> dict[str, Any]:
        """Run ``action`` over every non-root object, deepest level first.

        Objects within a level run concurrently. Dependents are always on a
        deeper level than their dependencies, so they run first. Walking a
        graph that was never built does nothing.

        Returns:
            Mapping of object name to action result

        Raises:
            WalkCancelledError: If ``cancel`` was set at a level boundary
            LevelExecutionError: If an action raised
        """
        if self._snapshot is None:
            logger.warning("walk_called_before_build", message="Graph not built.")
            return {}

        walker = LevelWalker(max_concurrency=self.config.walk.max_concurrency)
        return await walker.walk(
            self._levels,
            self._snapshot.object_at(self._root),
            action,
            cancel=cancel,
        )

    def walk_sync(
        self,
        cancel: CancellationSignal | None,
        action: ActionFunc,
    ) -> dict[str, Any]:
        """Blocking ``walk`` for callers without a running event loop."""
        return asyncio.run(self.walk(cancel, action))

    def get_stats(self) -> dict[str, Any]:
        """Get statistics about the built graph.

        Returns:
            Dictionary with ``is_built``, ``total_nodes``, ``total_edges``,
            ``level_count`` and ``synthetic_root``
        """
        if self._snapshot is None:
            return {
                "is_built": False,
                "total_nodes": 0,
                "total_edges": 0,
                "level_count": 0,
                "synthetic_root": False,
            }

        return {
            "is_built": True,
            "total_nodes": len(self._snapshot.graph),
            "total_edges": self._snapshot.graph.edge_count(),
            "level_count": len(self._levels),
            "synthetic_root": isinstance(self._snapshot.object_at(self._root), SyntheticRoot),
        }

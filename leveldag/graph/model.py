"""Graph model: the object contract, an offset-keyed digraph and snapshots.

Nodes are integer offsets. Offset ``i`` is the ``i``-th supplied object; the
synthetic root, when one is needed, takes the next free offset.
"""

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Protocol, runtime_checkable

from leveldag.config import ROOT_NAME


@runtime_checkable
class GraphObject(Protocol):
    """An object that becomes a node in the graph.

    Attributes:
        name: Unique, non-empty name used to resolve dependencies
        label: Display label used as the node identifier in exported graphs
        dependencies: Names of the objects this one depends on
    """

    @property
    def name(self) -> str: ...

    @property
    def label(self) -> str: ...

    @property
    def dependencies(self) -> Sequence[str]: ...


@dataclass(frozen=True)
class NamedObject:
    """Plain GraphObject implementation; ``label`` defaults to ``name``."""

    name: str
    label: str | None = None
    dependencies: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.label is None:
            object.__setattr__(self, "label", self.name)
        object.__setattr__(self, "dependencies", tuple(self.dependencies))


@dataclass(frozen=True)
class SyntheticRoot:
    """Virtual root depending on every natural root of the graph."""

    dependencies: tuple[str, ...] = ()

    @property
    def name(self) -> str:
        return ROOT_NAME

    @property
    def label(self) -> str:
        return ROOT_NAME


class DirectedGraph:
    """Adjacency-list digraph keyed by integer offsets.

    An edge ``u -> v`` means ``v`` depends on ``u``: edges run from a
    dependency to its dependents, so objects without dependencies have no
    incoming edges and levels grow along edges. Adding an edge twice has no
    additional effect.
    """

    def __init__(self) -> None:
        self._labels: dict[int, str] = {}
        self._successors: dict[int, set[int]] = {}
        self._predecessors: dict[int, set[int]] = {}

    def add_node(self, node: int, label: str) -> None:
        if node in self._labels:
            msg = f"node {node} already exists"
            raise ValueError(msg)
        self._labels[node] = label
        self._successors[node] = set()
        self._predecessors[node] = set()

    def add_edge(self, source: int, target: int) -> None:
        if source not in self._labels or target not in self._labels:
            msg = f"edge {source} -> {target} references a missing node"
            raise ValueError(msg)
        if source == target:
            msg = f"self-loop on node {source}"
            raise ValueError(msg)
        self._successors[source].add(target)
        self._predecessors[target].add(source)

    def has_edge(self, source: int, target: int) -> bool:
        return target in self._successors.get(source, ())

    def nodes(self) -> list[int]:
        """Return all nodes in ascending offset order."""
        return sorted(self._labels)

    def edges(self) -> Iterator[tuple[int, int]]:
        """Yield every edge, ordered by source then target offset."""
        for source in self.nodes():
            for target in sorted(self._successors[source]):
                yield source, target

    def label(self, node: int) -> str:
        return self._labels[node]

    def successors(self, node: int) -> list[int]:
        """Dependents of ``node``, in ascending offset order."""
        return sorted(self._successors[node])

    def predecessors(self, node: int) -> list[int]:
        """Dependencies of ``node``, in ascending offset order."""
        return sorted(self._predecessors[node])

    def in_degree(self, node: int) -> int:
        return len(self._predecessors[node])

    def copy(self) -> "DirectedGraph":
        new_graph = DirectedGraph()
        new_graph._labels = dict(self._labels)
        new_graph._successors = {n: set(s) for n, s in self._successors.items()}
        new_graph._predecessors = {n: set(p) for n, p in self._predecessors.items()}
        return new_graph

    def __len__(self) -> int:
        return len(self._labels)

    def __contains__(self, node: object) -> bool:
        return node in self._labels

    def edge_count(self) -> int:
        return sum(len(targets) for targets in self._successors.values())


@dataclass(frozen=True)
class GraphSnapshot:
    """Immutable view of a populated graph and its name lookups."""

    objects: tuple[GraphObject, ...]
    graph: DirectedGraph
    names: Mapping[int, str] = field(default_factory=dict)
    offsets: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "names", MappingProxyType(dict(self.names)))
        object.__setattr__(self, "offsets", MappingProxyType(dict(self.offsets)))

    def object_at(self, offset: int) -> GraphObject:
        return self.objects[offset]

    def chain_names(self, offsets: Sequence[int]) -> list[str]:
        """Translate a sequence of offsets into object names."""
        return [self.names[offset] for offset in offsets]

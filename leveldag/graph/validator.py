"""Graph population and validation with detailed cycle reporting.

``GraphValidator.populate`` turns a sequence of objects into a validated
``GraphSnapshot`` and raises on the first structural problem.
``GraphValidator.validate`` runs the same checks but collects every problem
into a ``ValidationReport`` instead of raising.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog

from leveldag.config import ROOT_NAME
from leveldag.errors import (
    BuildError,
    CycleDetectedError,
    InvalidNameError,
    SelfDependencyError,
    UnknownDependencyError,
)
from leveldag.graph.model import DirectedGraph, GraphObject, GraphSnapshot

logger = structlog.get_logger(__name__)


@dataclass
class ValidationReport:
    """Report containing validation results for a set of objects.

    Attributes:
        is_valid: Whether the objects would build successfully
        errors: Error messages (anything that makes ``build`` fail)
        warnings: Warning messages (legal but suspicious structure)
        cycles: Detected cycles, each a list of names ending where it started
        missing_refs: Dependency names that no object defines
        invalid_names: Input positions with empty, reserved or duplicate names
        self_dependencies: Names of objects that depend on themselves
        isolated: Names of objects with neither dependencies nor dependents
    """

    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    cycles: list[list[str]] = field(default_factory=list)
    missing_refs: set[str] = field(default_factory=set)
    invalid_names: list[int] = field(default_factory=list)
    self_dependencies: set[str] = field(default_factory=set)
    isolated: set[str] = field(default_factory=set)

    def add_error(self, message: str) -> None:
        """Add an error message and mark validation as failed."""
        self.errors.append(message)
        self.is_valid = False
        logger.error("validation_error", message=message)

    def add_warning(self, message: str) -> None:
        """Add a warning message without failing validation."""
        self.warnings.append(message)
        logger.warning("validation_warning", message=message)

    def record(self, error: BuildError) -> None:
        """Record a build error in the matching report field."""
        if isinstance(error, InvalidNameError):
            self.invalid_names.append(error.position)
        elif isinstance(error, UnknownDependencyError):
            self.missing_refs.add(error.dependency)
        elif isinstance(error, SelfDependencyError):
            self.self_dependencies.add(error.name)
        elif isinstance(error, CycleDetectedError):
            self.cycles.extend(error.cycles)
        self.add_error(error.message)

    def summary(self) -> str:
        """Generate a human-readable summary of the validation report."""
        lines = [
            f"Validation Status: {'PASS' if self.is_valid else 'FAIL'}",
            f"Errors: {len(self.errors)}",
            f"Warnings: {len(self.warnings)}",
            f"Cycles: {len(self.cycles)}",
            f"Missing References: {len(self.missing_refs)}",
        ]

        if self.errors:
            lines.append("\nErrors:")
            lines.extend(f"  - {error}" for error in self.errors)

        if self.warnings:
            lines.append("\nWarnings:")
            lines.extend(f"  - {warning}" for warning in self.warnings)

        if self.cycles:
            lines.append("\nCycles Detected:")
            for i, cycle in enumerate(self.cycles, 1):
                lines.append(f"  {i}. {' -> '.join(cycle)}")

        if self.missing_refs:
            lines.append(f"\nMissing References: {', '.join(sorted(self.missing_refs))}")

        return "\n".join(lines)


def strongly_connected_components(graph: DirectedGraph) -> list[set[int]]:
    """Tarjan's algorithm, iterative so deep graphs don't hit the recursion limit."""
    index: dict[int, int] = {}
    lowlink: dict[int, int] = {}
    on_stack: set[int] = set()
    stack: list[int] = []
    components: list[set[int]] = []
    counter = 0

    for root in graph.nodes():
        if root in index:
            continue
        work = [(root, iter(graph.successors(root)))]
        index[root] = lowlink[root] = counter
        counter += 1
        stack.append(root)
        on_stack.add(root)

        while work:
            node, successors = work[-1]
            for nxt in successors:
                if nxt not in index:
                    index[nxt] = lowlink[nxt] = counter
                    counter += 1
                    stack.append(nxt)
                    on_stack.add(nxt)
                    work.append((nxt, iter(graph.successors(nxt))))
                    break
                if nxt in on_stack:
                    lowlink[node] = min(lowlink[node], index[nxt])
            else:
                work.pop()
                if work:
                    parent = work[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[node])
                if lowlink[node] == index[node]:
                    component = set()
                    while True:
                        member = stack.pop()
                        on_stack.discard(member)
                        component.add(member)
                        if member == node:
                            break
                    components.append(component)

    return components


def find_cycles(graph: DirectedGraph) -> list[list[int]]:
    """Enumerate every elementary cycle in ``graph``.

    Each cycle is reported once, starting and ending at its lowest offset,
    e.g. ``[0, 2, 1, 0]``. Only strongly connected components with more than
    one node can hold a cycle, so an acyclic graph costs a single linear pass.
    Within a component the search from a start node only visits nodes with a
    higher offset, so rotations of the same cycle are never repeated.
    """
    cycles: list[list[int]] = []

    for component in strongly_connected_components(graph):
        if len(component) < 2:
            continue

        for start in sorted(component):

            def later(node: int, start: int = start, component: set[int] = component):
                return iter([n for n in graph.successors(node) if n >= start and n in component])

            path = [start]
            on_path = {start}
            stack = [later(start)]

            while stack:
                for nxt in stack[-1]:
                    if nxt == start:
                        cycles.append([*path, start])
                    elif nxt not in on_path:
                        path.append(nxt)
                        on_path.add(nxt)
                        stack.append(later(nxt))
                        break
                else:
                    stack.pop()
                    on_path.discard(path.pop())

    cycles.sort()
    return cycles


class GraphValidator:
    """Builds validated graph snapshots from GraphObjects."""

    def populate(self, objects: Sequence[GraphObject]) -> GraphSnapshot:
        """Populate a graph from ``objects``, raising on the first problem.

        Args:
            objects: Objects in offset order

        Returns:
            Snapshot holding the graph and its name/offset lookups

        Raises:
            InvalidNameError: Empty, reserved or duplicate name
            UnknownDependencyError: Dependency not among ``objects``
            SelfDependencyError: Object depends on itself
            CycleDetectedError: One or more dependency cycles
        """
        return self._populate(objects, report=None)

    def validate(self, objects: Sequence[GraphObject]) -> ValidationReport:
        """Check ``objects`` and report every problem without raising."""
        logger.info("starting_graph_validation", object_count=len(objects))

        report = ValidationReport()
        snapshot = self._populate(objects, report=report)

        if len(snapshot.graph) > 1:
            for node in snapshot.graph.nodes():
                if not snapshot.graph.successors(node) and not snapshot.graph.predecessors(node):
                    report.isolated.add(snapshot.names[node])
            if report.isolated:
                report.add_warning(
                    f"Objects with no dependencies or dependents: "
                    f"{', '.join(sorted(report.isolated))}",
                )

        logger.info(
            "graph_validation_complete",
            is_valid=report.is_valid,
            error_count=len(report.errors),
            warning_count=len(report.warnings),
        )
        return report

    def _populate(
        self,
        objects: Sequence[GraphObject],
        report: ValidationReport | None,
    ) -> GraphSnapshot:
        def fail(error: BuildError) -> None:
            if report is None:
                logger.debug("graph_population_failed", error=error.message)
                raise error
            report.record(error)

        graph = DirectedGraph()
        names: dict[int, str] = {}
        offsets: dict[str, int] = {}

        for offset, obj in enumerate(objects):
            name = obj.name
            if not name:
                fail(InvalidNameError(f"empty object name at offset {offset}", offset, name))
                continue
            if name == ROOT_NAME:
                fail(
                    InvalidNameError(
                        f"reserved name at offset {offset}: {ROOT_NAME}",
                        offset,
                        name,
                    ),
                )
                continue
            if name in offsets:
                fail(
                    InvalidNameError(
                        f"duplicate name at offset {offset}: {name} "
                        f"(first seen at offset {offsets[name]})",
                        offset,
                        name,
                    ),
                )
                continue
            names[offset] = name
            offsets[name] = offset
            graph.add_node(offset, obj.label)

        for offset, obj in enumerate(objects):
            if names.get(offset) != obj.name:
                continue
            for dependency in obj.dependencies:
                target = offsets.get(dependency)
                if target is None:
                    fail(UnknownDependencyError(obj.name, dependency))
                elif target == offset:
                    fail(SelfDependencyError(obj.name))
                else:
                    graph.add_edge(target, offset)

        cycles = find_cycles(graph)
        if cycles:
            # edges point at dependents; report chains in depends-on order
            chains = sorted([names[node] for node in reversed(cycle)] for cycle in cycles)
            fail(CycleDetectedError(chains))

        logger.debug(
            "graph_populated",
            node_count=len(graph),
            edge_count=graph.edge_count(),
        )
        return GraphSnapshot(objects=tuple(objects), graph=graph, names=names, offsets=offsets)

"""Exception hierarchy for graph construction, walking and export.

Every exception stores a human-readable ``message`` plus the structured
context needed to locate the problem (position, names, cycle chains, level).
"""

from typing import Any


class ObjectGraphError(Exception):
    """Base class for all leveldag errors."""

    def __init__(self, message: str):
        """Initialize the exception with a descriptive message.

        Args:
            message: Description of the error
        """
        super().__init__(message)
        self.message = message


class BuildError(ObjectGraphError):
    """Raised when the supplied objects do not form a valid graph."""


class InvalidNameError(BuildError):
    """Raised for an empty, reserved or duplicate object name."""

    def __init__(self, message: str, position: int, name: str):
        super().__init__(message)
        self.position = position
        self.name = name


class UnknownDependencyError(BuildError):
    """Raised when a dependency names an object that was not supplied."""

    def __init__(self, dependent: str, dependency: str):
        super().__init__(f"unknown dependency (of {dependent}): {dependency}")
        self.dependent = dependent
        self.dependency = dependency


class SelfDependencyError(BuildError):
    """Raised when an object lists itself as a dependency."""

    def __init__(self, name: str):
        super().__init__(f"dependency references itself on {name}")
        self.name = name


class CycleDetectedError(BuildError):
    """Raised when the dependency graph contains one or more cycles.

    Attributes:
        cycles: Every distinct cycle as a list of names, first name repeated
            at the end (e.g. ``["a", "b", "a"]``)
    """

    def __init__(self, cycles: list[list[str]]):
        chains = "; ".join(" -> ".join(cycle) for cycle in cycles)
        super().__init__(f"dependency cycles found ({len(cycles)}): {chains}")
        self.cycles = cycles


class GraphInvariantError(ObjectGraphError):
    """Raised when an internal graph invariant does not hold."""


class NoRootFoundError(GraphInvariantError):
    """Raised when no node has zero incoming edges."""


class EmptyGraphError(ObjectGraphError):
    """Raised when the graph is queried before a successful build."""


class ExportError(ObjectGraphError):
    """Raised when the graph cannot be serialized."""


class WalkError(ObjectGraphError):
    """Base class for failures that abort a walk.

    Attributes:
        level: Index of the level that was about to run or that failed
        results: Results of the actions that completed before the abort
    """

    def __init__(self, message: str, level: int, results: dict[str, Any] | None = None):
        super().__init__(message)
        self.level = level
        self.results = results if results is not None else {}


class WalkCancelledError(WalkError):
    """Raised when the cancellation signal fires at a level boundary."""

    def __init__(self, level: int, results: dict[str, Any] | None = None):
        super().__init__(f"walk was cancelled before level {level}", level, results)


class LevelExecutionError(WalkError):
    """Raised when an action fails within a level.

    Attributes:
        node_name: Name of the object whose action failed first
        error: The exception raised by that action
    """

    def __init__(
        self,
        level: int,
        node_name: str,
        error: BaseException,
        results: dict[str, Any] | None = None,
    ):
        super().__init__(
            f"error executing level {level}: {node_name}: {error}",
            level,
            results,
        )
        self.node_name = node_name
        self.error = error

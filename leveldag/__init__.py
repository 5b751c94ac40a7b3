"""Build, level and walk dependency graphs of named objects."""

from leveldag.config import ROOT_NAME, LevelDagConfig
from leveldag.errors import (
    BuildError,
    CycleDetectedError,
    EmptyGraphError,
    ExportError,
    GraphInvariantError,
    InvalidNameError,
    LevelExecutionError,
    NoRootFoundError,
    ObjectGraphError,
    SelfDependencyError,
    UnknownDependencyError,
    WalkCancelledError,
    WalkError,
)
from leveldag.graph.model import GraphObject, NamedObject, SyntheticRoot
from leveldag.graph.validator import ValidationReport
from leveldag.object_graph import GraphInfo, ObjectGraph

__version__ = "0.1.0"

__all__ = [
    "ROOT_NAME",
    "BuildError",
    "CycleDetectedError",
    "EmptyGraphError",
    "ExportError",
    "GraphInfo",
    "GraphInvariantError",
    "GraphObject",
    "InvalidNameError",
    "LevelDagConfig",
    "LevelExecutionError",
    "NamedObject",
    "NoRootFoundError",
    "ObjectGraph",
    "ObjectGraphError",
    "SelfDependencyError",
    "SyntheticRoot",
    "UnknownDependencyError",
    "ValidationReport",
    "WalkCancelledError",
    "WalkError",
]

"""Graph construction: object model, validation, root resolution, leveling and export."""

from leveldag.graph.export import describe
from leveldag.graph.levels import compute_levels, group_levels
from leveldag.graph.model import DirectedGraph, GraphObject, GraphSnapshot, NamedObject, SyntheticRoot
from leveldag.graph.root import resolve_root
from leveldag.graph.validator import GraphValidator, ValidationReport, find_cycles

__all__ = [
    "DirectedGraph",
    "GraphObject",
    "GraphSnapshot",
    "GraphValidator",
    "NamedObject",
    "SyntheticRoot",
    "ValidationReport",
    "compute_levels",
    "describe",
    "find_cycles",
    "group_levels",
    "resolve_root",
]

"""Concurrent, level-ordered execution over a built graph."""

from leveldag.orchestrator.walker import ActionFunc, CancellationSignal, LevelWalker

__all__ = ["ActionFunc", "CancellationSignal", "LevelWalker"]

"""Level-ordered concurrent walk over a leveled graph.

Levels run from the deepest index down to 0. Every node of a level is
dispatched at once and the level acts as a barrier: the next level starts only
after every action of the current one has finished. Coroutine-function actions
run as asyncio tasks; plain callables run in worker threads.
"""

import asyncio
import inspect
import uuid
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

from leveldag.errors import LevelExecutionError, WalkCancelledError
from leveldag.graph.model import GraphObject
from leveldag.log_config import bind_context, get_logger, unbind_context

logger = get_logger(__name__)

ActionFunc = Callable[[GraphObject], Any] | Callable[[GraphObject], Awaitable[Any]]


class CancellationSignal(Protocol):
    """Anything with ``is_set()``, e.g. ``asyncio.Event`` or ``threading.Event``."""

    def is_set(self) -> bool: ...


class LevelWalker:
    """Runs an action over every non-root object, deepest level first.

    Dependents sit on deeper levels than their dependencies, so a walk visits
    every dependent before any of its dependencies. The root object is never
    passed to the action.

    Example:
        >>> walker = LevelWalker(max_concurrency=4)
        >>> results = await walker.walk(levels, root, deploy, cancel=stop_event)

    Attributes:
        max_concurrency: Upper bound on actions in flight, or None for no bound
    """

    def __init__(self, max_concurrency: int | None = None):
        if max_concurrency is not None and max_concurrency < 1:
            msg = f"max_concurrency must be at least 1, got {max_concurrency}"
            raise ValueError(msg)
        self.max_concurrency = max_concurrency

    async def walk(
        self,
        levels: Sequence[Sequence[GraphObject]],
        root: GraphObject,
        action: ActionFunc,
        cancel: CancellationSignal | None = None,
    ) -> dict[str, Any]:
        """Walk ``levels`` from the highest index down to 0.

        Args:
            levels: Level groups, index = level
            root: The root object, skipped wherever it appears
            action: Called once per non-root object; may be a coroutine function
            cancel: Checked before each level is dispatched

        Returns:
            Mapping of object name to the value its action returned

        Raises:
            WalkCancelledError: If ``cancel`` was set at a level boundary
            LevelExecutionError: If an action raised; wraps the first failure
        """
        walk_id = uuid.uuid4().hex[:12]
        bind_context(walk_id=walk_id)
        results: dict[str, Any] = {}

        try:
            logger.info("walk_started", level_count=len(levels))

            for level in range(len(levels) - 1, -1, -1):
                if cancel is not None and cancel.is_set():
                    logger.warning("walk_cancelled", level=level, completed=len(results))
                    raise WalkCancelledError(level, results)

                objects = [obj for obj in levels[level] if obj is not root]
                if not objects:
                    logger.debug("level_skipped", level=level)
                    continue

                await self._run_level(level, objects, action, results)

            logger.info("walk_completed", completed=len(results))
            return results
        finally:
            unbind_context("walk_id")

    async def _run_level(
        self,
        level: int,
        objects: list[GraphObject],
        action: ActionFunc,
        results: dict[str, Any],
    ) -> None:
        logger.info(
            "level_dispatched",
            level=level,
            node_count=len(objects),
            nodes=[obj.name for obj in objects],
        )

        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None
        failures: list[tuple[str, Exception]] = []

        async def run(obj: GraphObject) -> None:
            if semaphore is None:
                await self._invoke(level, obj, action, results, failures)
                return
            async with semaphore:
                await self._invoke(level, obj, action, results, failures)

        # _invoke records failures itself, so every sibling runs to completion
        await asyncio.gather(*(run(obj) for obj in objects))

        if failures:
            node_name, error = failures[0]
            logger.error(
                "level_execution_failed",
                level=level,
                node=node_name,
                error=str(error),
                failure_count=len(failures),
            )
            raise LevelExecutionError(level, node_name, error, results) from error

        logger.info("level_completed", level=level, node_count=len(objects))

    @staticmethod
    async def _invoke(
        level: int,
        obj: GraphObject,
        action: ActionFunc,
        results: dict[str, Any],
        failures: list[tuple[str, Exception]],
    ) -> None:
        try:
            if inspect.iscoroutinefunction(action):
                result = await action(obj)
            else:
                result = await asyncio.to_thread(action, obj)
                if inspect.isawaitable(result):
                    result = await result
        except Exception as e:
            logger.warning(
                "node_action_failed",
                level=level,
                node=obj.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            failures.append((obj.name, e))
            return

        results[obj.name] = result
        logger.debug("node_action_completed", level=level, node=obj.name)

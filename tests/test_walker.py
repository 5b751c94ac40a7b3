"""Unit tests for level-ordered walks.

Tests cover:
- Deepest-level-first ordering and root skipping
- Concurrent dispatch within a level (async tasks and worker threads)
- Cancellation at level boundaries
- Failure handling: barrier, first error wins, no shallower level started
- Concurrency limits from configuration
"""

import asyncio
import threading

import pytest

from leveldag import (
    LevelDagConfig,
    LevelExecutionError,
    NamedObject,
    ObjectGraph,
    WalkCancelledError,
)
from leveldag.orchestrator.walker import LevelWalker


def obj(name: str, *deps: str) -> NamedObject:
    return NamedObject(name, dependencies=deps)


def build(*objects: NamedObject, config: LevelDagConfig | None = None) -> ObjectGraph:
    graph = ObjectGraph(config)
    graph.build(list(objects))
    return graph


class Recorder:
    """Thread-safe record of the order in which actions ran."""

    def __init__(self):
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def __call__(self, node) -> str:
        with self._lock:
            self.calls.append(node.name)
        return f"done:{node.name}"


class TestWalkOrder:
    """Test level ordering and root handling."""

    @pytest.mark.asyncio
    async def test_dependent_level_runs_before_dependencies(self):
        """Test that C (level 2) runs before A and B (level 1)."""
        graph = build(obj("A"), obj("B"), obj("C", "A", "B"))
        recorder = Recorder()

        await graph.walk(None, recorder)

        assert recorder.calls[0] == "C"
        assert sorted(recorder.calls[1:]) == ["A", "B"]

    @pytest.mark.asyncio
    async def test_synthetic_root_never_passed_to_action(self):
        """Test that the synthetic root is skipped."""
        graph = build(obj("A"), obj("B"))
        recorder = Recorder()

        await graph.walk(None, recorder)

        assert sorted(recorder.calls) == ["A", "B"]

    @pytest.mark.asyncio
    async def test_single_object_invokes_nothing(self):
        """Test that a lone root object is never acted on."""
        graph = build(obj("only"))
        recorder = Recorder()

        results = await graph.walk(None, recorder)

        assert recorder.calls == []
        assert results == {}

    @pytest.mark.asyncio
    async def test_chain_runs_deepest_first(self):
        """Test the full order along a dependency chain."""
        graph = build(obj("a"), obj("b", "a"), obj("c", "b"), obj("d", "c"))
        recorder = Recorder()

        await graph.walk(None, recorder)

        assert recorder.calls == ["d", "c", "b"]

    @pytest.mark.asyncio
    async def test_results_keyed_by_name(self):
        """Test that return values are collected per object."""
        graph = build(obj("A"), obj("B"), obj("C", "A", "B"))

        results = await graph.walk(None, Recorder())

        assert results == {"A": "done:A", "B": "done:B", "C": "done:C"}

    @pytest.mark.asyncio
    async def test_walk_before_build_is_noop(self):
        """Test that walking an unbuilt graph does nothing."""
        recorder = Recorder()

        assert await ObjectGraph().walk(None, recorder) == {}
        assert recorder.calls == []


class TestConcurrency:
    """Test concurrent dispatch within a level."""

    @pytest.mark.asyncio
    async def test_sync_actions_run_in_parallel_threads(self):
        """Test that plain callables of one level run at the same time."""
        graph = build(obj("base"), obj("x", "base"), obj("y", "base"), obj("z", "base"))
        barrier = threading.Barrier(3, timeout=5)

        def action(node):
            barrier.wait()
            return node.name

        results = await graph.walk(None, action)

        assert set(results) == {"x", "y", "z"}

    @pytest.mark.asyncio
    async def test_async_actions_overlap(self):
        """Test that coroutine actions of one level are all in flight together."""
        graph = build(obj("base"), obj("x", "base"), obj("y", "base"), obj("z", "base"))
        in_flight = 0
        peak = 0

        async def action(node):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1

        await graph.walk(None, action)

        assert peak == 3

    @pytest.mark.asyncio
    async def test_max_concurrency_limits_in_flight_actions(self):
        """Test that the configured bound serializes a level."""
        config = LevelDagConfig(walk={"max_concurrency": 1})
        graph = build(
            obj("base"),
            obj("x", "base"),
            obj("y", "base"),
            obj("z", "base"),
            config=config,
        )
        in_flight = 0
        peak = 0

        async def action(node):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1

        await graph.walk(None, action)

        assert peak == 1

    @pytest.mark.asyncio
    async def test_env_max_concurrency_applies_to_default_graph(self, monkeypatch):
        """Test that LEVELDAG_WALK_MAX_CONCURRENCY bounds a default ObjectGraph."""
        monkeypatch.setenv("LEVELDAG_WALK_MAX_CONCURRENCY", "1")
        graph = build(obj("base"), obj("x", "base"), obj("y", "base"), obj("z", "base"))
        in_flight = 0
        peak = 0

        async def action(node):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1

        await graph.walk(None, action)

        assert graph.config.walk.max_concurrency == 1
        assert peak == 1

    def test_invalid_max_concurrency(self):
        """Test that the walker rejects a zero bound."""
        with pytest.raises(ValueError, match="at least 1"):
            LevelWalker(max_concurrency=0)


class TestCancellation:
    """Test cooperative cancellation at level boundaries."""

    @pytest.mark.asyncio
    async def test_cancelled_before_first_level(self):
        """Test that a pre-set signal prevents every action."""
        graph = build(obj("A"), obj("B"), obj("C", "A", "B"))
        cancel = asyncio.Event()
        cancel.set()
        recorder = Recorder()

        with pytest.raises(WalkCancelledError) as exc_info:
            await graph.walk(cancel, recorder)

        assert recorder.calls == []
        assert exc_info.value.level == 2
        assert exc_info.value.results == {}

    @pytest.mark.asyncio
    async def test_cancelled_between_levels(self):
        """Test that cancelling during a level stops the next one."""
        graph = build(obj("a"), obj("b", "a"), obj("c", "b"))
        cancel = threading.Event()
        calls: list[str] = []

        def action(node):
            calls.append(node.name)
            cancel.set()
            return node.name

        with pytest.raises(WalkCancelledError) as exc_info:
            await graph.walk(cancel, action)

        assert calls == ["c"]
        assert exc_info.value.level == 1
        assert exc_info.value.results == {"c": "c"}

    @pytest.mark.asyncio
    async def test_running_actions_not_interrupted(self):
        """Test that cancellation does not preempt a dispatched level."""
        graph = build(obj("base"), obj("x", "base"), obj("y", "base"))
        cancel = asyncio.Event()
        finished: list[str] = []

        async def action(node):
            cancel.set()
            await asyncio.sleep(0.01)
            finished.append(node.name)

        with pytest.raises(WalkCancelledError) as exc_info:
            await graph.walk(cancel, action)

        assert sorted(finished) == ["x", "y"]
        assert exc_info.value.level == 0


class TestFailures:
    """Test failure propagation."""

    @pytest.mark.asyncio
    async def test_failure_waits_for_level_and_stops_walk(self):
        """Test that one failure lets siblings finish and blocks shallower levels."""
        graph = build(
            obj("base"),
            obj("mid", "base"),
            obj("top1", "mid"),
            obj("top2", "mid"),
            obj("top3", "mid"),
        )
        finished: list[str] = []
        boom = RuntimeError("boom")

        async def action(node):
            if node.name == "top2":
                raise boom
            await asyncio.sleep(0.02)
            finished.append(node.name)
            return node.name

        with pytest.raises(LevelExecutionError) as exc_info:
            await graph.walk(None, action)

        error = exc_info.value
        assert error.level == 2
        assert error.node_name == "top2"
        assert error.error is boom
        assert error.__cause__ is boom
        assert sorted(finished) == ["top1", "top3"]
        assert "mid" not in finished
        assert error.results == {"top1": "top1", "top3": "top3"}
        assert "error executing level 2" in str(error)

    @pytest.mark.asyncio
    async def test_first_failure_by_completion_wins(self):
        """Test that the earliest failing action is the one reported."""
        graph = build(obj("base"), obj("slow", "base"), obj("fast", "base"))

        async def action(node):
            if node.name == "slow":
                await asyncio.sleep(0.05)
                raise ValueError("slow failure")
            raise KeyError("fast failure")

        with pytest.raises(LevelExecutionError) as exc_info:
            await graph.walk(None, action)

        assert exc_info.value.node_name == "fast"
        assert isinstance(exc_info.value.error, KeyError)

    @pytest.mark.asyncio
    async def test_sync_action_failure(self):
        """Test that exceptions from threaded actions are wrapped."""
        graph = build(obj("a"), obj("b", "a"))

        def action(node):
            raise OSError("disk full")

        with pytest.raises(LevelExecutionError) as exc_info:
            await graph.walk(None, action)

        assert exc_info.value.level == 1
        assert isinstance(exc_info.value.error, OSError)


class TestWalkSync:
    """Test the blocking entry point."""

    def test_walk_sync(self):
        """Test walking without a running event loop."""
        graph = build(obj("A"), obj("B"), obj("C", "A", "B"))
        recorder = Recorder()

        results = graph.walk_sync(threading.Event(), recorder)

        assert recorder.calls[0] == "C"
        assert set(results) == {"A", "B", "C"}

    def test_walk_sync_cancelled(self):
        """Test that a set threading.Event cancels a blocking walk."""
        graph = build(obj("A"), obj("B"))
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(WalkCancelledError):
            graph.walk_sync(cancel, Recorder())

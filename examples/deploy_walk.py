"""Build a small service graph, print it as DOT and walk it.

Run from the repository root after ``pip install -e .``:

    LEVELDAG_JSON_LOGS=false python examples/deploy_walk.py

Logging and walk settings come from ``leveldag.yaml`` or ``LEVELDAG_*``
variables, e.g. ``LEVELDAG_WALK_MAX_CONCURRENCY=1`` stops one service at a time.
"""

import asyncio
import random

from leveldag import NamedObject, ObjectGraph
from leveldag.config import get_config
from leveldag.log_config import configure_from_config, get_logger

logger = get_logger(__name__)

SERVICES = [
    NamedObject("postgres", label="Postgres"),
    NamedObject("redis", label="Redis"),
    NamedObject("api", label="API", dependencies=("postgres", "redis")),
    NamedObject("worker", label="Worker", dependencies=("postgres", "redis")),
    NamedObject("frontend", label="Frontend", dependencies=("api",)),
]


async def teardown(service: NamedObject) -> str:
    """Pretend to stop a service; dependents are stopped before dependencies."""
    await asyncio.sleep(random.uniform(0.05, 0.2))
    logger.info("service_stopped", service=service.name)
    return "stopped"


async def main() -> None:
    graph = ObjectGraph()
    graph.build(SERVICES)

    print(graph.describe("services").decode())

    info = graph.info()
    for level, group in enumerate(info.levels):
        logger.info("level", level=level, services=[s.name for s in group])

    cancel = asyncio.Event()
    results = await graph.walk(cancel, teardown)
    logger.info("teardown_finished", results=results)


if __name__ == "__main__":
    configure_from_config(get_config())
    asyncio.run(main())

"""Worker process entry point."""

import asyncio
import signal

from deployer import __version__
from deployer.config import settings
from deployer.core.pipeline import DeployPipeline
from deployer.core.queue import RedisJobQueue
from deployer.core.worker import DeployWorker
from deployer.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


async def serve() -> None:
    """Consume deploy jobs until SIGINT or SIGTERM."""
    configure_logging(settings)
    logger.info(
        "application.starting",
        version=__version__,
        environment=settings.app_env,
        queue=settings.queue_name,
        redis_url=settings.redis_url,
        concurrency=settings.worker_concurrency,
    )

    queue = RedisJobQueue.from_url(settings.redis_url, settings.queue_name)
    worker = DeployWorker(
        queue,
        DeployPipeline(settings),
        concurrency=settings.worker_concurrency,
        poll_timeout=settings.poll_timeout_seconds,
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, worker.stop)

    try:
        await worker.run()
    finally:
        await queue.close()
        logger.info("application.shutdown")


def main() -> None:
    asyncio.run(serve())


if __name__ == "__main__":
    main()

"""Fixed-size worker pool running deploy jobs from a queue."""

import asyncio
from collections.abc import Awaitable

from deployer.core.exceptions import DeployError
from deployer.core.pipeline import DeployPipeline
from deployer.core.queue import JobQueue, QueuedJob
from deployer.utils.logging import bind_job_context, get_logger


class DeployWorker:
    """Runs up to ``concurrency`` jobs at once, one per slot.

    Each slot pulls a job, runs its pipeline to completion and only then
    pulls the next one.
    """

    def __init__(
        self,
        queue: JobQueue,
        pipeline: DeployPipeline,
        concurrency: int = 2,
        poll_timeout: int = 5,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.queue = queue
        self.pipeline = pipeline
        self.concurrency = concurrency
        self.poll_timeout = poll_timeout
        self.logger = get_logger("worker")
        self._stopping = asyncio.Event()

    def stop(self) -> None:
        """Let running jobs finish, then exit ``run()``."""
        self.logger.info("worker.stopping")
        self._stopping.set()

    @property
    def stopping(self) -> bool:
        return self._stopping.is_set()

    async def run(self) -> None:
        self.logger.info("worker.started", concurrency=self.concurrency)
        slots = [asyncio.create_task(self._slot(i)) for i in range(self.concurrency)]
        try:
            await asyncio.gather(*slots)
        finally:
            for task in slots:
                task.cancel()
        self.logger.info("worker.stopped")

    async def _slot(self, slot: int) -> None:
        while not self.stopping:
            try:
                job = await self.queue.next_job(self.poll_timeout)
            except Exception as e:
                self.logger.error("worker.dequeue_failed", slot=slot, error=str(e))
                await asyncio.sleep(self.poll_timeout)
                continue

            if job is not None:
                await self.process(job, slot)

    async def process(self, job: QueuedJob, slot: int = 0) -> None:
        """Run one job and record its outcome on the queue."""
        with bind_job_context(job_id=job.id, slot=slot):
            await self._process(job)

    async def _process(self, job: QueuedJob) -> None:
        log = self.logger.bind(deployment_id=job.input.deployment_id)
        log.info("worker.job_started")

        try:
            result = await self.pipeline.run(job.input, self.queue.handle_for(job))
        except DeployError as e:
            log.error("worker.job_failed", error=e.message, stage=e.stage)
            await self._report(log, self.queue.fail(job, e))
            return
        except Exception as e:
            log.exception("worker.job_crashed")
            await self._report(log, self.queue.fail(job, e))
            return

        if await self._report(log, self.queue.complete(job, result)):
            log.info("worker.job_completed", files=result.uploaded_count)

    async def _report(self, log, outcome: Awaitable[None]) -> bool:
        """Record a job outcome. A queue error is logged and never stops the slot."""
        try:
            await outcome
        except Exception as e:
            log.error("worker.report_failed", error=str(e), error_type=type(e).__name__)
            return False
        return True

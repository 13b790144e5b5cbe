"""Consumer side of the deploy job queue.

Jobs are JSON documents ``{"id": ..., "data": {...}}`` pushed onto a Redis
list by the web layer. Progress, log lines and the final outcome are written
back under per-job keys for the status endpoints to read.
"""

import json
from dataclasses import dataclass
from typing import Any, Protocol

import redis.asyncio as redis
from pydantic import ValidationError

from deployer.core.exceptions import DeployError
from deployer.models.deployment import DeployJobInput, DeployResult
from deployer.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class QueuedJob:
    """A job pulled from the queue."""

    id: str
    input: DeployJobInput


class JobQueue(Protocol):
    """What the worker pool needs from a queue."""

    async def next_job(self, timeout: int) -> QueuedJob | None: ...

    def handle_for(self, job: QueuedJob) -> Any: ...

    async def complete(self, job: QueuedJob, result: DeployResult) -> None: ...

    async def fail(self, job: QueuedJob, error: Exception) -> None: ...


class RedisJobHandle:
    """Writes one job's progress and log lines to Redis."""

    def __init__(self, client: redis.Redis, job_key: str):
        self.client = client
        self.job_key = job_key

    async def report_progress(self, percent: int) -> None:
        await self.client.hset(self.job_key, "progress", percent)

    async def append_log(self, line: str) -> None:
        await self.client.rpush(f"{self.job_key}:logs", line)


class RedisJobQueue:
    """FIFO job queue on a Redis list."""

    def __init__(self, client: redis.Redis, name: str):
        self.client = client
        self.name = name

    @classmethod
    def from_url(cls, url: str, name: str) -> "RedisJobQueue":
        return cls(redis.from_url(url, decode_responses=True), name)

    @property
    def wait_key(self) -> str:
        return f"{self.name}:wait"

    def job_key(self, job_id: str) -> str:
        return f"{self.name}:job:{job_id}"

    async def next_job(self, timeout: int = 5) -> QueuedJob | None:
        """Pop the oldest job, or None when the queue stays empty for ``timeout`` seconds.

        Malformed payloads are marked failed and skipped.
        """
        item = await self.client.blpop([self.wait_key], timeout=timeout)
        if not item:
            return None
        _key, payload = item

        job_id = ""
        try:
            document = json.loads(payload)
            job_id = str(document["id"])
            job_input = DeployJobInput.model_validate(document["data"])
        except (json.JSONDecodeError, KeyError, TypeError, ValidationError) as e:
            logger.error("queue.invalid_payload", job_id=job_id or None, error=str(e))
            if job_id:
                await self._mark(job_id, status="failed", failed_reason=f"Invalid job payload: {e}")
            return None

        await self._mark(job_id, status="active", progress=0)
        return QueuedJob(id=job_id, input=job_input)

    def handle_for(self, job: QueuedJob) -> RedisJobHandle:
        return RedisJobHandle(self.client, self.job_key(job.id))

    async def complete(self, job: QueuedJob, result: DeployResult) -> None:
        await self._mark(job.id, status="completed", result=result.model_dump_json())

    async def fail(self, job: QueuedJob, error: Exception) -> None:
        reason = error.message if isinstance(error, DeployError) else str(error)
        await self._mark(job.id, status="failed", failed_reason=reason)

    async def _mark(self, job_id: str, **fields: Any) -> None:
        await self.client.hset(self.job_key(job_id), mapping=fields)

    async def close(self) -> None:
        await self.client.aclose()

"""Artifact upload to S3."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from deployer.core.exceptions import UploadError
from deployer.storage.content_types import resolve_content_type
from deployer.storage.walker import list_files
from deployer.utils.logging import get_logger

# Objects are immutable per deployment id; freshness comes from invalidation
CACHE_CONTROL = "public, max-age=31536000"

# Emit a job log line every N uploaded files
LOG_EVERY = 10

ProgressCallback = Callable[[int, int], Awaitable[None]]
LogCallback = Callable[[str], Awaitable[None]]


@dataclass
class UploadSummary:
    """What an upload run put into the bucket."""

    total_files: int
    uploaded_count: int = 0
    uploaded_files: list[str] = field(default_factory=list)


class ArtifactUploader:
    """Uploads a local artifact directory under a deployment key prefix."""

    def __init__(self, client: Any, bucket: str):
        self.client = client
        self.bucket = bucket
        self.logger = get_logger("uploader")

    @staticmethod
    def object_key(prefix: str, relative_path: str) -> str:
        return f"{prefix}/{relative_path.lstrip('/')}"

    async def upload_directory(
        self,
        directory: Path,
        prefix: str,
        on_progress: ProgressCallback | None = None,
        on_log: LogCallback | None = None,
    ) -> UploadSummary:
        """Upload every file under ``directory``, in walk order.

        ``on_progress`` is awaited once per uploaded file with
        ``(uploaded, total)``. The first failing object aborts the run with
        ``UploadError``; objects already uploaded are left in place.
        """
        files = await asyncio.to_thread(list_files, directory)
        summary = UploadSummary(total_files=len(files))
        root = Path(directory).resolve()

        self.logger.info(
            "uploader.started",
            bucket=self.bucket,
            prefix=prefix,
            total_files=summary.total_files,
        )

        for path in files:
            relative = path.relative_to(root).as_posix()
            key = self.object_key(prefix, relative)
            await self._put(path, key)

            summary.uploaded_count += 1
            summary.uploaded_files.append(relative)

            if on_progress:
                await on_progress(summary.uploaded_count, summary.total_files)
            if on_log and summary.uploaded_count % LOG_EVERY == 0:
                await on_log(f"Uploaded {summary.uploaded_count}/{summary.total_files} files")

        self.logger.info(
            "uploader.completed",
            bucket=self.bucket,
            prefix=prefix,
            uploaded=summary.uploaded_count,
        )
        return summary

    async def _put(self, path: Path, key: str) -> None:
        try:
            body = await asyncio.to_thread(path.read_bytes)
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=resolve_content_type(path),
                CacheControl=CACHE_CONTROL,
            )
        except (BotoCoreError, ClientError, OSError) as e:
            self.logger.error("uploader.failed", bucket=self.bucket, key=key, error=str(e))
            raise UploadError(key, str(e)) from e

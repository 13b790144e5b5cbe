"""CloudFront cache invalidation for a deployment prefix."""

import asyncio
import time
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from deployer.core.exceptions import InvalidationError
from deployer.utils.logging import get_logger


def invalidation_paths(deployment_id: str) -> list[str]:
    """Paths invalidated for one deployment."""
    return [f"/{deployment_id}/*", f"/{deployment_id}/index.html"]


class CacheInvalidator:
    """Requests CDN invalidation of a deployment's paths."""

    def __init__(self, client: Any):
        self.client = client
        self.logger = get_logger("cdn")

    async def invalidate(self, distribution_id: str, deployment_id: str) -> str:
        """Invalidate ``/{id}/*`` and ``/{id}/index.html``.

        Returns the invalidation id. Raises ``InvalidationError``, which
        callers treat as non-fatal.
        """
        paths = invalidation_paths(deployment_id)
        # Unique per call so a retry never collides with an in-flight batch
        caller_reference = f"invalidation-{deployment_id}-{time.time_ns()}"

        try:
            response = await asyncio.to_thread(
                self.client.create_invalidation,
                DistributionId=distribution_id,
                InvalidationBatch={
                    "CallerReference": caller_reference,
                    "Paths": {"Quantity": len(paths), "Items": paths},
                },
            )
        except (BotoCoreError, ClientError) as e:
            self.logger.warning(
                "cdn.invalidation_failed",
                distribution_id=distribution_id,
                deployment_id=deployment_id,
                error=str(e),
            )
            raise InvalidationError(distribution_id, str(e)) from e

        invalidation_id = (response or {}).get("Invalidation", {}).get("Id", "")
        self.logger.info(
            "cdn.invalidation_created",
            distribution_id=distribution_id,
            deployment_id=deployment_id,
            invalidation_id=invalidation_id,
        )
        return invalidation_id

"""AWS client construction.

Clients are built once per process and injected into the uploader and the
invalidator, so tests can pass stubs instead.
"""

from functools import lru_cache
from typing import Any

import boto3
from botocore.config import Config

from deployer.config import Settings, get_settings

_RETRY_CONFIG = Config(retries={"max_attempts": 3, "mode": "standard"})


def _credentials(settings: Settings) -> dict[str, Any]:
    # Fall back to the default credential chain when keys are not configured
    if settings.aws_access_key_id and settings.aws_secret_access_key:
        return {
            "aws_access_key_id": settings.aws_access_key_id,
            "aws_secret_access_key": settings.aws_secret_access_key,
        }
    return {}


def create_s3_client(settings: Settings | None = None) -> Any:
    """Create an S3 client for the configured region."""
    settings = settings or get_settings()
    return boto3.client(
        "s3",
        region_name=settings.aws_region,
        config=_RETRY_CONFIG,
        **_credentials(settings),
    )


def create_cloudfront_client(settings: Settings | None = None) -> Any:
    """Create a CloudFront client. CloudFront is a global service served from us-east-1."""
    settings = settings or get_settings()
    return boto3.client(
        "cloudfront",
        region_name=settings.cloudfront_region,
        config=_RETRY_CONFIG,
        **_credentials(settings),
    )


@lru_cache
def get_s3_client() -> Any:
    """Get the process-wide S3 client."""
    return create_s3_client()


@lru_cache
def get_cloudfront_client() -> Any:
    """Get the process-wide CloudFront client."""
    return create_cloudfront_client()

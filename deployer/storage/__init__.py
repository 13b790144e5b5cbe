"""Object storage and CDN access."""

from deployer.storage.cdn import CacheInvalidator, invalidation_paths
from deployer.storage.clients import (
    create_cloudfront_client,
    create_s3_client,
    get_cloudfront_client,
    get_s3_client,
)
from deployer.storage.content_types import DEFAULT_CONTENT_TYPE, resolve_content_type
from deployer.storage.uploader import CACHE_CONTROL, ArtifactUploader, UploadSummary
from deployer.storage.walker import list_files, walk_files

__all__ = [
    "ArtifactUploader",
    "CACHE_CONTROL",
    "CacheInvalidator",
    "DEFAULT_CONTENT_TYPE",
    "UploadSummary",
    "create_cloudfront_client",
    "create_s3_client",
    "get_cloudfront_client",
    "get_s3_client",
    "invalidation_paths",
    "list_files",
    "resolve_content_type",
    "walk_files",
]

"""Utility functions for the deployer."""

from deployer.utils.logging import bind_job_context, configure_logging, get_logger, redact_url

__all__ = [
    "bind_job_context",
    "configure_logging",
    "get_logger",
    "redact_url",
]

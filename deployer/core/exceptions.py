"""Custom exceptions for the deploy pipeline.

Every fatal pipeline failure is a ``DeployError`` subclass. The pipeline
attaches the job's log lines to ``logs`` before re-raising, so the queue
runtime can persist the failure reason together with the partial log.
"""

from typing import Any

# Captured process output kept in error messages
OUTPUT_TAIL_CHARS = 2000


def _tail(output: str, limit: int = OUTPUT_TAIL_CHARS) -> str:
    output = output.strip()
    if len(output) <= limit:
        return output
    return "..." + output[-limit:]


class DeployError(Exception):
    """Base exception for deploy failures."""

    stage: str = "pipeline"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        self.logs: list[str] = []
        super().__init__(message)


class CommandFailedError(DeployError):
    """An external process exited unsuccessfully."""

    action = "Command"

    def __init__(self, output: str = "", returncode: int | None = None):
        output = _tail(output)
        message = f"{self.action} failed"
        if returncode is not None:
            message = f"{message} (exit code {returncode})"
        if output:
            message = f"{message}: {output}"
        super().__init__(message, {"output": output, "returncode": returncode})
        self.output = output
        self.returncode = returncode


class CloneError(CommandFailedError):
    """Cloning the repository failed."""

    stage = "cloning"
    action = "git clone"


class BranchCheckoutError(CommandFailedError):
    """Checking out the requested branch failed."""

    stage = "branch_checkout"
    action = "git checkout"


class DependencyInstallError(CommandFailedError):
    """Installing project dependencies failed."""

    stage = "installing_dependencies"
    action = "Dependency install"


class BuildError(CommandFailedError):
    """The project build step failed."""

    stage = "building"
    action = "Build"


class BuildRootNotFoundError(DeployError):
    """The requested build subdirectory does not exist in the repository."""

    stage = "locating_build_root"

    def __init__(self, build_path: str, available: list[str]):
        listing = ", ".join(available) if available else "(none)"
        super().__init__(
            f'Folder "{build_path}" not found in repository. Available folders: {listing}',
            {"build_path": build_path, "available": available},
        )
        self.build_path = build_path
        self.available = available


class ManifestParseError(DeployError):
    """The project manifest could not be parsed."""

    stage = "detecting_project_type"

    def __init__(self, path: str, reason: str):
        super().__init__(f"Invalid package.json at {path}: {reason}", {"path": path})


class ArtifactLocateError(DeployError):
    """No usable build output was found."""

    stage = "locating_artifacts"


class UploadError(DeployError):
    """Uploading an artifact to object storage failed."""

    stage = "uploading"

    def __init__(self, key: str, reason: str):
        super().__init__(f"Upload failed for {key}: {reason}", {"key": key})
        self.key = key


class InvalidationError(DeployError):
    """CDN cache invalidation failed. Never fatal to a deployment."""

    stage = "invalidating"

    def __init__(self, distribution_id: str, reason: str):
        super().__init__(
            f"Invalidation failed for distribution {distribution_id}: {reason}",
            {"distribution_id": distribution_id},
        )

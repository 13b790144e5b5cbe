"""Core pipeline machinery for the deployer."""

from deployer.core.exceptions import (
    ArtifactLocateError,
    BranchCheckoutError,
    BuildError,
    BuildRootNotFoundError,
    CloneError,
    CommandFailedError,
    DependencyInstallError,
    DeployError,
    InvalidationError,
    ManifestParseError,
    UploadError,
)

__all__ = [
    "ArtifactLocateError",
    "BranchCheckoutError",
    "BuildError",
    "BuildRootNotFoundError",
    "CloneError",
    "CommandFailedError",
    "DependencyInstallError",
    "DeployError",
    "InvalidationError",
    "ManifestParseError",
    "UploadError",
]

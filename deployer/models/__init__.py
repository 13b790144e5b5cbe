"""Data models for the deployer."""

from deployer.models.deployment import (
    UPLOADED_FILES_SAMPLE,
    DeployJobInput,
    DeployResult,
)
from deployer.models.pipeline import (
    BuildTool,
    ComposedEnvironment,
    PatchAction,
    PipelineContext,
    ProjectInfo,
    ProjectKind,
    StageResult,
)

__all__ = [
    # Job models
    "DeployJobInput",
    "DeployResult",
    "UPLOADED_FILES_SAMPLE",
    # Pipeline models
    "BuildTool",
    "ComposedEnvironment",
    "PatchAction",
    "PipelineContext",
    "ProjectInfo",
    "ProjectKind",
    "StageResult",
]

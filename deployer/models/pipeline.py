"""Per-job pipeline state and stage outputs."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ProjectKind(str, Enum):
    """How the build root is turned into uploadable files."""

    STATIC = "static"  # no manifest, copy verbatim
    BUILDABLE = "buildable"  # manifest with a build script
    PREBUILT = "prebuilt"  # manifest without a build script


class BuildTool(str, Enum):
    """Bundler family, selects the config patch strategy."""

    VITE = "vite"
    CREATE_REACT_APP = "create-react-app"
    OTHER = "other"
    NONE = "none"


class PatchAction(str, Enum):
    """What the config patcher did to the project."""

    REPLACED = "replaced"
    INJECTED = "injected"
    OVERRIDDEN = "overridden"
    CREATED = "created"
    HOMEPAGE_SET = "homepage_set"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"


@dataclass
class ProjectInfo:
    """Detected project classification."""

    kind: ProjectKind
    build_tool: BuildTool = BuildTool.NONE
    has_build_script: bool = False
    has_dependencies: bool = False
    manifest: dict[str, Any] = field(default_factory=dict)


@dataclass
class ComposedEnvironment:
    """Build-time variables in dotenv and process-environment form."""

    variables: dict[str, str] = field(default_factory=dict)
    process_env: dict[str, str] = field(default_factory=dict)
    skipped_lines: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.variables)

    @property
    def dotenv(self) -> str:
        return "".join(f"{key}={value}\n" for key, value in self.variables.items())


@dataclass
class StageResult(Generic[T]):
    """Outcome of one pipeline stage, consumed immediately by the pipeline."""

    payload: T
    logs: list[str] = field(default_factory=list)
    success: bool = True


@dataclass
class PipelineContext:
    """Mutable state of one running job. Never shared between jobs."""

    deployment_id: str
    clone_path: Path
    dist_path: Path
    build_root: Path | None = None
    artifact_path: Path | None = None
    env: dict[str, str] = field(default_factory=dict)
    progress: int = 0
    logs: list[str] = field(default_factory=list)

"""Project type detection from the package manifest."""

import json
from pathlib import Path

from deployer.core.exceptions import ManifestParseError
from deployer.models.pipeline import BuildTool, ProjectInfo, ProjectKind, StageResult

MANIFEST_NAME = "package.json"


def has_dependency(manifest: dict, name: str) -> bool:
    for section in ("dependencies", "devDependencies"):
        deps = manifest.get(section)
        if isinstance(deps, dict) and name in deps:
            return True
    return False


def read_manifest(build_root: Path) -> dict | None:
    """Load ``package.json`` from ``build_root``, or None when absent."""
    path = Path(build_root) / MANIFEST_NAME
    if not path.is_file():
        return None
    try:
        manifest = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ManifestParseError(str(path), str(e)) from e
    if not isinstance(manifest, dict):
        raise ManifestParseError(str(path), "top-level value must be an object")
    return manifest


class ProjectTypeDetector:
    """Classifies a build root and picks the bundler fix-up to apply."""

    def detect(self, build_root: Path) -> StageResult[ProjectInfo]:
        manifest = read_manifest(build_root)
        if manifest is None:
            return StageResult(
                payload=ProjectInfo(kind=ProjectKind.STATIC),
                logs=["ℹ️ No package.json found - treating as static site"],
            )

        scripts = manifest.get("scripts")
        has_build_script = isinstance(scripts, dict) and bool(scripts.get("build"))
        has_dependencies = bool(manifest.get("dependencies") or manifest.get("devDependencies"))

        if has_dependency(manifest, "vite"):
            build_tool = BuildTool.VITE
        elif has_dependency(manifest, "react-scripts"):
            build_tool = BuildTool.CREATE_REACT_APP
        else:
            build_tool = BuildTool.OTHER

        info = ProjectInfo(
            kind=ProjectKind.BUILDABLE if has_build_script else ProjectKind.PREBUILT,
            build_tool=build_tool,
            has_build_script=has_build_script,
            has_dependencies=has_dependencies,
            manifest=manifest,
        )

        logs = [
            "✓ package.json found",
            f"Has dependencies: {'Yes' if has_dependencies else 'No'}",
            f"Has build script: {'Yes' if has_build_script else 'No'}",
        ]
        if build_tool is BuildTool.VITE:
            logs.append("Detected: Vite project")
        elif build_tool is BuildTool.CREATE_REACT_APP:
            logs.append("Detected: Create React App")

        return StageResult(payload=info, logs=logs)

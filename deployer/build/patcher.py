"""Bundler configuration fix-ups for serving from a path prefix.

Deployments are served from ``/{deployment_id}/``, not from the domain
root, so built assets must reference each other with relative URLs.
Vite configs are patched at the text level; only the ``base`` option is
touched.
"""

import json
import re
from pathlib import Path

from deployer.build.detector import MANIFEST_NAME
from deployer.models.pipeline import BuildTool, PatchAction, ProjectInfo, StageResult
from deployer.utils.logging import get_logger

RELATIVE_BASE = "./"

VITE_CONFIG_NAMES = (
    "vite.config.js",
    "vite.config.ts",
    "vite.config.mjs",
    "vite.config.mts",
)

DEFAULT_VITE_CONFIG = """import { defineConfig } from 'vite'

export default defineConfig({
  base: './',
})
"""

# Re-exports the original config with base forced to './'. Vite accepts an
# async function returning the config, so object and function configs both work.
VITE_OVERRIDE_FOOTER = """
export default async (env) => {
  const resolved = typeof __relativeBaseConfig === 'function'
    ? await __relativeBaseConfig(env)
    : await __relativeBaseConfig
  return { ...resolved, base: './' }
}
"""

_BASE_KEY = re.compile(r"(?<![\w$.])base\s*:")
_BASE_LITERAL = re.compile(r"(?<![\w$.])base\s*:\s*(['\"`])[^'\"`\n]*\1")
_DEFINE_CONFIG_OBJECT = re.compile(r"defineConfig\(\s*\{")
_EXPORT_DEFAULT_OBJECT = re.compile(r"export\s+default\s*\{")
_EXPORT_DEFAULT = re.compile(r"export\s+default\s+")


def find_vite_config(build_root: Path) -> Path | None:
    for name in VITE_CONFIG_NAMES:
        candidate = Path(build_root) / name
        if candidate.is_file():
            return candidate
    return None


def patch_vite_source(source: str) -> tuple[str, PatchAction]:
    """Rewrite a Vite config's text so that ``base`` is ``'./'``."""
    if _BASE_KEY.search(source):
        replaced, count = _BASE_LITERAL.subn(f"base: '{RELATIVE_BASE}'", source)
        # every base key must have been a plain literal, otherwise override
        if count and count == len(_BASE_KEY.findall(source)):
            return replaced, PatchAction.REPLACED
        return _override(source)

    for anchor, replacement in (
        (_DEFINE_CONFIG_OBJECT, "defineConfig({\n  base: './',"),
        (_EXPORT_DEFAULT_OBJECT, "export default {\n  base: './',"),
    ):
        if anchor.search(source):
            return anchor.sub(replacement, source, count=1), PatchAction.INJECTED

    return _override(source)


def _override(source: str) -> tuple[str, PatchAction]:
    if len(_EXPORT_DEFAULT.findall(source)) != 1:
        return source, PatchAction.UNCHANGED
    renamed = _EXPORT_DEFAULT.sub("const __relativeBaseConfig = ", source, count=1)
    return renamed.rstrip() + "\n" + VITE_OVERRIDE_FOOTER, PatchAction.OVERRIDDEN


class BuildConfigPatcher:
    """Applies the relative-asset-path fix-up matching the project's bundler."""

    def __init__(self):
        self.logger = get_logger("patcher")

    def patch(self, build_root: Path, project: ProjectInfo) -> StageResult[PatchAction]:
        if project.build_tool is BuildTool.VITE:
            return self.patch_vite(build_root)
        if project.build_tool is BuildTool.CREATE_REACT_APP:
            return self.patch_create_react_app(build_root)
        return StageResult(
            payload=PatchAction.SKIPPED,
            logs=["ℹ️ No bundler config patch needed for this project type"],
        )

    def patch_vite(self, build_root: Path) -> StageResult[PatchAction]:
        logs = ["Configuring Vite for relative paths..."]
        config_path = find_vite_config(build_root)

        if config_path is None:
            config_path = Path(build_root) / VITE_CONFIG_NAMES[0]
            config_path.write_text(DEFAULT_VITE_CONFIG, encoding="utf-8")
            logs.append(f"✓ Created {config_path.name} with base './'")
            return StageResult(payload=PatchAction.CREATED, logs=logs)

        source = config_path.read_text(encoding="utf-8")
        patched, action = patch_vite_source(source)

        if action is PatchAction.UNCHANGED:
            self.logger.warning("patcher.vite_unrecognized", config=str(config_path))
            logs.append(f"⚠️ Could not patch {config_path.name}; assets may use absolute paths")
            return StageResult(payload=action, logs=logs)

        config_path.write_text(patched, encoding="utf-8")
        self.logger.info("patcher.vite_patched", config=str(config_path), action=action.value)
        logs.append(f"✓ Vite config updated ({config_path.name}, {action.value})")
        return StageResult(payload=action, logs=logs)

    def patch_create_react_app(self, build_root: Path) -> StageResult[PatchAction]:
        manifest_path = Path(build_root) / MANIFEST_NAME
        manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
        manifest["homepage"] = "."
        manifest_path.write_text(json.dumps(manifest, indent=2) + "\n", encoding="utf-8")
        return StageResult(
            payload=PatchAction.HOMEPAGE_SET,
            logs=[
                "Configuring Create React App for relative paths...",
                "✓ package.json updated",
            ],
        )

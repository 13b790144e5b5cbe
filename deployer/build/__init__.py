"""Build root resolution, project detection and build preparation."""

from deployer.build.detector import MANIFEST_NAME, ProjectTypeDetector, read_manifest
from deployer.build.environment import (
    BACKEND_URL_KEYS,
    DOTENV_FILES,
    EnvironmentComposer,
    parse_env_block,
)
from deployer.build.locator import MAX_SEARCH_DEPTH, BuildRootLocator
from deployer.build.patcher import BuildConfigPatcher, patch_vite_source

__all__ = [
    "BACKEND_URL_KEYS",
    "BuildConfigPatcher",
    "BuildRootLocator",
    "DOTENV_FILES",
    "EnvironmentComposer",
    "MANIFEST_NAME",
    "MAX_SEARCH_DEPTH",
    "ProjectTypeDetector",
    "parse_env_block",
    "patch_vite_source",
    "read_manifest",
]

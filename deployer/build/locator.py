"""Build root resolution inside a cloned repository."""

import os
from collections import deque
from pathlib import Path, PurePosixPath

from deployer.core.exceptions import BuildRootNotFoundError
from deployer.models.pipeline import StageResult
from deployer.utils.logging import get_logger

MAX_SEARCH_DEPTH = 3

# Dependency caches are never build roots and can be huge
SKIPPED_DIRS = frozenset({"node_modules", "bower_components", "__pycache__"})


def _is_skipped(name: str) -> bool:
    return name.startswith(".") or name in SKIPPED_DIRS


def top_level_dirs(root: Path) -> list[str]:
    """Names of the non-hidden directories directly under ``root``."""
    try:
        return sorted(
            entry.name
            for entry in os.scandir(root)
            if entry.is_dir() and not entry.name.startswith(".")
        )
    except OSError:
        return []


class BuildRootLocator:
    """Resolves a user-supplied build subdirectory to an absolute path.

    Tries the literal path first, then a breadth-first search of the clone
    bounded to ``max_depth``.
    """

    def __init__(self, max_depth: int = MAX_SEARCH_DEPTH):
        self.max_depth = max_depth
        self.logger = get_logger("locator")

    def locate(self, clone_root: Path, build_path: str) -> StageResult[Path]:
        clone_root = Path(clone_root).resolve()
        target = build_path.strip().strip("/")

        if not target:
            return StageResult(payload=clone_root, logs=["Using repository root"])

        direct = self._direct_path(clone_root, target)
        if direct is not None:
            return StageResult(payload=direct, logs=[f"✓ Found at direct path: {target}"])

        logs = [f'Searching for folder: "{target}"...']
        found = self.search(clone_root, target)
        if found is None:
            available = top_level_dirs(clone_root)
            self.logger.warning(
                "locator.not_found",
                build_path=target,
                available=available,
            )
            raise BuildRootNotFoundError(target, available)

        logs.append(f"✓ Found at: {found.relative_to(clone_root).as_posix()}")
        return StageResult(payload=found, logs=logs)

    def _direct_path(self, clone_root: Path, target: str) -> Path | None:
        candidate = (clone_root / target).resolve()
        # never leave the clone through ".." or absolute-looking input
        if not candidate.is_relative_to(clone_root):
            return None
        if candidate.is_dir():
            return candidate
        return None

    def search(self, clone_root: Path, target: str) -> Path | None:
        """Breadth-first search for a directory named ``target``.

        A multi-segment target matches a directory whose trailing path
        segments equal the target's segments.
        """
        clone_root = Path(clone_root).resolve()
        target_parts = PurePosixPath(target).parts
        if not target_parts:
            return None

        visited: set[Path] = set()
        queue: deque[tuple[Path, int]] = deque([(clone_root, 0)])

        while queue:
            current, depth = queue.popleft()
            real = current.resolve()
            if depth > self.max_depth or real in visited:
                continue
            visited.add(real)

            try:
                with os.scandir(current) as it:
                    entries = sorted(it, key=lambda entry: entry.name)
            except OSError:
                continue

            for entry in entries:
                if _is_skipped(entry.name):
                    continue
                try:
                    # a linked directory may point anywhere on the host
                    if entry.is_symlink() or not entry.is_dir(follow_symlinks=False):
                        continue
                except OSError:
                    continue

                path = Path(entry.path)
                relative_parts = path.relative_to(clone_root).parts
                if relative_parts[-len(target_parts):] == target_parts:
                    return path

                if depth < self.max_depth:
                    queue.append((path, depth + 1))

        return None

"""Recursive file listing for artifact directories."""

import os
from collections.abc import Iterator
from pathlib import Path


def walk_files(root: str | Path) -> Iterator[Path]:
    """Yield the absolute path of every regular file under ``root``.

    Uses an explicit worklist instead of recursion. Symlinks are skipped,
    whether they point at files or directories, so nothing outside
    ``root`` is ever yielded.
    """
    pending = [Path(root).resolve()]
    while pending:
        current = pending.pop()
        with os.scandir(current) as entries:
            ordered = sorted(entries, key=lambda entry: entry.name)
        subdirs = []
        for entry in ordered:
            if entry.is_dir(follow_symlinks=False):
                subdirs.append(Path(entry.path))
            elif entry.is_file(follow_symlinks=False):
                yield Path(entry.path)
        # reversed so that pop() visits subdirectories in name order
        pending.extend(reversed(subdirs))


def list_files(root: str | Path) -> list[Path]:
    """Return ``walk_files`` as a list."""
    return list(walk_files(root))

"""Unit tests for content type resolution and file walking."""

import os
from pathlib import Path

import pytest

from deployer.storage.content_types import DEFAULT_CONTENT_TYPE, resolve_content_type
from deployer.storage.walker import list_files, walk_files


class TestContentTypes:
    """Tests for resolve_content_type."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("index.html", "text/html"),
            ("assets/app.js", "application/javascript"),
            ("styles/main.css", "text/css"),
            ("logo.svg", "image/svg+xml"),
            ("fonts/inter.woff2", "font/woff2"),
            ("favicon.ico", "image/x-icon"),
        ],
    )
    def test_known_extensions(self, name: str, expected: str):
        """Test the static table lookups."""
        assert resolve_content_type(name) == expected

    def test_unknown_extension_is_binary(self):
        """Test unknown extensions fall back to a generic binary type."""
        assert resolve_content_type("data.xyz") == "application/octet-stream"
        assert resolve_content_type("LICENSE") == DEFAULT_CONTENT_TYPE

    def test_extension_is_case_insensitive(self):
        """Test upper-case extensions resolve like lower-case ones."""
        assert resolve_content_type(Path("INDEX.HTML")) == "text/html"


class TestWalkFiles:
    """Tests for the iterative file walker."""

    def test_lists_nested_files(self, tmp_path: Path):
        """Test every regular file is yielded as an absolute path."""
        (tmp_path / "assets" / "img").mkdir(parents=True)
        (tmp_path / "index.html").write_text("x")
        (tmp_path / "assets" / "app.js").write_text("x")
        (tmp_path / "assets" / "img" / "logo.png").write_bytes(b"\x89PNG")

        files = list_files(tmp_path)

        relative = sorted(p.relative_to(tmp_path.resolve()).as_posix() for p in files)
        assert relative == ["assets/app.js", "assets/img/logo.png", "index.html"]
        assert all(p.is_absolute() for p in files)

    def test_empty_directory(self, tmp_path: Path):
        """Test an empty tree yields nothing."""
        (tmp_path / "empty").mkdir()
        assert list(walk_files(tmp_path)) == []

    def test_deep_tree_does_not_recurse(self, tmp_path: Path):
        """Test a tree deeper than the recursion limit is walked."""
        current = tmp_path
        for i in range(1200):
            current = current / "d"
            current.mkdir()
        (current / "leaf.txt").write_text("x")

        files = list_files(tmp_path)

        assert len(files) == 1
        assert files[0].name == "leaf.txt"

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlinked_directories_not_followed(self, tmp_path: Path):
        """Test a directory symlink loop terminates."""
        (tmp_path / "site").mkdir()
        (tmp_path / "site" / "index.html").write_text("x")
        (tmp_path / "site" / "loop").symlink_to(tmp_path / "site", target_is_directory=True)

        files = list_files(tmp_path / "site")

        assert [p.name for p in files] == ["index.html"]

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlinked_files_skipped(self, tmp_path: Path):
        """Test a file symlink pointing outside the tree is never listed."""
        secret = tmp_path / "worker.env"
        secret.write_text("AWS_SECRET_ACCESS_KEY=x")
        (tmp_path / "site").mkdir()
        (tmp_path / "site" / "index.html").write_text("x")
        (tmp_path / "site" / "leak.txt").symlink_to(secret)

        files = list_files(tmp_path / "site")

        assert [p.name for p in files] == ["index.html"]

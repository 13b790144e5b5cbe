"""Unit tests for build environment composition."""

from pathlib import Path

import pytest

from deployer.build.environment import (
    BACKEND_URL_KEYS,
    DOTENV_FILES,
    EnvironmentComposer,
    parse_env_block,
)


class TestParseEnvBlock:
    """Tests for KEY=VALUE parsing."""

    def test_basic_pairs(self):
        """Test keys and values are trimmed."""
        variables, skipped = parse_env_block("  API_KEY = abc123  \nMODE=prod")

        assert variables == {"API_KEY": "abc123", "MODE": "prod"}
        assert skipped == []

    def test_value_keeps_extra_equals(self):
        """Test everything after the first '=' is the value."""
        variables, _ = parse_env_block("A=B=C")

        assert variables == {"A": "B=C"}

    def test_skips_blank_and_comment_lines(self):
        """Test blank lines and '#' comments are ignored silently."""
        variables, skipped = parse_env_block("\n# comment\n   \nKEY=value\n")

        assert variables == {"KEY": "value"}
        assert skipped == []

    def test_invalid_lines_are_reported(self):
        """Test lines without '=' or with an empty key are skipped, not fatal."""
        variables, skipped = parse_env_block("NOEQUALS\n=orphan\nGOOD=1")

        assert variables == {"GOOD": "1"}
        assert skipped == ["NOEQUALS", "=orphan"]
        assert "NOEQUALS" not in variables

    def test_last_duplicate_wins(self):
        """Test a repeated key keeps its last value."""
        variables, _ = parse_env_block("KEY=first\nKEY=second")

        assert variables == {"KEY": "second"}

    def test_empty_value_allowed(self):
        """Test KEY= yields an empty string value."""
        variables, _ = parse_env_block("EMPTY=")

        assert variables == {"EMPTY": ""}

    def test_idempotent(self):
        """Test parsing the same block twice gives the same map."""
        block = "A=1\nB=x=y\n# c\nbad\nA=2"

        assert parse_env_block(block) == parse_env_block(block)

    @pytest.mark.parametrize("text", [None, "", "\n\n"])
    def test_empty_input(self, text):
        """Test missing input yields nothing."""
        assert parse_env_block(text) == ({}, [])


class TestEnvironmentComposer:
    """Tests for EnvironmentComposer."""

    @pytest.fixture
    def composer(self) -> EnvironmentComposer:
        return EnvironmentComposer(base_env={"PATH": "/usr/bin", "HOME": "/home/ci"})

    def test_backend_url_fans_out(self, composer: EnvironmentComposer):
        """Test the backend URL is exposed under each framework prefix."""
        composed = composer.compose("https://api.example.com", None).payload

        for key in BACKEND_URL_KEYS:
            assert composed.variables[key] == "https://api.example.com"
        assert composed.count == len(BACKEND_URL_KEYS)

    def test_user_variables_override_backend_keys(self, composer: EnvironmentComposer):
        """Test a user-supplied key wins over the backend convenience value."""
        composed = composer.compose("https://api.example.com", "VITE_API_URL=http://localhost").payload

        assert composed.variables["VITE_API_URL"] == "http://localhost"
        assert composed.variables["REACT_APP_API_URL"] == "https://api.example.com"

    def test_process_env_overlays_base(self, composer: EnvironmentComposer):
        """Test the subprocess environment keeps the base and adds variables."""
        composed = composer.compose(None, "HOME=/override\nFEATURE=on").payload

        assert composed.process_env["PATH"] == "/usr/bin"
        assert composed.process_env["HOME"] == "/override"
        assert composed.process_env["FEATURE"] == "on"
        assert "PATH" not in composed.variables

    def test_logs_list_keys_and_skips(self, composer: EnvironmentComposer):
        """Test the stage log names added keys and skipped lines."""
        result = composer.compose(None, "TOKEN=secret\ngarbage")

        assert "  + TOKEN" in result.logs
        assert "  ⚠️ Skipping invalid line: garbage" in result.logs
        assert not any("secret" in line for line in result.logs)

    def test_dotenv_text(self, composer: EnvironmentComposer):
        """Test the dotenv blob has one KEY=VALUE line per variable."""
        composed = composer.compose(None, "A=1\nB=two words").payload

        assert composed.dotenv == "A=1\nB=two words\n"

    def test_writes_all_dotenv_files(self, composer: EnvironmentComposer, tmp_path: Path):
        """Test each dotenv variant gets the same content."""
        composed = composer.compose("https://api.example.com", "X=1").payload

        logs = composer.write_dotenv_files(tmp_path, composed)

        for name in DOTENV_FILES:
            assert (tmp_path / name).read_text() == composed.dotenv
        assert logs[0] == "✓ 4 environment variable(s) configured"

    def test_no_files_without_variables(self, composer: EnvironmentComposer, tmp_path: Path):
        """Test nothing is written when there is nothing to write."""
        composed = composer.compose(None, None).payload

        logs = composer.write_dotenv_files(tmp_path, composed)

        assert list(tmp_path.iterdir()) == []
        assert "No environment variables" in logs[0]

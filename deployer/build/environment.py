"""Build-time environment composition."""

import os
from collections.abc import Mapping
from pathlib import Path

from deployer.models.pipeline import ComposedEnvironment, StageResult

# Public variable names the major front-end frameworks expose to client code
BACKEND_URL_KEYS = (
    "REACT_APP_API_URL",
    "VITE_API_URL",
    "NEXT_PUBLIC_API_URL",
)

# Written at the build root so every tool's dotenv precedence picks them up
DOTENV_FILES = (".env", ".env.production", ".env.local")


def parse_env_block(text: str | None) -> tuple[dict[str, str], list[str]]:
    """Parse ``KEY=VALUE`` lines.

    Returns the variables (last occurrence of a key wins) and the lines that
    were skipped as invalid. Blank lines and ``#`` comments are ignored.
    """
    variables: dict[str, str] = {}
    skipped: list[str] = []

    for raw_line in (text or "").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            skipped.append(line)
            continue
        variables[key] = value.strip()

    return variables, skipped


class EnvironmentComposer:
    """Merges the backend URL and user variables for install and build."""

    def __init__(self, base_env: Mapping[str, str] | None = None):
        self.base_env = base_env

    def compose(
        self, backend_url: str | None, env_text: str | None
    ) -> StageResult[ComposedEnvironment]:
        logs: list[str] = []
        variables: dict[str, str] = {}

        if backend_url:
            logs.append(f"Configuring backend URL: {backend_url}")
            for key in BACKEND_URL_KEYS:
                variables[key] = backend_url

        if env_text and env_text.strip():
            logs.append("Parsing custom environment variables...")
        parsed, skipped = parse_env_block(env_text)
        for key, value in parsed.items():
            variables[key] = value
            logs.append(f"  + {key}")
        for line in skipped:
            logs.append(f"  ⚠️ Skipping invalid line: {line}")

        base_env = os.environ if self.base_env is None else self.base_env
        process_env = {**base_env, **variables}

        composed = ComposedEnvironment(
            variables=variables,
            process_env=process_env,
            skipped_lines=skipped,
        )
        return StageResult(payload=composed, logs=logs)

    def write_dotenv_files(self, build_root: Path, composed: ComposedEnvironment) -> list[str]:
        """Write the composed variables to every dotenv file. Returns log lines."""
        if not composed.variables:
            return ["ℹ️ No environment variables configured"]

        content = composed.dotenv
        for name in DOTENV_FILES:
            (Path(build_root) / name).write_text(content, encoding="utf-8")

        return [
            f"✓ {composed.count} environment variable(s) configured",
            f"  Files created: {', '.join(DOTENV_FILES)}",
            "  Variables will be injected into build process",
        ]

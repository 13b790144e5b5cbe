"""Pytest configuration and fixtures."""

import json
import shutil
from pathlib import Path
from typing import Any

import pytest
from botocore.exceptions import ClientError

from deployer.config import Settings
from deployer.core.pipeline import DeployPipeline
from deployer.core.process import CommandResult
from deployer.storage.cdn import CacheInvalidator
from deployer.storage.uploader import ArtifactUploader


class RecordingHandle:
    """Job handle that keeps everything the pipeline reports."""

    def __init__(self):
        self.progress: list[int] = []
        self.logs: list[str] = []

    async def report_progress(self, percent: int) -> None:
        self.progress.append(percent)

    async def append_log(self, line: str) -> None:
        self.logs.append(line)


# Files FakeCommandRunner records when the build step starts
SNAPSHOT_FILES = ("package.json", "vite.config.js", "vite.config.ts", ".env", ".env.production")


class FakeCommandRunner:
    """Stands in for git and npm.

    ``git clone`` copies ``source`` to the destination, keeping links as
    links. ``npm run build`` writes ``build_files`` under ``build_output``.
    Steps listed in ``failures`` exit with code 1 and the given stderr.
    Config files present when the build starts are kept in ``seen_at_build``.
    """

    def __init__(
        self,
        source: Path,
        failures: dict[str, str] | None = None,
        build_output: str | None = "dist",
        build_files: dict[str, str] | None = None,
    ):
        self.source = source
        self.failures = failures or {}
        self.build_output = build_output
        self.build_files = build_files or {
            "index.html": "<!doctype html><script src='./assets/app.js'></script>",
            "assets/app.js": "console.log('built')",
            "assets/app.css": "body{}",
        }
        self.calls: list[dict[str, Any]] = []
        self.seen_at_build: dict[str, str] = {}

    @staticmethod
    def step(args: tuple[str, ...]) -> str:
        if args[1] == "run":
            return args[2]
        return args[1]

    async def run(self, *args: str, cwd=None, env=None) -> CommandResult:
        step = self.step(args)
        self.calls.append({"step": step, "args": args, "cwd": cwd, "env": env})

        if step in self.failures:
            return CommandResult(args=args, returncode=1, stderr=self.failures[step])

        if step == "clone":
            shutil.copytree(self.source, args[-1], symlinks=True)
        elif step == "build":
            self._build(Path(cwd))

        return CommandResult(args=args, returncode=0, stdout=f"{step} ok")

    def _build(self, cwd: Path) -> None:
        for name in SNAPSHOT_FILES:
            if (cwd / name).is_file():
                self.seen_at_build[name] = (cwd / name).read_text()

        if not self.build_output:
            return
        for name, content in self.build_files.items():
            target = cwd / self.build_output / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)

    def steps(self) -> list[str]:
        return [call["step"] for call in self.calls]


class FakeS3Client:
    """Records put_object calls; raises for keys in ``fail_keys``."""

    def __init__(self, fail_keys: set[str] | None = None):
        self.objects: dict[str, dict[str, Any]] = {}
        self.fail_keys = fail_keys or set()

    def put_object(self, **kwargs: Any) -> dict:
        if kwargs["Key"] in self.fail_keys:
            raise ClientError(
                {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}},
                "PutObject",
            )
        self.objects[kwargs["Key"]] = kwargs
        return {"ETag": '"etag"'}


class FakeCloudFrontClient:
    """Records create_invalidation calls; raises when ``fail`` is set."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[dict[str, Any]] = []

    def create_invalidation(self, **kwargs: Any) -> dict:
        self.calls.append(kwargs)
        if self.fail:
            raise ClientError(
                {"Error": {"Code": "TooManyInvalidationsInProgress", "Message": "Slow down"}},
                "CreateInvalidation",
            )
        return {"Invalidation": {"Id": "I2J0I21PCUYOIK", "Status": "InProgress"}}


def _write_package_json(directory: Path, **manifest: Any) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "package.json"
    path.write_text(json.dumps({"name": "site", **manifest}, indent=2))
    return path


@pytest.fixture
def handle() -> RecordingHandle:
    return RecordingHandle()


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings pointing all working directories into tmp_path."""
    return Settings(
        work_dir=tmp_path / "temp",
        dist_dir=tmp_path / "dist",
        s3_bucket_name="test-bucket",
        aws_region="eu-north-1",
        cloudfront_distribution_id=None,
        cloudfront_domain="cdn.example.net",
        git_command="git",
        npm_command="npm",
    )


@pytest.fixture
def repo_dir(tmp_path: Path) -> Path:
    """Empty source tree that the fake ``git clone`` copies."""
    path = tmp_path / "origin"
    path.mkdir()
    return path


@pytest.fixture
def s3_client() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def cloudfront_client() -> FakeCloudFrontClient:
    return FakeCloudFrontClient()


@pytest.fixture
def make_pipeline(test_settings: Settings, repo_dir: Path, s3_client, cloudfront_client):
    """Build a pipeline wired to fakes. Keyword arguments go to FakeCommandRunner."""

    def factory(**runner_kwargs: Any) -> tuple[DeployPipeline, FakeCommandRunner]:
        runner = FakeCommandRunner(repo_dir, **runner_kwargs)
        pipeline = DeployPipeline(
            settings=test_settings,
            runner=runner,
            uploader=ArtifactUploader(s3_client, test_settings.s3_bucket_name),
            invalidator=CacheInvalidator(cloudfront_client),
        )
        return pipeline, runner

    return factory


@pytest.fixture
def write_package_json():
    """Helper writing a package.json with the given fields."""
    return _write_package_json

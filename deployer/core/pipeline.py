"""Build-and-deploy pipeline.

Runs one deployment job from clone to CDN invalidation:

1. clone the repository (and check out a non-default branch)
2. locate the build root and detect the project type
3. compose the build environment and patch bundler config
4. install dependencies and build
5. locate the build output and copy it to ``dist/{deployment_id}``
6. upload to S3 and invalidate CloudFront

Stages run strictly in order and the first failure stops the job. The clone
directory is always removed; the artifact directory is kept on success and
removed on failure.
"""

import asyncio
import os
import shutil
from pathlib import Path
from typing import Protocol

from deployer.build.detector import ProjectTypeDetector
from deployer.build.environment import DOTENV_FILES, EnvironmentComposer
from deployer.build.locator import BuildRootLocator
from deployer.build.patcher import BuildConfigPatcher
from deployer.config import Settings, get_settings
from deployer.core.exceptions import (
    ArtifactLocateError,
    BranchCheckoutError,
    BuildError,
    CloneError,
    DependencyInstallError,
    DeployError,
    InvalidationError,
)
from deployer.core.process import CommandRunner
from deployer.models.deployment import UPLOADED_FILES_SAMPLE, DeployJobInput, DeployResult
from deployer.models.pipeline import PipelineContext, ProjectInfo, ProjectKind
from deployer.storage.cdn import CacheInvalidator
from deployer.storage.clients import get_cloudfront_client, get_s3_client
from deployer.storage.uploader import ArtifactUploader, UploadSummary
from deployer.storage.walker import walk_files
from deployer.utils.logging import get_logger, redact_url


class Progress:
    """Progress checkpoints reported at stage boundaries."""

    STARTED = 5
    CLONED = 15
    ENVIRONMENT = 20
    PATCHED = 25
    INSTALLED = 40
    BUILD_STARTED = 50
    BUILT = 70
    ARTIFACTS_READY = 75
    UPLOADED_WITH_CDN = 95
    DONE = 100


# Checked in order after a build
BUILD_OUTPUT_DIRS = ("dist", "build", "out", ".next")

# Branches a fresh clone is assumed to already be on
DEFAULT_BRANCHES = frozenset({"main", "master"})

# Never published when a directory is uploaded as-is
VERBATIM_IGNORE = shutil.ignore_patterns(".git", "node_modules", *DOTENV_FILES)

# Clone runs must fail instead of waiting on a credential prompt
GIT_ENV_OVERRIDES = {"GIT_TERMINAL_PROMPT": "0"}


class JobHandle(Protocol):
    """Side channel supplied by the queue runtime for one job."""

    async def report_progress(self, percent: int) -> None: ...

    async def append_log(self, line: str) -> None: ...


class _JobReporter:
    """Forwards log lines and monotonic progress to the job handle."""

    def __init__(self, handle: JobHandle, context: PipelineContext):
        self.handle = handle
        self.context = context

    async def log(self, line: str) -> None:
        self.context.logs.append(line)
        await self.handle.append_log(line)

    async def log_all(self, lines: list[str]) -> None:
        for line in lines:
            await self.log(line)

    async def progress(self, percent: int) -> None:
        percent = max(0, min(100, int(percent)))
        if percent < self.context.progress:
            return
        self.context.progress = percent
        await self.handle.report_progress(percent)


class DeployPipeline:
    """Job handler for one build-and-deploy job.

    All collaborators are injectable; defaults are built from settings.
    A single instance can serve concurrent jobs since per-job state lives
    in a ``PipelineContext``.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        runner: CommandRunner | None = None,
        uploader: ArtifactUploader | None = None,
        invalidator: CacheInvalidator | None = None,
        locator: BuildRootLocator | None = None,
        detector: ProjectTypeDetector | None = None,
        composer: EnvironmentComposer | None = None,
        patcher: BuildConfigPatcher | None = None,
    ):
        self.settings = settings or get_settings()
        self.runner = runner or CommandRunner(timeout=self.settings.command_timeout_seconds)
        self.uploader = uploader or ArtifactUploader(get_s3_client(), self.settings.s3_bucket_name)
        self.invalidator = invalidator or CacheInvalidator(get_cloudfront_client())
        self.locator = locator or BuildRootLocator()
        self.detector = detector or ProjectTypeDetector()
        self.composer = composer or EnvironmentComposer()
        self.patcher = patcher or BuildConfigPatcher()
        self.logger = get_logger("pipeline")

    def create_context(self, job: DeployJobInput) -> PipelineContext:
        return PipelineContext(
            deployment_id=job.deployment_id,
            clone_path=(self.settings.work_dir / f"clone-{job.deployment_id}").resolve(),
            dist_path=(self.settings.dist_dir / job.deployment_id).resolve(),
        )

    async def run(self, job: DeployJobInput, handle: JobHandle) -> DeployResult:
        """Run every stage for ``job``.

        Returns:
            The deployment result

        Raises:
            DeployError: If a fatal stage fails. ``logs`` holds the job's
                log lines up to the failure. Errors that are not already a
                ``DeployError`` are wrapped in one, chained to the cause.
        """
        context = self.create_context(job)
        reporter = _JobReporter(handle, context)
        log = self.logger.bind(deployment_id=job.deployment_id)
        distribution_id = job.distribution_id or self.settings.cloudfront_distribution_id

        log.info(
            "pipeline.started",
            repo_url=redact_url(job.repo_url),
            branch=job.branch,
            build_path=job.build_path,
        )

        try:
            await reporter.log(f"Starting build & deploy for: {job.deployment_id}")
            await reporter.log(f'Build path parameter: "{job.build_path}"')
            await reporter.progress(Progress.STARTED)

            await self._clone(job, context, reporter)
            await self._checkout_branch(job, context, reporter)
            await self._locate_build_root(job, context, reporter)

            detected = await asyncio.to_thread(self.detector.detect, context.build_root)
            await reporter.log_all(detected.logs)
            project = detected.payload

            if project.kind is ProjectKind.STATIC:
                await reporter.progress(Progress.ARTIFACTS_READY)
                await self._copy_artifacts(context.build_root, context, reporter, verbatim=True)
            else:
                await self._build(job, project, context, reporter)

            summary = await self._upload(job, distribution_id, context, reporter)
            cloudfront_url = await self._invalidate(job, distribution_id, reporter)

            await reporter.log("Cleaning up...")
            await self._remove_tree(context.clone_path, log)
            await reporter.progress(Progress.DONE)

            result = self._result(job, context, summary, distribution_id, cloudfront_url)
            await self._log_success(result, reporter)

            log.info(
                "pipeline.completed",
                project_kind=project.kind.value,
                files=summary.uploaded_count,
                cloudfront=cloudfront_url is not None,
            )
            return result

        except Exception as e:
            error = e if isinstance(e, DeployError) else _unexpected(e)
            log.error(
                "pipeline.failed",
                error=error.message,
                error_type=type(e).__name__,
                stage=error.stage,
                progress=context.progress,
            )
            await self._report_failure(error.message, reporter, log)
            await self._discard(context, log)
            error.logs = list(context.logs)
            if error is e:
                raise
            raise error from e

    # Stages

    async def _clone(
        self, job: DeployJobInput, context: PipelineContext, reporter: _JobReporter
    ) -> None:
        await reporter.log(f"Cloning repository: {redact_url(job.repo_url)}")
        await asyncio.to_thread(_prepare_destination, context.clone_path)

        result = await self.runner.run(
            self.settings.git_command,
            "clone",
            "--",
            job.repo_url,
            str(context.clone_path),
            env={**os.environ, **GIT_ENV_OVERRIDES},
        )
        if not result.ok:
            raise CloneError(result.output, result.returncode)
        await reporter.progress(Progress.CLONED)

    async def _checkout_branch(
        self, job: DeployJobInput, context: PipelineContext, reporter: _JobReporter
    ) -> None:
        if job.branch in DEFAULT_BRANCHES:
            return
        await reporter.log(f"Checking out branch: {job.branch}")
        result = await self.runner.run(
            self.settings.git_command,
            "checkout",
            job.branch,
            cwd=context.clone_path,
        )
        if not result.ok:
            raise BranchCheckoutError(result.output, result.returncode)

    async def _locate_build_root(
        self, job: DeployJobInput, context: PipelineContext, reporter: _JobReporter
    ) -> None:
        await reporter.log("=== Repository Structure ===")
        await reporter.log(f"Root contains: {', '.join(_listdir(context.clone_path))}")

        located = await asyncio.to_thread(self.locator.locate, context.clone_path, job.build_path)
        await reporter.log_all(located.logs)
        context.build_root = located.payload

    async def _build(
        self,
        job: DeployJobInput,
        project: ProjectInfo,
        context: PipelineContext,
        reporter: _JobReporter,
    ) -> None:
        build_root = context.build_root

        composed = self.composer.compose(job.backend_url, job.env_variables)
        await reporter.log_all(composed.logs)
        dotenv_logs = await asyncio.to_thread(
            self.composer.write_dotenv_files, build_root, composed.payload
        )
        await reporter.log_all(dotenv_logs)
        context.env = composed.payload.process_env
        await reporter.progress(Progress.ENVIRONMENT)

        patched = await asyncio.to_thread(self.patcher.patch, build_root, project)
        await reporter.log_all(patched.logs)
        await reporter.progress(Progress.PATCHED)

        if project.has_dependencies:
            await reporter.log("Installing dependencies...")
            result = await self.runner.run(
                self.settings.npm_command, "install", cwd=build_root, env=context.env
            )
            if not result.ok:
                raise DependencyInstallError(result.output, result.returncode)
            await reporter.log("✓ Dependencies installed")
        await reporter.progress(Progress.INSTALLED)

        if not project.has_build_script:
            await reporter.log("ℹ️ No build script found - treating as pre-built or static")
            await reporter.progress(Progress.ARTIFACTS_READY)
            await self._copy_artifacts(build_root, context, reporter, verbatim=True)
            return

        await reporter.progress(Progress.BUILD_STARTED)
        await reporter.log("Building project...")
        result = await self.runner.run(
            self.settings.npm_command, "run", "build", cwd=build_root, env=context.env
        )
        if not result.ok:
            raise BuildError(result.output, result.returncode)
        await reporter.log("✓ Build complete")
        await reporter.progress(Progress.BUILT)

        output_dir = await self._locate_output(build_root, reporter)
        await reporter.progress(Progress.ARTIFACTS_READY)
        await self._copy_artifacts(output_dir, context, reporter, verbatim=False)

    async def _locate_output(self, build_root: Path, reporter: _JobReporter) -> Path:
        await reporter.log("=== Locating Build Output ===")
        await reporter.log(f"Build directory now contains: {', '.join(_listdir(build_root))}")

        for name in BUILD_OUTPUT_DIRS:
            candidate = build_root / name
            if candidate.is_dir() and not candidate.is_symlink():
                await reporter.log(f"✓ Using build output: {name}/")
                return candidate

        looked_for = ", ".join(f"{name}/" for name in BUILD_OUTPUT_DIRS)
        raise ArtifactLocateError(
            f"No build output folder found (looked for {looked_for})",
            {"candidates": list(BUILD_OUTPUT_DIRS), "build_root": str(build_root)},
        )

    async def _copy_artifacts(
        self,
        source: Path,
        context: PipelineContext,
        reporter: _JobReporter,
        verbatim: bool,
    ) -> None:
        await reporter.log(f"Copying files to dist/{context.deployment_id}...")
        ignore = VERBATIM_IGNORE if verbatim else None
        try:
            await asyncio.to_thread(_copy_tree, source, context.dist_path, ignore)
        except (shutil.Error, OSError) as e:
            raise ArtifactLocateError(
                f"Could not copy build output to dist/{context.deployment_id}",
                {"source": str(source), "error": str(e)},
            ) from e
        context.artifact_path = context.dist_path

        has_files = await asyncio.to_thread(_has_files, context.dist_path)
        if not has_files:
            raise ArtifactLocateError(
                f"Artifact directory for {context.deployment_id} contains no files",
                {"source": str(source)},
            )
        await reporter.log("✓ Files copied")

    async def _upload(
        self,
        job: DeployJobInput,
        distribution_id: str | None,
        context: PipelineContext,
        reporter: _JobReporter,
    ) -> UploadSummary:
        start = Progress.ARTIFACTS_READY
        end = Progress.UPLOADED_WITH_CDN if distribution_id else Progress.DONE

        async def on_progress(uploaded: int, total: int) -> None:
            await reporter.progress(start + (uploaded * (end - start)) // total)

        await reporter.log("Uploading to S3...")
        summary = await self.uploader.upload_directory(
            context.artifact_path,
            job.deployment_id,
            on_progress=on_progress,
            on_log=reporter.log,
        )
        await reporter.log("✓ Upload complete")
        await reporter.progress(end)
        return summary

    async def _invalidate(
        self, job: DeployJobInput, distribution_id: str | None, reporter: _JobReporter
    ) -> str | None:
        if not distribution_id:
            return None

        await reporter.log("Invalidating CloudFront cache...")
        try:
            await self.invalidator.invalidate(distribution_id, job.deployment_id)
        except InvalidationError as e:
            await reporter.log(f"⚠️ {e.message}")
            return None
        await reporter.log("✓ Cache invalidated")

        if not self.settings.cloudfront_domain:
            await reporter.log("ℹ️ No CloudFront domain configured, using S3 URL")
            return None
        url = f"https://{self.settings.cloudfront_domain}/{job.deployment_id}/index.html"
        await reporter.log(f"CloudFront URL: {url}")
        return url

    # Result and cleanup

    def _result(
        self,
        job: DeployJobInput,
        context: PipelineContext,
        summary: UploadSummary,
        distribution_id: str | None,
        cloudfront_url: str | None,
    ) -> DeployResult:
        bucket = self.settings.s3_bucket_name
        return DeployResult(
            deployment_id=job.deployment_id,
            repo_name=job.repo_name,
            bucket=bucket,
            total_files=summary.total_files,
            uploaded_count=summary.uploaded_count,
            s3_url=f"https://{bucket}.{self.settings.storage_domain}/{job.deployment_id}/index.html",
            cloudfront_url=cloudfront_url,
            cloudfront_distribution_id=distribution_id,
            s3_path=f"s3://{bucket}/{job.deployment_id}/",
            local_path=str(context.dist_path),
            uploaded_files=summary.uploaded_files[:UPLOADED_FILES_SAMPLE],
        )

    async def _log_success(self, result: DeployResult, reporter: _JobReporter) -> None:
        await reporter.log("=== SUCCESS ===")
        await reporter.log(f"Deployment ID: {result.deployment_id}")
        if result.cloudfront_url:
            await reporter.log(f"URL: {result.cloudfront_url}")
            await reporter.log("(CloudFront may take 1-2 minutes to propagate)")
        else:
            await reporter.log(f"S3 URL: {result.s3_url}")

    async def _report_failure(self, message: str, reporter: _JobReporter, log) -> None:
        try:
            await reporter.log("=== ERROR ===")
            await reporter.log(message)
        except Exception as e:
            # the original error is what the caller must see
            log.warning("pipeline.failure_log_failed", error=str(e))

    async def _discard(self, context: PipelineContext, log) -> None:
        await self._remove_tree(context.clone_path, log)
        await self._remove_tree(context.dist_path, log)

    async def _remove_tree(self, path: Path, log) -> None:
        if not path.exists():
            return
        try:
            await asyncio.to_thread(shutil.rmtree, path)
        except OSError as e:
            log.warning("pipeline.cleanup_failed", path=str(path), error=str(e))


def _prepare_destination(path: Path) -> None:
    # a rerun with the same deployment id must not see stale files
    if path.exists():
        shutil.rmtree(path)
    path.parent.mkdir(parents=True, exist_ok=True)


def _copy_tree(source: Path, destination: Path, ignore) -> None:
    _prepare_destination(destination)
    # links are copied as links; the walker never uploads them
    shutil.copytree(source, destination, symlinks=True, ignore=ignore)


def _unexpected(error: Exception) -> DeployError:
    return DeployError(
        f"Unexpected error: {error}",
        {"error_type": type(error).__name__},
    )


def _has_files(directory: Path) -> bool:
    return next(walk_files(directory), None) is not None


def _listdir(path: Path) -> list[str]:
    try:
        return sorted(os.listdir(path))
    except OSError:
        return []

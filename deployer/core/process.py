"""External process execution for git and npm."""

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from deployer.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class CommandResult:
    """Exit status and captured output of one command."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def output(self) -> str:
        """Error text to surface: stderr, or stdout when stderr is empty."""
        return self.stderr.strip() or self.stdout.strip()


class CommandRunner:
    """Runs commands with ``asyncio.create_subprocess_exec``.

    Never raises for a failing command; callers inspect ``CommandResult.ok``
    and map failures to their own stage error.
    """

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout

    async def run(
        self,
        *args: str,
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        logger.debug("process.started", args=args, cwd=str(cwd) if cwd else None)

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                cwd=str(cwd) if cwd else None,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=dict(env) if env is not None else None,
            )
        except FileNotFoundError:
            logger.error("process.not_found", command=args[0])
            return CommandResult(args=args, returncode=127, stderr=f"command not found: {args[0]}")

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            logger.error("process.timed_out", args=args, timeout=self.timeout)
            return CommandResult(
                args=args,
                returncode=process.returncode if process.returncode is not None else -1,
                stderr=f"timed out after {self.timeout:g}s",
                timed_out=True,
            )

        result = CommandResult(
            args=args,
            returncode=process.returncode,
            stdout=stdout.decode(errors="replace") if stdout else "",
            stderr=stderr.decode(errors="replace") if stderr else "",
        )
        if not result.ok:
            logger.warning("process.failed", args=args, returncode=result.returncode)
        return result

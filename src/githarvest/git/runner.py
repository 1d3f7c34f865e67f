"""Async git subprocess wrapper — bounded concurrency, retry, cancellation."""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import List, Optional

import structlog

from githarvest.errors import GitHarvestError
from githarvest.git.retry import NO_RETRY, RetryPolicy, with_retry

logger = structlog.get_logger(__name__)

# git has no structured error codes; these stderr fragments mean the
# revision or path is absent rather than that git itself is broken.
_NOT_FOUND_RE = re.compile(
    r"unknown revision|bad revision|bad object|ambiguous argument|"
    r"not a valid object name|invalid object name|does not exist|"
    r"exists on disk, but not in|no such path|no such ref|not a tree object|"
    r"could not get object info",
    re.IGNORECASE,
)


class GitError(GitHarvestError):
    """Raised when a git command fails."""

    def __init__(
        self,
        message: str,
        *,
        command: Optional[List[str]] = None,
        stderr: str = "",
        returncode: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.command = command or []
        self.stderr = stderr
        self.returncode = returncode


class GitUnavailableError(GitError):
    """Raised when the git executable cannot be spawned at all."""


def is_not_found(error: BaseException) -> bool:
    """True if *error* says the revision or path does not exist."""
    text = error.stderr if isinstance(error, GitError) and error.stderr else str(error)
    return bool(_NOT_FOUND_RE.search(text))


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()


async def run_git(
    args: List[str],
    cwd: Path,
    *,
    timeout: Optional[float] = None,
) -> str:
    """Run a git command and return stdout. Raises GitError on failure.

    If the awaiting task is cancelled or times out, the child process is
    killed and reaped before the exception propagates.
    """
    command = ["git", *args]
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            cwd=str(cwd),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise GitUnavailableError("git is not installed or not on PATH", command=command) from exc
    except PermissionError as exc:
        raise GitUnavailableError(f"git could not be executed: {exc}", command=command) from exc

    try:
        if timeout:
            out, err = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        else:
            out, err = await proc.communicate()
    except asyncio.TimeoutError:
        await _terminate(proc)
        raise GitError(
            f"git command timed out after {timeout}s: git {' '.join(args)}",
            command=command,
        )
    except asyncio.CancelledError:
        await _terminate(proc)
        raise

    stdout = out.decode("utf-8", errors="replace")
    stderr = err.decode("utf-8", errors="replace").strip()

    if proc.returncode != 0:
        # Non-zero exit without a fatal message (e.g. diff --exit-code) is not an error
        if not stderr or ("fatal" not in stderr.lower() and "error" not in stderr.lower()):
            return stdout
        raise GitError(
            f"git error: {stderr}",
            command=command,
            stderr=stderr,
            returncode=proc.returncode,
        )
    return stdout


class GitRunner:
    """Runs git commands for one repository under a shared concurrency limit."""

    def __init__(
        self,
        repo_root: Path,
        semaphore: asyncio.Semaphore,
        *,
        timeout: Optional[float] = None,
        retry: RetryPolicy = NO_RETRY,
    ) -> None:
        self.repo_root = repo_root
        self._semaphore = semaphore
        self._timeout = timeout or None
        self._retry = retry

    async def run(self, args: List[str]) -> str:
        async def attempt() -> str:
            async with self._semaphore:
                return await run_git(args, self.repo_root, timeout=self._timeout)

        def on_retry(exc: Exception, n: int) -> None:
            logger.debug("git_retry", args=args, attempt=n, error=str(exc))

        return await with_retry(attempt, self._retry, on_retry=on_retry)

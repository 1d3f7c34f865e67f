"""Interchangeable git backends: GitPython library and raw CLI.

Both expose the same operations (log, single-commit lookup, show, diff,
branch listing) with identical inputs and outputs, so callers can try one
and fall back to the other.
"""

from __future__ import annotations

import asyncio
import functools
from pathlib import Path
from typing import Any, Callable, List, Optional, Protocol, TypeVar

import git
from git.exc import BadName, BadObject, GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from githarvest.git.models import CommitFilter, LogEntry, format_date_arg
from githarvest.git.runner import GitError, GitRunner, is_not_found

T = TypeVar("T")

PRETTY_FORMAT = "%H|%ad|%an|%ae|%s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S %z"  # matches git's --date=iso


class GitBackend(Protocol):
    """Operations every backend provides."""

    name: str

    async def log(self, commit_filter: CommitFilter, max_count: int) -> List[LogEntry]:
        ...

    async def lookup(self, rev: str) -> Optional[LogEntry]:
        ...

    async def show(self, args: List[str]) -> str:
        ...

    async def diff(self, args: List[str]) -> str:
        ...

    async def branches(self) -> List[str]:
        ...


def parse_pretty_log(output: str) -> List[LogEntry]:
    """Parse ``%H|%ad|%an|%ae|%s`` lines.

    Everything after the fourth ``|`` is the subject, so subjects that
    contain ``|`` survive intact.
    """
    entries: List[LogEntry] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split("|")
        if len(parts) < 4:
            continue
        commit_hash, date, author, email, *message_parts = parts
        entries.append(
            LogEntry(
                hash=commit_hash.strip(),
                date=date,
                author=author,
                author_email=email,
                message="|".join(message_parts),
            )
        )
    return entries


def parse_branch_output(output: str) -> List[str]:
    """Parse ``git branch`` output into branch names."""
    branches: List[str] = []
    for line in output.splitlines():
        name = line.replace("*", "", 1).strip() if line.startswith("*") else line.strip()
        if not name or name.startswith("("):  # "(HEAD detached at ...)"
            continue
        branches.append(name)
    return branches


class CliBackend:
    """Raw ``git`` command-line backend."""

    name = "cli"

    def __init__(self, runner: GitRunner) -> None:
        self._runner = runner

    async def raw(self, args: List[str]) -> str:
        return await self._runner.run(args)

    async def log(self, commit_filter: CommitFilter, max_count: int) -> List[LogEntry]:
        args = ["log", f"--pretty=format:{PRETTY_FORMAT}", "--date=iso"]
        if commit_filter.since is not None:
            args.append(f"--since={format_date_arg(commit_filter.since)}")
        if commit_filter.until is not None:
            args.append(f"--until={format_date_arg(commit_filter.until)}")
        args.extend(["-n", str(commit_filter.max_count or max_count)])
        if commit_filter.branch:
            args.append(commit_filter.branch)
        args.append("--")
        return parse_pretty_log(await self._runner.run(args))

    async def lookup(self, rev: str) -> Optional[LogEntry]:
        args = ["log", "-n", "1", f"--pretty=format:{PRETTY_FORMAT}", "--date=iso", rev, "--"]
        try:
            output = await self._runner.run(args)
        except GitError as exc:
            if is_not_found(exc):
                return None
            raise
        entries = parse_pretty_log(output)
        return entries[0] if entries else None

    async def show(self, args: List[str]) -> str:
        return await self._runner.run(["show", *args])

    async def diff(self, args: List[str]) -> str:
        return await self._runner.run(["diff", *args])

    async def branches(self) -> List[str]:
        return parse_branch_output(await self._runner.run(["branch"]))


def _to_git_error(exc: GitCommandError) -> GitError:
    command = [str(c) for c in exc.command] if isinstance(exc.command, (list, tuple)) else [str(exc.command)]
    return GitError(
        f"git error: {exc.stderr.strip() if isinstance(exc.stderr, str) else exc}",
        command=command,
        stderr=str(exc.stderr or ""),
        returncode=exc.status if isinstance(exc.status, int) else None,
    )


def _text(value: Any) -> str:
    return value.decode("utf-8", errors="replace") if isinstance(value, bytes) else str(value)


class GitPythonBackend:
    """GitPython-based backend. Blocking calls run in the default executor."""

    name = "library"

    def __init__(self, repo_root: Path, semaphore: asyncio.Semaphore) -> None:
        self.repo_root = repo_root
        self._semaphore = semaphore
        self._repo: Optional[git.Repo] = None

    def _open(self) -> git.Repo:
        if self._repo is None:
            try:
                self._repo = git.Repo(self.repo_root)
            except (InvalidGitRepositoryError, NoSuchPathError) as exc:
                raise GitError(f"GitPython cannot open {self.repo_root}: {exc}") from exc
        return self._repo

    async def _call(self, fn: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        async with self._semaphore:
            return await loop.run_in_executor(None, functools.partial(fn, *args))

    @staticmethod
    def _entry(commit: git.Commit) -> LogEntry:
        return LogEntry(
            hash=commit.hexsha,
            date=commit.authored_datetime.strftime(_DATE_FORMAT),
            author=commit.author.name or "",
            author_email=commit.author.email or "",
            message=_text(commit.summary),
        )

    def _log_sync(self, commit_filter: CommitFilter, max_count: int) -> List[LogEntry]:
        repo = self._open()
        kwargs: dict[str, Any] = {"max_count": commit_filter.max_count or max_count}
        if commit_filter.since is not None:
            kwargs["since"] = format_date_arg(commit_filter.since)
        if commit_filter.until is not None:
            kwargs["until"] = format_date_arg(commit_filter.until)
        try:
            return [
                self._entry(c)
                for c in repo.iter_commits(rev=commit_filter.branch or None, **kwargs)
            ]
        except GitCommandError as exc:
            raise _to_git_error(exc) from exc
        except ValueError as exc:
            # Empty repository: HEAD does not resolve.
            raise GitError(f"cannot list commits: {exc}") from exc

    def _lookup_sync(self, rev: str) -> Optional[LogEntry]:
        repo = self._open()
        try:
            return self._entry(repo.commit(rev))
        except (BadName, BadObject, ValueError):
            return None
        except GitCommandError as exc:
            error = _to_git_error(exc)
            if is_not_found(error):
                return None
            raise error from exc

    def _git_sync(self, command: str, args: List[str]) -> str:
        repo = self._open()
        try:
            return getattr(repo.git, command)(*args, strip_newline_in_stdout=False)
        except GitCommandError as exc:
            raise _to_git_error(exc) from exc

    def _branches_sync(self) -> List[str]:
        return [head.name for head in self._open().branches]

    async def log(self, commit_filter: CommitFilter, max_count: int) -> List[LogEntry]:
        return await self._call(self._log_sync, commit_filter, max_count)

    async def lookup(self, rev: str) -> Optional[LogEntry]:
        return await self._call(self._lookup_sync, rev)

    async def show(self, args: List[str]) -> str:
        return await self._call(self._git_sync, "show", args)

    async def diff(self, args: List[str]) -> str:
        return await self._call(self._git_sync, "diff", args)

    async def branches(self) -> List[str]:
        return await self._call(self._branches_sync)

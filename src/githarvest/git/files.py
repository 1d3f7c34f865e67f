"""Resolve the files a commit touched, and load per-file snapshots."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

import structlog

from githarvest.errors import GitHarvestError
from githarvest.git.models import (
    BINARY_PLACEHOLDER,
    DELETED_FILE_PLACEHOLDER,
    EMPTY_FILE_PLACEHOLDER,
    ERROR_PLACEHOLDER,
    NEW_FILE_PLACEHOLDER,
    CommitFile,
    FileStatus,
)
from githarvest.git.repository import RepositoryHandle
from githarvest.git.runner import GitError, is_not_found

# git's well-known empty tree; the "parent" of a root commit.
EMPTY_TREE = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"

_STATUS_CODES = {
    "A": FileStatus.ADDED,
    "M": FileStatus.MODIFIED,
    "T": FileStatus.MODIFIED,
    "D": FileStatus.DELETED,
    "R": FileStatus.RENAMED,
    "C": FileStatus.COPIED,
}


def is_safe_rev(rev: str) -> bool:
    """Reject empty revisions, anything git would parse as an option, and
    revisions containing whitespace or NUL."""
    if not rev or rev.startswith("-"):
        return False
    return not any(ch.isspace() or ch == "\0" for ch in rev)


def parse_name_list(output: str) -> List[str]:
    return [line.rstrip("\r") for line in output.splitlines() if line.strip()]


@dataclass(frozen=True)
class NameStatus:
    status: FileStatus
    path: str
    old_path: Optional[str] = None


def parse_name_status_z(output: str) -> List[NameStatus]:
    """Parse ``git diff --name-status -z`` output."""
    tokens = output.split("\0")
    entries: List[NameStatus] = []
    idx = 0
    while idx < len(tokens):
        code = tokens[idx].strip()
        idx += 1
        if not code:
            continue
        status = _STATUS_CODES.get(code[0], FileStatus.MODIFIED)
        if code[0] in ("R", "C") and idx + 1 < len(tokens):
            entries.append(NameStatus(status, tokens[idx + 1], tokens[idx]))
            idx += 2
        elif idx < len(tokens):
            entries.append(NameStatus(status, tokens[idx]))
            idx += 1
    return entries


def parse_numstat_z(output: str) -> Dict[str, Tuple[Optional[int], Optional[int]]]:
    """Parse ``git diff --numstat -z`` into ``{path: (insertions, deletions)}``.

    Binary files report ``(None, None)``.
    """
    stats: Dict[str, Tuple[Optional[int], Optional[int]]] = {}
    tokens = output.split("\0")
    idx = 0
    while idx < len(tokens):
        record = tokens[idx]
        idx += 1
        if not record.strip():
            continue
        parts = record.split("\t", 2)
        if len(parts) < 3:
            continue
        ins, dels, path = parts
        if not path and idx + 1 < len(tokens):
            # Rename/copy: the old and new paths follow as separate tokens.
            path = tokens[idx + 1]
            idx += 2
        stats[path] = (
            None if ins == "-" else int(ins),
            None if dels == "-" else int(dels),
        )
    return stats


class FileChangeResolver:
    """Union several independent techniques for listing a commit's files."""

    def __init__(self, handle: RepositoryHandle, *, logger=None) -> None:
        self._handle = handle
        self._log = logger or structlog.get_logger(__name__)

    def _techniques(self, commit_hash: str) -> List[Tuple[str, Callable[[], Awaitable[str]]]]:
        runner = self._handle.runner
        library = self._handle.library
        return [
            ("show-name-only", lambda: runner.run(["show", commit_hash, "--name-only", "--pretty=format:"])),
            ("log-name-only", lambda: runner.run(["log", "-1", "--name-only", "--pretty=format:", commit_hash])),
            ("diff-tree", lambda: runner.run(["diff-tree", "--no-commit-id", "--name-only", "-r", commit_hash])),
            ("library-show", lambda: library.show([commit_hash, "--name-only", "--pretty=format:"])),
        ]

    async def files_for_commit(self, commit_hash: str) -> List[str]:
        """Return every path touched by *commit_hash*, first-seen order.

        A failing technique never aborts the others; total failure yields
        an empty list.
        """
        if not is_safe_rev(commit_hash):
            self._log.warning("files_for_commit_invalid_hash", commit=commit_hash)
            return []
        try:
            techniques = self._techniques(commit_hash)
        except GitHarvestError as exc:
            self._log.warning("files_for_commit_unbound", error=str(exc))
            return []

        results = await asyncio.gather(
            *(fn() for _, fn in techniques), return_exceptions=True
        )

        seen: Dict[str, None] = {}
        for (name, _), result in zip(techniques, results):
            if isinstance(result, BaseException):
                self._log.debug("strategy_failed", strategy=name, commit=commit_hash, error=str(result))
                continue
            for path in parse_name_list(result):
                seen.setdefault(path, None)
        return list(seen)

    async def file_content(self, rev: str, file_path: str) -> str:
        """Content of *file_path* at *rev*; ``""`` if it does not exist there."""
        try:
            return await self._handle.cli.show([f"{rev}:{file_path}"])
        except GitError as exc:
            if is_not_found(exc):
                return ""
            raise

    async def file_exists(self, rev: str, file_path: str) -> bool:
        try:
            out = await self._handle.runner.run(["ls-tree", "-r", rev, "--", file_path])
        except GitError as exc:
            if is_not_found(exc):
                return False
            raise
        return bool(out.strip())

    async def parent_of(self, commit_hash: str) -> str:
        """First parent of *commit_hash*, or the empty tree for a root commit."""
        try:
            out = await self._handle.runner.run(["rev-parse", "--verify", "--quiet", f"{commit_hash}^"])
        except GitError as exc:
            if is_not_found(exc):
                return EMPTY_TREE
            raise
        return out.strip() or EMPTY_TREE

    async def commit_files(self, commit_hash: str) -> List[CommitFile]:
        """Per-file records with both snapshots. Never raises; ``[]`` on failure."""
        if not is_safe_rev(commit_hash):
            return []
        try:
            parent = await self.parent_of(commit_hash)
            runner = self._handle.runner
            name_status, numstat = await asyncio.gather(
                runner.run(["diff", "--name-status", "-z", "-M", parent, commit_hash]),
                runner.run(["diff", "--numstat", "-z", "-M", parent, commit_hash]),
            )
        except GitHarvestError as exc:
            self._log.warning("commit_files_failed", commit=commit_hash, error=str(exc))
            return []

        stats = parse_numstat_z(numstat)
        entries = parse_name_status_z(name_status)
        return list(await asyncio.gather(
            *(self._load_file(commit_hash, parent, e, stats.get(e.path, (0, 0))) for e in entries)
        ))

    async def _show_or(self, rev: str, path: str, default: str) -> str:
        try:
            return await self._handle.cli.show([f"{rev}:{path}"])
        except GitError:
            return default

    async def _load_file(
        self,
        commit_hash: str,
        parent: str,
        entry: NameStatus,
        counts: Tuple[Optional[int], Optional[int]],
    ) -> CommitFile:
        insertions, deletions = counts
        if insertions is None or deletions is None:
            return CommitFile(
                path=entry.path,
                content=BINARY_PLACEHOLDER,
                previous_content=BINARY_PLACEHOLDER,
                status=FileStatus.BINARY,
            )
        try:
            if entry.status == FileStatus.ADDED:
                content = await self._show_or(commit_hash, entry.path, EMPTY_FILE_PLACEHOLDER)
                previous = NEW_FILE_PLACEHOLDER
            elif entry.status == FileStatus.DELETED:
                content = DELETED_FILE_PLACEHOLDER
                previous = await self._show_or(parent, entry.path, EMPTY_FILE_PLACEHOLDER)
            else:
                content, previous = await asyncio.gather(
                    self._show_or(commit_hash, entry.path, EMPTY_FILE_PLACEHOLDER),
                    self._show_or(parent, entry.old_path or entry.path, EMPTY_FILE_PLACEHOLDER),
                )
        except GitHarvestError as exc:
            self._log.warning("commit_file_content_failed", path=entry.path, error=str(exc))
            content = previous = ERROR_PLACEHOLDER
        return CommitFile(
            path=entry.path,
            content=content,
            previous_content=previous,
            status=entry.status,
            insertions=insertions,
            deletions=deletions,
        )

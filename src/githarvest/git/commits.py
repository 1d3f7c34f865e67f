"""Commit listing and lookup with library → CLI fallback and caching."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar

import structlog

from githarvest.errors import AllStrategiesExhaustedError, StrategyFailedError
from githarvest.git.backends import GitBackend
from githarvest.git.files import FileChangeResolver, is_safe_rev
from githarvest.git.models import Commit, CommitFilter, LogEntry
from githarvest.git.repository import RepositoryHandle

T = TypeVar("T")


class CommitEnumerator:
    """Lists and looks up commits.

    Strategy A is the structured library backend, strategy B the raw CLI
    with a pipe-delimited pretty format. Both resolve per-commit file lists
    through the FileChangeResolver before returning.
    """

    def __init__(
        self,
        handle: RepositoryHandle,
        resolver: Optional[FileChangeResolver] = None,
        *,
        logger=None,
    ) -> None:
        self._handle = handle
        self._resolver = resolver or FileChangeResolver(handle, logger=logger)
        self._log = logger or structlog.get_logger(__name__)

    def _strategies(self) -> Sequence[Tuple[str, GitBackend]]:
        return (("library", self._handle.library), ("cli", self._handle.cli))

    async def _first_success(
        self,
        operation: str,
        call: Callable[[GitBackend], Awaitable[T]],
    ) -> T:
        failures: List[StrategyFailedError] = []
        for name, backend in self._strategies():
            try:
                return await call(backend)
            except Exception as exc:
                failures.append(StrategyFailedError(name, str(exc)))
                self._log.warning("strategy_failed", operation=operation, strategy=name, error=str(exc))
        raise AllStrategiesExhaustedError(operation, failures)

    async def _with_files(self, entries: Sequence[LogEntry]) -> List[Commit]:
        files = await asyncio.gather(
            *(self._resolver.files_for_commit(e.hash) for e in entries)
        )
        return [
            Commit(
                hash=e.hash,
                date=e.date,
                message=e.message,
                author=e.author,
                author_email=e.author_email,
                files=tuple(paths),
            )
            for e, paths in zip(entries, files)
        ]

    async def list_commits(self, commit_filter: Optional[CommitFilter] = None) -> List[Commit]:
        """Newest-first commits matching *commit_filter* (or the active filter).

        Without a filter override the result is cached, and later calls
        return the cache without touching git.
        """
        override = commit_filter is not None and not commit_filter.is_empty()
        if not override:
            cached = self._handle.cached_commits
            if cached:
                return cached

        active = commit_filter if override else self._handle.active_filter
        assert active is not None
        max_count = active.max_count or self._handle.config.log.max_count

        entries = await self._first_success(
            "list_commits", lambda backend: backend.log(active, max_count)
        )
        commits = await self._with_files(entries[:max_count])

        if not override:
            self._handle.store_commits(commits)
        return commits

    async def get_commit_by_id(self, commit_id: str) -> List[Commit]:
        """Find one commit by full or abbreviated hash.

        Returns ``[]`` when the commit does not exist; raises
        AllStrategiesExhaustedError only when no strategy could talk to git.
        """
        cached = self._handle.find_cached(commit_id)
        if cached is not None:
            return [cached]
        if not is_safe_rev(commit_id):
            return []

        failures: List[StrategyFailedError] = []
        missing = False
        for name, backend in self._strategies():
            try:
                entry = await backend.lookup(commit_id)
            except Exception as exc:
                failures.append(StrategyFailedError(name, str(exc)))
                self._log.warning("strategy_failed", operation="get_commit_by_id", strategy=name, error=str(exc))
                continue
            if entry is None:
                missing = True
                continue
            (commit,) = await self._with_files([entry])
            self._handle.remember_commit(commit)
            return [commit]

        if missing:
            return []
        raise AllStrategiesExhaustedError("get_commit_by_id", failures)

    def commit_info(self, commit_hash: str) -> Optional[Commit]:
        """Exact-hash lookup in the cache; never touches git."""
        return next((c for c in self._handle.cached_commits if c.hash == commit_hash), None)

    async def branches(self) -> List[str]:
        return await self._first_success("branches", lambda backend: backend.branches())

"""Repository binding, backends, and cache lifecycle."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import structlog

from githarvest.config.schema import HarvestConfig
from githarvest.diff.cache import DiffCache
from githarvest.errors import (
    NotAVersionControlledDirectoryError,
    RepositoryNotBoundError,
    RepositoryNotFoundError,
)
from githarvest.git.backends import CliBackend, GitBackend, GitPythonBackend
from githarvest.git.models import Commit, CommitFilter, DateLike
from githarvest.git.retry import RetryPolicy
from githarvest.git.runner import GitError, GitRunner

LibraryFactory = Callable[[Path, asyncio.Semaphore], GitBackend]
CliFactory = Callable[[GitRunner], GitBackend]


class RepositoryHandle:
    """Binds to one repository root at a time and owns its caches.

    ``bind()`` must be serialized by the caller; concurrent rebinding of the
    same handle to different paths is not supported.
    """

    def __init__(
        self,
        config: Optional[HarvestConfig] = None,
        *,
        library_factory: LibraryFactory = GitPythonBackend,
        cli_factory: CliFactory = CliBackend,
        logger=None,
    ) -> None:
        self.config = config or HarvestConfig()
        self._library_factory = library_factory
        self._cli_factory = cli_factory
        self._log = logger or structlog.get_logger(__name__)

        self._root: Optional[Path] = None
        self._runner: Optional[GitRunner] = None
        self._library: Optional[GitBackend] = None
        self._cli: Optional[GitBackend] = None

        self._commits: List[Commit] = []
        self._filter = CommitFilter()
        self.diff_cache = DiffCache()

    # --- binding ---

    def bind(self, path: Union[str, Path]) -> None:
        """Bind to the repository at *path*.

        Rebinding to the currently bound path is a no-op; any other path
        resets every cache and the active filter.
        """
        requested = Path(path).expanduser()
        if not requested.exists():
            self._log.error("bind_failed", path=str(requested), reason="missing")
            raise RepositoryNotFoundError(f"Repository path does not exist: {requested}")
        root = requested.resolve()
        if self._root == root and self._runner is not None:
            return
        if not (root / ".git").exists():
            self._log.error("bind_failed", path=str(root), reason="no .git")
            raise NotAVersionControlledDirectoryError(
                f"Not a git repository - .git directory not found in {root}"
            )

        self._log.debug("bind", path=str(root))
        process = self.config.process
        semaphore = asyncio.Semaphore(process.max_concurrency)
        self._runner = GitRunner(
            root,
            semaphore,
            timeout=process.timeout,
            retry=RetryPolicy.from_config(process),
        )
        self._cli = self._cli_factory(self._runner)
        self._library = self._library_factory(root, semaphore)
        self._root = root

        self._commits = []
        self._filter = CommitFilter()
        self.diff_cache = DiffCache()

    def is_bound(self) -> bool:
        return self._root is not None and self._runner is not None

    def _require(self) -> None:
        if not self.is_bound():
            raise RepositoryNotBoundError("No repository bound; call bind() first")

    @property
    def root(self) -> Path:
        self._require()
        assert self._root is not None
        return self._root

    @property
    def runner(self) -> GitRunner:
        self._require()
        assert self._runner is not None
        return self._runner

    @property
    def library(self) -> GitBackend:
        self._require()
        assert self._library is not None
        return self._library

    @property
    def cli(self) -> GitBackend:
        self._require()
        assert self._cli is not None
        return self._cli

    async def is_git_repository(self) -> bool:
        """Ask git whether the bound path is inside a work tree."""
        if not self.is_bound():
            return False
        try:
            out = await self.runner.run(["rev-parse", "--is-inside-work-tree"])
        except GitError as exc:
            self._log.warning("rev_parse_failed", error=str(exc))
            return False
        return out.strip() == "true"

    # --- commit cache ---

    @property
    def cached_commits(self) -> List[Commit]:
        return list(self._commits)

    def store_commits(self, commits: Sequence[Commit]) -> None:
        self._commits = list(commits)

    def remember_commit(self, commit: Commit) -> None:
        if all(c.hash != commit.hash for c in self._commits):
            self._commits.append(commit)

    def find_cached(self, prefix: str) -> Optional[Commit]:
        if not prefix:
            return None
        return next((c for c in self._commits if c.hash.startswith(prefix)), None)

    # --- active filter ---

    @property
    def active_filter(self) -> CommitFilter:
        return self._filter

    def set_date_filter(self, since: Optional[DateLike], until: Optional[DateLike]) -> None:
        self._log.debug("set_date_filter", since=str(since), until=str(until))
        self._filter = CommitFilter(
            since=since,
            until=until,
            max_count=self._filter.max_count,
            branch=self._filter.branch,
        )
        self._commits = []

    def set_branch_filter(self, branch: str) -> None:
        self._log.debug("set_branch_filter", branch=branch)
        self._filter = self._filter.merged_with(CommitFilter(branch=branch))
        self._commits = []

    def clear_filters(self) -> None:
        self._filter = CommitFilter()
        self._commits = []

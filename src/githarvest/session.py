"""One-stop facade over a bound repository and its components."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Union

import structlog

from githarvest.config.schema import HarvestConfig
from githarvest.diff.synthesizer import DiffSynthesizer, HostDiffProvider
from githarvest.git.blame import BlameReader
from githarvest.git.commits import CommitEnumerator
from githarvest.git.files import FileChangeResolver
from githarvest.git.models import BlameLine, Commit, CommitFile, CommitFilter
from githarvest.git.repository import RepositoryHandle


class HarvestSession:
    """Bundle a RepositoryHandle with the components that read through it.

    All components share the handle, so they share its commit cache, diff
    cache, and concurrency limit.
    """

    def __init__(
        self,
        config: Optional[HarvestConfig] = None,
        *,
        handle: Optional[RepositoryHandle] = None,
        host_diff: Optional[HostDiffProvider] = None,
        logger=None,
    ) -> None:
        log = logger or structlog.get_logger("githarvest")
        self.handle = handle or RepositoryHandle(config, logger=log)
        self.files = FileChangeResolver(self.handle, logger=log)
        self.commits = CommitEnumerator(self.handle, self.files, logger=log)
        self.diffs = DiffSynthesizer(self.handle, self.files, host_diff=host_diff, logger=log)
        self.blame = BlameReader(self.handle, logger=log)

    @classmethod
    def open(
        cls,
        path: Union[str, Path],
        config: Optional[HarvestConfig] = None,
        **kwargs,
    ) -> "HarvestSession":
        session = cls(config, **kwargs)
        session.handle.bind(path)
        return session

    def bind(self, path: Union[str, Path]) -> None:
        self.handle.bind(path)

    async def list_commits(self, commit_filter: Optional[CommitFilter] = None) -> List[Commit]:
        return await self.commits.list_commits(commit_filter)

    async def get_commit_by_id(self, commit_id: str) -> List[Commit]:
        return await self.commits.get_commit_by_id(commit_id)

    async def files_for_commit(self, commit_hash: str) -> List[str]:
        return await self.files.files_for_commit(commit_hash)

    async def commit_files(self, commit_hash: str) -> List[CommitFile]:
        return await self.files.commit_files(commit_hash)

    async def diff_for(
        self,
        commit_hash: str,
        file_path: str,
        current_content: Optional[str] = None,
    ) -> str:
        return await self.diffs.diff_for(commit_hash, file_path, current_content)

    async def blame_for(self, file_path: str, commit_hash: Optional[str] = None) -> List[BlameLine]:
        return await self.blame.blame_for(file_path, commit_hash)

    async def branches(self) -> List[str]:
        return await self.commits.branches()

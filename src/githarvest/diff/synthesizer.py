"""Per-file diff acquisition across host, CLI, and library strategies.

Strategies are tried in a fixed order and the first non-empty diff wins:

1. an optional host-provided "diff against reference" hook;
2. git CLI: ``show`` of the commit filtered to the path, ``diff -b``
   across ``parent..commit``, the same with ``--no-prefix``, then fetching
   both full snapshots;
3. the library backend's ``diff``;
4. reconstruction from the two snapshots fetched in step 2;
5. a synthetic diff explaining why nothing else worked.

``diff_for`` never raises and never returns an empty string.
"""

from __future__ import annotations

from typing import Awaitable, Callable, List, Optional

import structlog

from githarvest.diff import diagnostics
from githarvest.diff.reconstruct import ReconstructionOptions, reconstruct_diff
from githarvest.errors import StrategyFailedError
from githarvest.git.diff_parser import split_lines
from githarvest.git.files import FileChangeResolver, is_safe_rev
from githarvest.git.repository import RepositoryHandle
from githarvest.git.runner import GitError, is_not_found

HostDiffProvider = Callable[[str], Awaitable[Optional[str]]]


class DiffSynthesizer:
    def __init__(
        self,
        handle: RepositoryHandle,
        resolver: Optional[FileChangeResolver] = None,
        *,
        host_diff: Optional[HostDiffProvider] = None,
        logger=None,
    ) -> None:
        self._handle = handle
        self._resolver = resolver or FileChangeResolver(handle, logger=logger)
        self._host_diff = host_diff
        self._log = logger or structlog.get_logger(__name__)

    # --- argument builders ---

    def _diff_args(
        self,
        parent: str,
        commit_hash: str,
        file_path: str,
        *,
        no_prefix: bool,
        minimal: bool = False,
    ) -> List[str]:
        cfg = self._handle.config.diff
        args = [f"--unified={cfg.context_lines}"]
        if no_prefix:
            args.append("--no-prefix")
        if minimal:
            args.append("--minimal")
        if cfg.ignore_whitespace:
            args.append("-b")
        if cfg.diff_filter and not no_prefix and not minimal:
            args.append(f"--diff-filter={cfg.diff_filter}")
        args.extend([parent, commit_hash, "--", file_path])
        return args

    # --- public API ---

    async def diff_for(
        self,
        commit_hash: str,
        file_path: str,
        current_content: Optional[str] = None,
    ) -> str:
        """Diff of *file_path* as changed by *commit_hash*.

        Results are cached by ``(file_path, fingerprint(current_content))``.
        When *current_content* is not supplied it is read from the commit;
        empty content (a deleted file) is never cached.
        """
        try:
            return await self._diff_for(commit_hash, file_path, current_content)
        except Exception as exc:
            self._log.error("diff_unexpected_error", commit=commit_hash, path=file_path, error=str(exc))
            return diagnostics.unexpected_error_diff(file_path, commit_hash, exc)

    async def _diff_for(
        self,
        commit_hash: str,
        file_path: str,
        current_content: Optional[str],
    ) -> str:
        if not is_safe_rev(commit_hash):
            return diagnostics.missing_commit_diff(file_path, commit_hash)

        cache = self._handle.diff_cache
        if current_content is None:
            try:
                current_content = await self._resolver.file_content(commit_hash, file_path)
            except GitError as exc:
                self._log.debug("diff_cache_key_unavailable", path=file_path, error=str(exc))
        if current_content:
            hit = cache.get(file_path, current_content)
            if hit is not None:
                return hit

        failures: List[StrategyFailedError] = []
        diff = await self._acquire(commit_hash, file_path, failures)
        if diff is not None:
            if current_content:
                cache.put(file_path, current_content, diff)
            return diff
        return await self._diagnose(commit_hash, file_path, failures, current_content)

    # --- strategies ---

    def _fail(self, failures: List[StrategyFailedError], strategy: str, reason: str) -> None:
        failures.append(StrategyFailedError(strategy, reason))
        self._log.debug("strategy_failed", strategy=strategy, error=reason)

    async def _parent(self, commit_hash: str, failures: List[StrategyFailedError]) -> str:
        try:
            return await self._resolver.parent_of(commit_hash)
        except GitError as exc:
            self._fail(failures, "resolve-parent", str(exc))
            return f"{commit_hash}^"

    async def _acquire(
        self,
        commit_hash: str,
        file_path: str,
        failures: List[StrategyFailedError],
    ) -> Optional[str]:
        cli = self._handle.cli
        cfg = self._handle.config.diff

        # 1. Host fast path; absence is not a failure.
        if self._host_diff is not None:
            try:
                text = await self._host_diff(file_path)
            except Exception as exc:
                self._fail(failures, "host-api", str(exc))
            else:
                if text and len(text.strip()) > cfg.host_min_length:
                    return text
                self._fail(failures, "host-api", "no diff returned")

        # Root commits diff against the empty tree.
        parent = await self._parent(commit_hash, failures)

        # 2a-2c. Direct CLI diffs.
        attempts = [
            ("cli-show", lambda: cli.show(
                ["--pretty=format:", f"--unified={cfg.context_lines}", commit_hash, "--", file_path]
            )),
            ("cli-diff", lambda: cli.diff(self._diff_args(parent, commit_hash, file_path, no_prefix=False))),
            ("cli-diff-no-prefix", lambda: cli.diff(
                self._diff_args(parent, commit_hash, file_path, no_prefix=True)
            )),
        ]
        for name, call in attempts:
            try:
                text = await call()
            except GitError as exc:
                self._fail(failures, name, str(exc))
                continue
            if text.strip():
                return text
            self._fail(failures, name, "empty output")

        # 2d. Both snapshots, independently.
        parent_text = await self._snapshot(parent, file_path, "cli-show-parent", failures)
        current_text = await self._snapshot(commit_hash, file_path, "cli-show-current", failures)

        # 3. Library diff with the same flags as 2b.
        try:
            text = await self._handle.library.diff(
                self._diff_args(parent, commit_hash, file_path, no_prefix=False)
            )
        except Exception as exc:
            self._fail(failures, "library-diff", str(exc))
        else:
            if text.strip():
                return text
            self._fail(failures, "library-diff", "empty output")

        # 4. Reconstruction; identical snapshots leave nothing to show.
        if parent_text is not None and current_text is not None:
            if parent_text != current_text:
                return await self._reconstruct(parent, commit_hash, file_path, parent_text, current_text)
            self._fail(failures, "reconstruct", "snapshots are identical")
        return None

    async def _snapshot(
        self,
        rev: str,
        file_path: str,
        name: str,
        failures: List[StrategyFailedError],
    ) -> Optional[str]:
        """Full content of *file_path* at *rev*. An empty file is ``""``, not a failure."""
        try:
            return await self._handle.cli.show([f"{rev}:{file_path}"])
        except GitError as exc:
            self._fail(failures, name, str(exc))
            return None

    async def _reconstruct(
        self,
        parent: str,
        commit_hash: str,
        file_path: str,
        parent_text: str,
        current_text: str,
    ) -> str:
        opts = ReconstructionOptions.from_config(self._handle.config.diff)
        result = reconstruct_diff(file_path, split_lines(parent_text), split_lines(current_text), opts)
        if not result.large_change:
            return result.text

        # Too much changed for hunk rendering; prefer git's own minimal diff.
        try:
            text = await self._handle.cli.diff(
                self._diff_args(parent, commit_hash, file_path, no_prefix=False, minimal=True)
            )
        except GitError as exc:
            self._log.debug("strategy_failed", strategy="cli-diff-minimal", error=str(exc))
        else:
            if text.strip():
                return text
        return result.text

    # --- diagnostics ---

    async def _diagnose(
        self,
        commit_hash: str,
        file_path: str,
        failures: List[StrategyFailedError],
        current_content: Optional[str],
    ) -> str:
        exists = False
        try:
            if not await self.commit_exists(commit_hash):
                return diagnostics.missing_commit_diff(file_path, commit_hash)
            exists = True
        except GitError as exc:
            self._fail(failures, "commit-exists", str(exc))

        try:
            if not await self._resolver.file_exists(commit_hash, file_path):
                return diagnostics.missing_file_diff(file_path, commit_hash)
            if current_content is None:
                current_content = await self._resolver.file_content(commit_hash, file_path)
            parent = await self._resolver.parent_of(commit_hash)
            if not await self._resolver.file_exists(parent, file_path):
                diff = diagnostics.added_file_diff(file_path, split_lines(current_content))
                if exists and current_content:
                    self._handle.diff_cache.put(file_path, current_content, diff)
                return diff
            self._fail(failures, "file-exists", "file exists in both commit and parent, but no diff was produced")
        except GitError as exc:
            self._fail(failures, "file-exists", str(exc))

        self._log.warning("diff_strategies_exhausted", commit=commit_hash, path=file_path, attempts=len(failures))
        return diagnostics.strategy_failure_diff(file_path, commit_hash, failures)

    async def commit_exists(self, commit_hash: str) -> bool:
        """True if *commit_hash* names a commit; decided by ``rev-parse`` output, not error wording."""
        try:
            out = await self._handle.runner.run(
                ["rev-parse", "--verify", "--quiet", f"{commit_hash}^{{commit}}"]
            )
        except GitError as exc:
            if is_not_found(exc):
                return False
            raise
        return bool(out.strip())

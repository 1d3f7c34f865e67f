"""Synthetic diffs returned when no real diff could be obtained.

Each one is valid, renderable unified-diff text with a ``---``/``+++``
header; explanatory comment lines are what set them apart from real diffs.
"""

from __future__ import annotations

from typing import List, Sequence

from githarvest.diff.reconstruct import file_header, join_diff, render_full_replacement
from githarvest.errors import StrategyFailedError

COMMENT_PREFIX = "# githarvest: "


def _comment_diff(file_path: str, comments: Sequence[str]) -> str:
    lines = [COMMENT_PREFIX + " ".join(c.split()) for c in comments]
    return join_diff(file_header(file_path) + render_full_replacement([], lines))


def missing_commit_diff(file_path: str, commit_hash: str) -> str:
    return _comment_diff(file_path, [
        f"commit {commit_hash} does not exist in this repository",
        "check the commit hash, or fetch the branch that contains it",
    ])


def missing_file_diff(file_path: str, commit_hash: str) -> str:
    return _comment_diff(file_path, [
        f"file {file_path} does not exist at commit {commit_hash}",
        "check the path, or the file may have been deleted by this commit",
    ])


def added_file_diff(file_path: str, content_lines: Sequence[str]) -> str:
    """Every line of the file as an insertion against /dev/null."""
    return join_diff(
        file_header(file_path, added=True) + render_full_replacement([], content_lines)
    )


def strategy_failure_diff(
    file_path: str,
    commit_hash: str,
    failures: Sequence[StrategyFailedError],
) -> str:
    comments: List[str] = [
        "unable to obtain a diff",
        f"file: {file_path}",
        f"commit: {commit_hash}",
        "attempted strategies:",
    ]
    comments.extend(f"- {f.strategy}: {f.reason}" for f in failures)
    comments.append(f"try: git show {commit_hash}:{file_path}")
    return _comment_diff(file_path, comments)


def unexpected_error_diff(file_path: str, commit_hash: str, error: BaseException) -> str:
    return _comment_diff(file_path, [
        f"unexpected error while building diff: {type(error).__name__}: {error}",
        f"file: {file_path}",
        f"commit: {commit_hash}",
    ])

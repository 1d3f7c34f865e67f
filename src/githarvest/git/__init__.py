"""Git interface layer — repository binding, commits, files, blame, diff parsing."""

from githarvest.git.blame import BlameReader, parse_line_porcelain
from githarvest.git.commits import CommitEnumerator
from githarvest.git.diff_parser import DiffParser, PatchApplyError, apply_patch
from githarvest.git.files import FileChangeResolver
from githarvest.git.models import (
    BlameLine,
    Commit,
    CommitFile,
    CommitFilter,
    DiffFile,
    DiffLine,
    FileSkipped,
    FileStatus,
    Hunk,
    LineType,
)
from githarvest.git.repository import RepositoryHandle
from githarvest.git.runner import GitError, GitUnavailableError

__all__ = [
    "BlameLine",
    "BlameReader",
    "Commit",
    "CommitEnumerator",
    "CommitFile",
    "CommitFilter",
    "DiffFile",
    "DiffLine",
    "DiffParser",
    "FileChangeResolver",
    "FileSkipped",
    "FileStatus",
    "GitError",
    "GitUnavailableError",
    "Hunk",
    "LineType",
    "PatchApplyError",
    "RepositoryHandle",
    "apply_patch",
    "parse_line_porcelain",
]

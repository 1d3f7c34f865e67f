"""Data models for commits, changed files, diffs, and blame."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple, Union

BINARY_PLACEHOLDER = "(Binary File)"
NEW_FILE_PLACEHOLDER = "(New File)"
DELETED_FILE_PLACEHOLDER = "(Deleted File)"
EMPTY_FILE_PLACEHOLDER = "(Empty File)"
ERROR_PLACEHOLDER = "(Error: Unable to load file content)"


class LineType(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    CONTEXT = "context"


class FileStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    COPIED = "copied"
    BINARY = "binary"


DateLike = Union[str, date, datetime]


@dataclass(frozen=True)
class CommitFilter:
    """Query descriptor for commit listing. Not stored state."""

    since: Optional[DateLike] = None
    until: Optional[DateLike] = None
    max_count: Optional[int] = None
    branch: Optional[str] = None

    def __post_init__(self) -> None:
        if self.max_count is not None:
            if isinstance(self.max_count, bool) or not isinstance(self.max_count, int):
                raise TypeError("max_count must be an int")
            if self.max_count <= 0:
                raise ValueError("max_count must be positive")
        if self.branch is not None and (not self.branch.strip() or self.branch.startswith("-")):
            raise ValueError(f"invalid branch name: {self.branch!r}")

    def is_empty(self) -> bool:
        return (
            self.since is None
            and self.until is None
            and self.max_count is None
            and self.branch is None
        )

    def merged_with(self, other: "CommitFilter") -> "CommitFilter":
        """Return a filter with *other*'s set fields taking precedence."""
        return CommitFilter(
            since=other.since if other.since is not None else self.since,
            until=other.until if other.until is not None else self.until,
            max_count=other.max_count if other.max_count is not None else self.max_count,
            branch=other.branch if other.branch is not None else self.branch,
        )


def format_date_arg(value: DateLike) -> str:
    """Render a filter date the way git's --since/--until accept it."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


@dataclass(frozen=True)
class LogEntry:
    """One commit as reported by a log strategy, before file resolution."""

    hash: str
    date: str
    author: str
    author_email: str
    message: str


@dataclass(frozen=True)
class Commit:
    """A commit with its changed files. Immutable once returned."""

    hash: str
    date: str
    message: str
    author: str
    author_email: str
    files: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CommitFile:
    """One file touched by a commit, with both snapshots."""

    path: str
    content: str
    previous_content: str
    status: FileStatus
    insertions: int = 0
    deletions: int = 0


@dataclass(frozen=True)
class BlameLine:
    """Provenance of a single source line."""

    line: int
    author: str
    time: str
    content: str
    hash: str
    message: str


# --- Unified diff items ---


@dataclass(frozen=True, slots=True)
class DiffLine:
    """A single parsed line from a unified diff."""

    file: str
    old_no: Optional[int]  # None for added lines
    new_no: Optional[int]  # None for removed lines
    content: str
    line_type: LineType

    @property
    def line_no(self) -> int:
        return self.new_no if self.new_no is not None else (self.old_no or 0)


@dataclass(frozen=True)
class DiffFile:
    """Metadata about a file appearing in a diff."""

    path: str
    old_path: Optional[str] = None  # set on renames
    status: FileStatus = FileStatus.MODIFIED


@dataclass(frozen=True)
class Hunk:
    """A parsed ``@@ -a,b +c,d @@`` header."""

    file: str
    old_start: int
    old_count: int
    new_start: int
    new_count: int


@dataclass(frozen=True)
class FileSkipped:
    """Record of a file whose diff carries no line content."""

    path: str
    reason: str  # 'binary', 'mode_only'

"""Unified diff parser and patch applier.

Handles ``diff --git`` output from git (with or without a/ b/ prefixes),
bare ``---``/``+++`` diffs as produced by the reconstruction fallback,
binary markers, renames, copies, mode-only changes, and every hunk header
variation. Hunk bodies are consumed by line count, so content lines that
happen to look like headers are never misread.
"""

from __future__ import annotations

import re
from typing import Generator, List, Optional, Tuple, Union

from githarvest.git.models import (
    DiffFile,
    DiffLine,
    FileSkipped,
    FileStatus,
    Hunk,
    LineType,
)

# --- Regex patterns for diff parsing ---

_DIFF_HEADER_RE = re.compile(r"^diff --git a/(.*) b/(.*)$")
_DIFF_HEADER_NOPREFIX_RE = re.compile(r"^diff --git (\S+) (\S+)$")
_HUNK_HEADER_RE = re.compile(
    r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@"
)
_BINARY_RE = re.compile(r"^Binary files .* and .* differ$")
_RENAME_FROM_RE = re.compile(r"^rename from (.+)$")
_RENAME_TO_RE = re.compile(r"^rename to (.+)$")
_COPY_FROM_RE = re.compile(r"^copy from (.+)$")
_COPY_TO_RE = re.compile(r"^copy to (.+)$")
_FILE_HEADER_OLD = re.compile(r"^--- (.+)$")
_FILE_HEADER_NEW = re.compile(r"^\+\+\+ (.+)$")
_SIMILARITY_RE = re.compile(r"^(?:similarity|dissimilarity) index \d+%$")
_OLD_MODE_RE = re.compile(r"^old mode \d+$")
_NEW_MODE_RE = re.compile(r"^new mode \d+$")
_DELETED_FILE_RE = re.compile(r"^deleted file mode \d+$")
_NEW_FILE_RE = re.compile(r"^new file mode \d+$")
_INDEX_RE = re.compile(r"^index [0-9a-f]+\.\.[0-9a-f]+")

DEV_NULL = "/dev/null"

DiffItem = Union[DiffLine, FileSkipped, DiffFile, Hunk]


class PatchApplyError(ValueError):
    """Raised when a diff does not apply to the given lines."""


def split_lines(text: str) -> List[str]:
    """Split *text* on newlines; a trailing newline does not add an empty line."""
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def _header_path(raw: str) -> str:
    """Strip a/ b/ prefixes and trailing timestamps from a ---/+++ path."""
    path = raw.split("\t", 1)[0]
    if path == DEV_NULL:
        return path
    if path.startswith(("a/", "b/")):
        return path[2:]
    return path


class DiffParser:
    """Parse unified diff text and yield DiffFile / Hunk / DiffLine / FileSkipped.

    Usage::

        parser = DiffParser(diff_text)
        for item in parser.parse():
            if isinstance(item, Hunk):
                ...
            elif isinstance(item, DiffLine):
                ...
    """

    def __init__(self, diff_text: str) -> None:
        self._lines = split_lines(diff_text)

    def parse(self) -> Generator[DiffItem, None, None]:
        idx = 0
        total = len(self._lines)
        current_file: Optional[str] = None
        file_emitted = False
        pending_old: Optional[str] = None
        old_no = new_no = 0
        old_left = new_left = 0

        while idx < total:
            raw_line = self._lines[idx]

            # --- Inside a hunk body: consume by count ---
            if old_left > 0 or new_left > 0:
                if raw_line.startswith("\\"):
                    idx += 1  # "\ No newline at end of file"
                    continue
                file = current_file or ""
                if raw_line.startswith("+") and new_left > 0:
                    yield DiffLine(file, None, new_no, raw_line[1:], LineType.ADDED)
                    new_no += 1
                    new_left -= 1
                    idx += 1
                    continue
                if raw_line.startswith("-") and old_left > 0:
                    yield DiffLine(file, old_no, None, raw_line[1:], LineType.REMOVED)
                    old_no += 1
                    old_left -= 1
                    idx += 1
                    continue
                if (raw_line.startswith(" ") or raw_line == "") and old_left > 0 and new_left > 0:
                    yield DiffLine(file, old_no, new_no, raw_line[1:], LineType.CONTEXT)
                    old_no += 1
                    new_no += 1
                    old_left -= 1
                    new_left -= 1
                    idx += 1
                    continue
                # Truncated hunk; fall through and treat as a header line.
                old_left = new_left = 0

            # --- diff --git header → new file context ---
            m = _DIFF_HEADER_RE.match(raw_line) or _DIFF_HEADER_NOPREFIX_RE.match(raw_line)
            if m:
                idx, item = self._parse_git_header(idx + 1, total, m.group(1), m.group(2))
                current_file = item.path
                file_emitted = True
                pending_old = None
                yield item
                continue

            # --- Bare file headers (no diff --git line) ---
            fm = _FILE_HEADER_OLD.match(raw_line)
            if fm and idx + 1 < total and _FILE_HEADER_NEW.match(self._lines[idx + 1]):
                if file_emitted:
                    # Headers belonging to the diff --git block already emitted.
                    idx += 2
                    file_emitted = False
                    continue
                pending_old = _header_path(fm.group(1))
                idx += 1
                continue
            nm = _FILE_HEADER_NEW.match(raw_line)
            if nm and pending_old is not None:
                new_path = _header_path(nm.group(1))
                if pending_old == DEV_NULL:
                    item = DiffFile(path=new_path, status=FileStatus.ADDED)
                elif new_path == DEV_NULL:
                    item = DiffFile(path=pending_old, status=FileStatus.DELETED)
                elif new_path != pending_old:
                    item = DiffFile(path=new_path, old_path=pending_old, status=FileStatus.RENAMED)
                else:
                    item = DiffFile(path=new_path)
                current_file = item.path
                pending_old = None
                file_emitted = False
                yield item
                idx += 1
                continue

            # --- Hunk header ---
            hm = _HUNK_HEADER_RE.match(raw_line)
            if hm:
                file_emitted = False
                old_start = int(hm.group(1))
                old_count = int(hm.group(2)) if hm.group(2) is not None else 1
                new_start = int(hm.group(3))
                new_count = int(hm.group(4)) if hm.group(4) is not None else 1
                yield Hunk(current_file or "", old_start, old_count, new_start, new_count)
                # A zero-length side starts *after* the given line.
                old_no = old_start if old_count else old_start + 1
                new_no = new_start if new_count else new_start + 1
                old_left, new_left = old_count, new_count
                idx += 1
                continue

            # Anything else (commit headers from `git show`, comments) is skipped.
            idx += 1

    def _parse_git_header(
        self, idx: int, total: int, old_file: str, new_file: str
    ) -> Tuple[int, Union[DiffFile, FileSkipped]]:
        """Consume the sub-headers after ``diff --git`` and describe the file."""
        status = FileStatus.MODIFIED
        is_mode_only = False
        is_binary = False
        is_rename = False

        while idx < total:
            sub = self._lines[idx]
            if _INDEX_RE.match(sub) or _SIMILARITY_RE.match(sub) or _NEW_MODE_RE.match(sub):
                idx += 1
                continue
            if _OLD_MODE_RE.match(sub):
                is_mode_only = True
                idx += 1
                continue
            if _DELETED_FILE_RE.match(sub):
                status = FileStatus.DELETED
                idx += 1
                continue
            if _NEW_FILE_RE.match(sub):
                status = FileStatus.ADDED
                idx += 1
                continue
            if (rm := _RENAME_FROM_RE.match(sub)) or (rm := _COPY_FROM_RE.match(sub)):
                old_file = rm.group(1)
                is_rename = True
                if sub.startswith("copy"):
                    status = FileStatus.COPIED
                idx += 1
                continue
            if (rt := _RENAME_TO_RE.match(sub)) or (rt := _COPY_TO_RE.match(sub)):
                new_file = rt.group(1)
                if status != FileStatus.COPIED:
                    status = FileStatus.RENAMED
                idx += 1
                continue
            if _BINARY_RE.match(sub):
                is_binary = True
                idx += 1
                continue
            break

        if is_binary:
            return idx, FileSkipped(path=new_file, reason="binary")
        if is_mode_only and not self._has_hunks_ahead(idx, total) and not is_rename:
            return idx, FileSkipped(path=new_file, reason="mode_only")
        return idx, DiffFile(
            path=new_file,
            old_path=old_file if is_rename else None,
            status=status,
        )

    def _has_hunks_ahead(self, idx: int, total: int) -> bool:
        """Check if there are hunk headers ahead for the current file."""
        while idx < total:
            line = self._lines[idx]
            if _DIFF_HEADER_RE.match(line):
                return False  # next file started
            if _HUNK_HEADER_RE.match(line):
                return True
            idx += 1
        return False


def count_changes(diff_text: str) -> Tuple[int, int]:
    """Return ``(insertions, deletions)`` for a diff."""
    insertions = deletions = 0
    for item in DiffParser(diff_text).parse():
        if isinstance(item, DiffLine):
            if item.line_type == LineType.ADDED:
                insertions += 1
            elif item.line_type == LineType.REMOVED:
                deletions += 1
    return insertions, deletions


def is_binary_diff(diff_text: str) -> bool:
    return any(
        isinstance(item, FileSkipped) and item.reason == "binary"
        for item in DiffParser(diff_text).parse()
    )


def apply_patch(lines: List[str], diff_text: str) -> List[str]:
    """Apply a single-file unified diff to *lines* and return the result.

    Context and removed lines must match exactly; hunks must be ordered.
    """
    result: List[str] = []
    cursor = 0
    for item in DiffParser(diff_text).parse():
        if isinstance(item, Hunk):
            begin = item.old_start - 1 if item.old_count else item.old_start
            if begin < cursor or begin > len(lines):
                raise PatchApplyError(
                    f"hunk @@ -{item.old_start},{item.old_count} does not fit at line {cursor + 1}"
                )
            result.extend(lines[cursor:begin])
            cursor = begin
        elif isinstance(item, DiffLine):
            if item.line_type == LineType.ADDED:
                result.append(item.content)
                continue
            if cursor >= len(lines) or lines[cursor] != item.content:
                found = lines[cursor] if cursor < len(lines) else "<EOF>"
                raise PatchApplyError(
                    f"line {cursor + 1}: expected {item.content!r}, found {found!r}"
                )
            if item.line_type == LineType.CONTEXT:
                result.append(item.content)
            cursor += 1
    result.extend(lines[cursor:])
    return result

"""Rebuild a unified diff from two full-text snapshots.

Used when no git command produced a diff but both versions of the file
could be fetched. The matcher is a two-pointer walk with a bounded
lookahead, not a minimal edit script: on highly repetitive content (runs
of blank or near-duplicate lines) it may report more changes than a real
diff would. Whatever it reports, the emitted hunks always apply to the
parent and reproduce the current version exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from githarvest.config.schema import DiffConfig


class EditKind(str, Enum):
    EQUAL = "equal"
    DELETE = "delete"
    INSERT = "insert"
    REPLACE = "replace"


@dataclass(frozen=True, slots=True)
class Edit:
    kind: EditKind
    old_index: Optional[int]
    new_index: Optional[int]

    @property
    def consumes_old(self) -> bool:
        return self.kind is not EditKind.INSERT

    @property
    def consumes_new(self) -> bool:
        return self.kind is not EditKind.DELETE


@dataclass(frozen=True)
class ReconstructionOptions:
    lookahead: int = 5
    context_lines: int = 3
    merge_distance: int = 3
    large_change_ratio: float = 0.1
    large_change_min_lines: int = 20

    @classmethod
    def from_config(cls, cfg: DiffConfig) -> "ReconstructionOptions":
        return cls(
            lookahead=cfg.lookahead,
            context_lines=cfg.context_lines,
            merge_distance=cfg.merge_distance,
            large_change_ratio=cfg.large_change_ratio,
            large_change_min_lines=cfg.large_change_min_lines,
        )


@dataclass(frozen=True)
class ReconstructedDiff:
    text: str
    edits: Tuple[Edit, ...]
    large_change: bool  # text is a single whole-file hunk

    @property
    def changed(self) -> int:
        return sum(1 for e in self.edits if e.kind is not EditKind.EQUAL)


def compute_edits(
    parent: Sequence[str], current: Sequence[str], lookahead: int = 5
) -> List[Edit]:
    """Walk both sequences and classify every line.

    On a mismatch the deletion lookahead is tried before the insertion
    lookahead, so when both would match at the same distance the lines are
    reported as deleted.
    """
    edits: List[Edit] = []
    i = j = 0
    n, m = len(parent), len(current)

    while i < n and j < m:
        if parent[i] == current[j]:
            edits.append(Edit(EditKind.EQUAL, i, j))
            i += 1
            j += 1
            continue

        skip = next(
            (d for d in range(1, lookahead + 1) if i + d < n and parent[i + d] == current[j]),
            0,
        )
        if skip:
            edits.extend(Edit(EditKind.DELETE, i + k, None) for k in range(skip))
            i += skip
            continue

        skip = next(
            (d for d in range(1, lookahead + 1) if j + d < m and current[j + d] == parent[i]),
            0,
        )
        if skip:
            edits.extend(Edit(EditKind.INSERT, None, j + k) for k in range(skip))
            j += skip
            continue

        edits.append(Edit(EditKind.REPLACE, i, j))
        i += 1
        j += 1

    edits.extend(Edit(EditKind.DELETE, k, None) for k in range(i, n))
    edits.extend(Edit(EditKind.INSERT, None, k) for k in range(j, m))
    return edits


def is_large_change(
    edits: Sequence[Edit],
    parent_len: int,
    current_len: int,
    opts: ReconstructionOptions,
) -> bool:
    larger = max(parent_len, current_len)
    if larger < opts.large_change_min_lines:
        return False
    changed = sum(1 for e in edits if e.kind is not EditKind.EQUAL)
    return changed >= opts.large_change_ratio * larger


def group_regions(edits: Sequence[Edit], merge_distance: int) -> List[Tuple[int, int]]:
    """Merge changed positions that lie within *merge_distance* of each other."""
    changes = [pos for pos, e in enumerate(edits) if e.kind is not EditKind.EQUAL]
    if not changes:
        return []
    regions: List[Tuple[int, int]] = []
    start = prev = changes[0]
    for pos in changes[1:]:
        if pos - prev <= merge_distance:
            prev = pos
        else:
            regions.append((start, prev))
            start = prev = pos
    regions.append((start, prev))
    return regions


def _range(before: int, length: int) -> str:
    # An empty side names the line it follows (0 = top of file).
    return f"{before},0" if length == 0 else f"{before + 1},{length}"


def render_hunks(
    edits: Sequence[Edit],
    parent: Sequence[str],
    current: Sequence[str],
    context: int = 3,
    merge_distance: int = 3,
) -> List[str]:
    """Render grouped regions as unified-diff hunk lines."""
    regions = group_regions(edits, merge_distance)
    if not regions:
        return []

    old_before = [0]
    new_before = [0]
    for e in edits:
        old_before.append(old_before[-1] + e.consumes_old)
        new_before.append(new_before[-1] + e.consumes_new)

    out: List[str] = []
    last_end = -1
    for idx, (first, last) in enumerate(regions):
        lo = max(first - context, last_end + 1, 0)
        hi = min(last + context, len(edits) - 1)
        if idx + 1 < len(regions):
            hi = min(hi, regions[idx + 1][0] - 1)

        old_len = old_before[hi + 1] - old_before[lo]
        new_len = new_before[hi + 1] - new_before[lo]
        out.append(
            f"@@ -{_range(old_before[lo], old_len)} +{_range(new_before[lo], new_len)} @@"
        )

        removed: List[str] = []
        added: List[str] = []
        for e in edits[lo:hi + 1]:
            if e.kind is EditKind.EQUAL:
                out.extend(removed)
                out.extend(added)
                removed, added = [], []
                out.append(" " + parent[e.old_index])  # type: ignore[index]
                continue
            if e.consumes_old:
                removed.append("-" + parent[e.old_index])  # type: ignore[index]
            if e.consumes_new:
                added.append("+" + current[e.new_index])  # type: ignore[index]
        out.extend(removed)
        out.extend(added)
        last_end = hi
    return out


def render_full_replacement(parent: Sequence[str], current: Sequence[str]) -> List[str]:
    """One hunk spanning the whole file: every parent line out, every current line in."""
    if not parent and not current:
        return []
    out = [f"@@ -{_range(0, len(parent))} +{_range(0, len(current))} @@"]
    out.extend("-" + line for line in parent)
    out.extend("+" + line for line in current)
    return out


def file_header(file_path: str, *, added: bool = False) -> List[str]:
    old = "/dev/null" if added else f"a/{file_path}"
    return [f"--- {old}", f"+++ b/{file_path}"]


def join_diff(lines: Sequence[str]) -> str:
    return "\n".join(lines) + "\n"


def reconstruct_diff(
    file_path: str,
    parent: Sequence[str],
    current: Sequence[str],
    opts: Optional[ReconstructionOptions] = None,
) -> ReconstructedDiff:
    """Build a unified diff turning *parent* into *current*.

    When the changed lines reach ``large_change_ratio`` of the larger file,
    the result is a single whole-file hunk and ``large_change`` is set so
    callers can try a better tool-level diff first.
    """
    opts = opts or ReconstructionOptions()
    edits = compute_edits(parent, current, opts.lookahead)
    large = is_large_change(edits, len(parent), len(current), opts)
    if large:
        body = render_full_replacement(parent, current)
    else:
        body = render_hunks(edits, parent, current, opts.context_lines, opts.merge_distance)
    return ReconstructedDiff(
        text=join_diff(file_header(file_path) + body),
        edits=tuple(edits),
        large_change=large,
    )

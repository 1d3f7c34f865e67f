"""Tests for diff reconstruction from two snapshots."""

import random

import pytest

from githarvest.diff.reconstruct import (
    Edit,
    EditKind,
    ReconstructionOptions,
    compute_edits,
    group_regions,
    reconstruct_diff,
    render_hunks,
)
from githarvest.git.diff_parser import apply_patch, split_lines


def _body(text: str):
    """Diff lines after the ---/+++ header."""
    return split_lines(text)[2:]


class TestExamples:
    def test_substitution(self):
        result = reconstruct_diff("f.txt", ["a", "b", "c"], ["a", "x", "c"])
        assert not result.large_change
        assert _body(result.text) == ["@@ -1,3 +1,3 @@", " a", "-b", "+x", " c"]

    def test_deletion(self):
        result = reconstruct_diff("f.txt", ["a", "b", "c"], ["a", "c"])
        assert _body(result.text) == ["@@ -1,3 +1,2 @@", " a", "-b", " c"]

    def test_insertion(self):
        result = reconstruct_diff("f.txt", ["a", "c"], ["a", "b", "c"])
        assert _body(result.text) == ["@@ -1,2 +1,3 @@", " a", "+b", " c"]

    def test_header(self):
        result = reconstruct_diff("src/f.txt", ["a"], ["b"])
        assert split_lines(result.text)[:2] == ["--- a/src/f.txt", "+++ b/src/f.txt"]

    def test_identical_has_no_hunks(self):
        result = reconstruct_diff("f.txt", ["a", "b"], ["a", "b"])
        assert _body(result.text) == []
        assert result.changed == 0

    def test_empty_parent(self):
        result = reconstruct_diff("f.txt", [], ["a", "b"])
        assert _body(result.text) == ["@@ -0,0 +1,2 @@", "+a", "+b"]

    def test_empty_current(self):
        result = reconstruct_diff("f.txt", ["a", "b"], [])
        assert _body(result.text) == ["@@ -1,2 +0,0 @@", "-a", "-b"]


class TestComputeEdits:
    def test_deletion_wins_tie(self):
        # parent[i+1] == current[j] and current[j+1] == parent[i]: both
        # lookaheads match at distance 1; deletion is tried first.
        edits = compute_edits(["a", "b"], ["b", "a"])
        assert edits[0] == Edit(EditKind.DELETE, 0, None)
        assert edits[1] == Edit(EditKind.EQUAL, 1, 0)

    def test_lookahead_bound(self):
        parent = ["x"] + [f"p{n}" for n in range(6)] + ["k"]
        current = ["k"]
        # "k" is 7 lines ahead, beyond the default window of 5.
        kinds = [e.kind for e in compute_edits(parent, current)]
        assert kinds[0] is EditKind.REPLACE

    def test_remaining_lines(self):
        kinds = [e.kind for e in compute_edits(["a"], ["a", "b", "c"])]
        assert kinds == [EditKind.EQUAL, EditKind.INSERT, EditKind.INSERT]


class TestRegions:
    def _edits(self, pattern: str):
        # "=" equal, "r" replace
        return [
            Edit(EditKind.EQUAL if ch == "=" else EditKind.REPLACE, n, n)
            for n, ch in enumerate(pattern)
        ]

    def test_close_changes_merge(self):
        assert group_regions(self._edits("r==r"), 3) == [(0, 3)]

    def test_distant_changes_split(self):
        assert group_regions(self._edits("r====r"), 3) == [(0, 0), (5, 5)]

    def test_separate_hunks_rendered(self):
        parent = [f"l{n}" for n in range(20)]
        current = list(parent)
        current[1] = "X"
        current[15] = "Y"
        edits = compute_edits(parent, current)
        hunks = [l for l in render_hunks(edits, parent, current) if l.startswith("@@")]
        assert hunks == ["@@ -1,5 +1,5 @@", "@@ -13,7 +13,7 @@"]


class TestLargeChange:
    def test_full_replacement(self):
        parent = [f"old {n}" for n in range(30)]
        current = [f"new {n}" for n in range(30)]
        result = reconstruct_diff("f.txt", parent, current)
        assert result.large_change
        body = _body(result.text)
        assert body[0] == "@@ -1,30 +1,30 @@"
        assert body[1:31] == ["-" + l for l in parent]
        assert body[31:] == ["+" + l for l in current]

    def test_small_files_always_hunked(self):
        # 1 of 3 lines changed is 33%, but small files keep real hunks.
        result = reconstruct_diff("f.txt", ["a", "b", "c"], ["a", "x", "c"])
        assert not result.large_change

    def test_threshold(self):
        parent = [f"l{n}" for n in range(40)]
        below = list(parent)
        below[5] = "changed"
        assert not reconstruct_diff("f", parent, below).large_change

        above = list(parent)
        for n in (5, 12, 19, 26, 33):  # 5 of 40
            above[n] = f"changed {n}"
        assert reconstruct_diff("f", parent, above).large_change

    def test_options_respected(self):
        opts = ReconstructionOptions(large_change_min_lines=1, large_change_ratio=0.5)
        assert reconstruct_diff("f", ["a", "b"], ["a", "x"], opts).large_change


def _mutate(rng: random.Random, lines):
    out = list(lines)
    for _ in range(rng.randint(0, 6)):
        op = rng.choice(("ins", "del", "sub"))
        pos = rng.randint(0, len(out))
        if op == "ins":
            out.insert(pos, rng.choice(("", "x", "dup", f"new{pos}")))
        elif out and pos < len(out):
            if op == "del":
                del out[pos]
            else:
                out[pos] = rng.choice(("", "y", "dup"))
    return out


class TestRoundTrip:
    @pytest.mark.parametrize("seed", range(40))
    def test_patch_reproduces_current(self, seed):
        rng = random.Random(seed)
        size = rng.randint(0, 60)
        # Small alphabet so repeated lines exercise the lookahead.
        parent = [rng.choice(("a", "b", "", "dup", f"u{n}")) for n in range(size)]
        current = _mutate(rng, parent)
        result = reconstruct_diff("f.txt", parent, current)
        assert apply_patch(parent, result.text) == current

    def test_round_trip_large_change(self):
        parent = [f"old {n}" for n in range(25)]
        current = ["head"] + [f"new {n}" for n in range(10)]
        result = reconstruct_diff("f.txt", parent, current)
        assert result.large_change
        assert apply_patch(parent, result.text) == current

    def test_round_trip_many_regions(self):
        parent = [f"l{n}" for n in range(200)]
        current = [l if n % 37 else l + "!" for n, l in enumerate(parent)]
        result = reconstruct_diff("f.txt", parent, current)
        assert not result.large_change
        assert apply_patch(parent, result.text) == current

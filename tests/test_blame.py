"""Tests for line-porcelain blame parsing."""

from datetime import datetime

import pytest

from githarvest.git.blame import BlameReader, format_blame_time, parse_line_porcelain
from githarvest.git.repository import RepositoryHandle

H1 = "a" * 40
H2 = "b" * 40

# Built line by line: the second source line is empty, i.e. a bare tab.
PORCELAIN = "\n".join([
    f"{H1} 1 1 2",
    "author Alice",
    "author-mail <alice@example.com>",
    "author-time 1704103200",
    "author-tz +0000",
    "committer Alice",
    "committer-time 1704103200",
    "summary first commit",
    "filename app.py",
    "\timport os",
    f"{H1} 2 2",
    "author Alice",
    "author-time 1704103200",
    "summary first commit",
    "filename app.py",
    "\t",
    f"{H2} 3 3 1",
    "author Bob",
    "author-time 1704189600",
    "summary second | commit",
    f"previous {H1} app.py",
    "filename app.py",
    '\tprint("author Bob")',
]) + "\n"


class TestParseLinePorcelain:
    def test_records(self):
        lines = parse_line_porcelain(PORCELAIN)
        assert [(b.line, b.author, b.hash) for b in lines] == [
            (1, "Alice", H1),
            (2, "Alice", H1),
            (3, "Bob", H2),
        ]

    def test_content_and_message(self):
        lines = parse_line_porcelain(PORCELAIN)
        assert lines[0].content == "import os"
        assert lines[1].content == ""
        assert lines[2].content == 'print("author Bob")'
        assert lines[2].message == "second | commit"

    def test_time_is_local(self):
        lines = parse_line_porcelain(PORCELAIN)
        expected = datetime.fromtimestamp(1704103200).strftime("%Y-%m-%d %H:%M:%S")
        assert lines[0].time == expected
        assert format_blame_time(1704103200) == expected

    def test_empty_output(self):
        assert parse_line_porcelain("") == []


class TestBlameReader:
    @pytest.mark.asyncio
    async def test_blame_file(self, history_repo):
        handle = RepositoryHandle()
        handle.bind(history_repo.path)
        lines = await BlameReader(handle).blame_for("app.py")
        assert len(lines) == 30
        assert lines[9].content == "line ten"
        assert lines[9].hash == history_repo.hashes["tweak"]
        assert lines[9].message == "tweak | pipe"
        assert lines[0].hash == history_repo.hashes["add"]
        assert lines[0].author == "Test"

    @pytest.mark.asyncio
    async def test_blame_at_commit(self, history_repo):
        handle = RepositoryHandle()
        handle.bind(history_repo.path)
        lines = await BlameReader(handle).blame_for("notes.txt", history_repo.hashes["tweak"])
        assert [b.content for b in lines] == ["note one", "note two"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path,commit", [
        ("missing.txt", None),
        ("app.py", "0" * 40),
        ("app.py", "--reverse"),
    ])
    async def test_failure_returns_empty(self, history_repo, path, commit):
        handle = RepositoryHandle()
        handle.bind(history_repo.path)
        assert await BlameReader(handle).blame_for(path, commit) == []

    @pytest.mark.asyncio
    async def test_unbound(self):
        assert await BlameReader(RepositoryHandle()).blame_for("app.py") == []

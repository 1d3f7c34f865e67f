"""Line-level provenance from ``git blame --line-porcelain``."""

from __future__ import annotations

import re
from datetime import datetime
from typing import List, Optional

import structlog

from githarvest.errors import GitHarvestError
from githarvest.git.files import is_safe_rev
from githarvest.git.models import BlameLine
from githarvest.git.repository import RepositoryHandle

# <hash> <orig-line> <final-line>[ <count>]
_BLOCK_HEADER_RE = re.compile(r"^([0-9a-f]{40}|[0-9a-f]{64}) (\d+) (\d+)(?: (\d+))?$")

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_blame_time(timestamp: int) -> str:
    """Unix timestamp → local display time."""
    return datetime.fromtimestamp(timestamp).strftime(TIME_FORMAT)


def parse_line_porcelain(output: str) -> List[BlameLine]:
    """Parse porcelain blame output into one record per source line.

    A block header sets the hash and final line number; ``author``,
    ``author-time`` and ``summary`` fill in the pending record; the
    tab-prefixed source line closes it.
    """
    records: List[BlameLine] = []
    commit_hash = author = time = message = ""
    line_no = 0

    for line in output.split("\n"):
        if line.startswith("\t"):
            records.append(BlameLine(
                line=line_no,
                author=author,
                time=time,
                content=line[1:],
                hash=commit_hash,
                message=message,
            ))
            continue
        m = _BLOCK_HEADER_RE.match(line)
        if m:
            commit_hash = m.group(1)
            line_no = int(m.group(3))
        elif line.startswith("author "):
            author = line[len("author "):]
        elif line.startswith("author-time "):
            try:
                time = format_blame_time(int(line[len("author-time "):]))
            except (ValueError, OverflowError, OSError):
                time = ""
        elif line.startswith("summary "):
            message = line[len("summary "):]
    return records


class BlameReader:
    def __init__(self, handle: RepositoryHandle, *, logger=None) -> None:
        self._handle = handle
        self._log = logger or structlog.get_logger(__name__)

    async def blame_for(self, file_path: str, commit_hash: Optional[str] = None) -> List[BlameLine]:
        """Blame *file_path* (at *commit_hash* if given). ``[]`` on any failure."""
        args = ["blame", "--line-porcelain"]
        if commit_hash:
            if not is_safe_rev(commit_hash):
                return []
            args.append(commit_hash)
        args.extend(["--", file_path])
        try:
            output = await self._handle.runner.run(args)
        except GitHarvestError as exc:
            self._log.warning("blame_failed", path=file_path, commit=commit_hash, error=str(exc))
            return []
        return parse_line_porcelain(output)

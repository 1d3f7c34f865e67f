"""JSON reporter for scripts and pipelines."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Sequence

from githarvest import __version__
from githarvest.git.models import BlameLine, Commit, CommitFile

SCHEMA_VERSION = "1.0"


def commit_to_dict(commit: Commit) -> Dict[str, Any]:
    return {
        "hash": commit.hash,
        "date": commit.date,
        "message": commit.message,
        "author": commit.author,
        "author_email": commit.author_email,
        "files": list(commit.files),
    }


def commit_file_to_dict(f: CommitFile, *, include_content: bool = False) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "path": f.path,
        "status": f.status.value,
        "insertions": f.insertions,
        "deletions": f.deletions,
    }
    if include_content:
        data["content"] = f.content
        data["previous_content"] = f.previous_content
    return data


def blame_to_dict(line: BlameLine) -> Dict[str, Any]:
    return {
        "line": line.line,
        "author": line.author,
        "time": line.time,
        "hash": line.hash,
        "message": line.message,
        "content": line.content,
    }


def _envelope(kind: str, items: List[Any], **extra: Any) -> Dict[str, Any]:
    return {
        "version": SCHEMA_VERSION,
        "generator": f"githarvest {__version__}",
        "kind": kind,
        "count": len(items),
        **extra,
        kind: items,
    }


def render_commits(commits: Sequence[Commit]) -> str:
    return json.dumps(_envelope("commits", [commit_to_dict(c) for c in commits]), indent=2)


def render_files(
    commit_hash: str,
    files: Sequence[CommitFile],
    *,
    include_content: bool = False,
) -> str:
    items = [commit_file_to_dict(f, include_content=include_content) for f in files]
    return json.dumps(_envelope("files", items, commit=commit_hash), indent=2)


def render_blame(file_path: str, lines: Sequence[BlameLine]) -> str:
    items = [blame_to_dict(b) for b in lines]
    return json.dumps(_envelope("blame", items, file=file_path), indent=2)


def render_branches(branches: Sequence[str]) -> str:
    return json.dumps(_envelope("branches", list(branches)), indent=2)


def render_diff(commit_hash: str, file_path: str, diff: str) -> str:
    return json.dumps(
        {
            "version": SCHEMA_VERSION,
            "generator": f"githarvest {__version__}",
            "kind": "diff",
            "commit": commit_hash,
            "file": file_path,
            "diff": diff,
        },
        indent=2,
    )

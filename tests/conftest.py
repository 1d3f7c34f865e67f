"""Shared test fixtures — sample diffs, configs, temp git repos."""

from __future__ import annotations

import os
import shutil
import subprocess
import textwrap
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

import pytest

from githarvest.config.schema import HarvestConfig


def git(repo: Path, *args: str, date: str = "") -> str:
    """Run git in *repo* and return stdout."""
    env = dict(os.environ)
    if date:
        env["GIT_AUTHOR_DATE"] = date
        env["GIT_COMMITTER_DATE"] = date
    proc = subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, check=True, text=True, env=env,
    )
    return proc.stdout


def commit_all(repo: Path, message: str, date: str) -> str:
    git(repo, "add", "-A")
    git(repo, "commit", "-q", "-m", message, date=date)
    return git(repo, "rev-parse", "HEAD").strip()


@dataclass
class HistoryRepo:
    path: Path
    hashes: Dict[str, str] = field(default_factory=dict)

    @property
    def newest_first(self) -> List[str]:
        return list(reversed(list(self.hashes.values())))


APP_LINES = [f"line {n}" for n in range(1, 31)]


@pytest.fixture
def sample_diff_added() -> str:
    """A diff adding a new file."""
    return textwrap.dedent("""\
        diff --git a/hello.py b/hello.py
        new file mode 100644
        index 0000000..e69de29
        --- /dev/null
        +++ b/hello.py
        @@ -0,0 +1,3 @@
        +def greet(name):
        +    return f"Hello, {name}!"
        +
    """)


@pytest.fixture
def sample_diff_modified() -> str:
    """A diff with one substitution and surrounding context."""
    return textwrap.dedent("""\
        diff --git a/app.py b/app.py
        index 1234567..abcdef0 100644
        --- a/app.py
        +++ b/app.py
        @@ -1,3 +1,3 @@
         import os
        -DEBUG = True
        +DEBUG = False
         PORT = 8080
    """)


@pytest.fixture
def sample_diff_deleted() -> str:
    return textwrap.dedent("""\
        diff --git a/old.txt b/old.txt
        deleted file mode 100644
        index abc1234..0000000
        --- a/old.txt
        +++ /dev/null
        @@ -1,2 +0,0 @@
        -first
        -second
    """)


@pytest.fixture
def sample_diff_binary() -> str:
    """A diff with a binary file."""
    return textwrap.dedent("""\
        diff --git a/image.png b/image.png
        new file mode 100644
        Binary files /dev/null and b/image.png differ
    """)


@pytest.fixture
def sample_diff_rename() -> str:
    """A diff with a renamed file."""
    return textwrap.dedent("""\
        diff --git a/old_name.py b/new_name.py
        similarity index 97%
        rename from old_name.py
        rename to new_name.py
        index abc1234..def5678 100644
        --- a/old_name.py
        +++ b/new_name.py
        @@ -1,0 +2,1 @@
        +# New line added after rename
    """)


@pytest.fixture
def sample_diff_mode_only() -> str:
    """A diff with only file mode change."""
    return textwrap.dedent("""\
        diff --git a/script.sh b/script.sh
        old mode 100644
        new mode 100755
    """)


@pytest.fixture
def sample_diff_no_newline() -> str:
    """A diff with 'No newline at end of file' marker."""
    return textwrap.dedent("""\
        diff --git a/data.txt b/data.txt
        new file mode 100644
        index 0000000..abc1234
        --- /dev/null
        +++ b/data.txt
        @@ -0,0 +1 @@
        +final line without newline
        \\ No newline at end of file
    """)


@pytest.fixture
def sample_diff_no_prefix() -> str:
    """Output of ``git diff --no-prefix``."""
    return textwrap.dedent("""\
        diff --git src/app.py src/app.py
        index 1234567..abcdef0 100644
        --- src/app.py
        +++ src/app.py
        @@ -2 +2 @@
        -old
        +new
    """)


@pytest.fixture
def fast_config() -> HarvestConfig:
    """Default config without retry delays."""
    cfg = HarvestConfig()
    cfg.process.max_retries = 0
    return cfg


@pytest.fixture
def tmp_git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository for integration tests."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    subprocess.run(["git", "init", "-q", "-b", "main", str(tmp_path)], capture_output=True, check=True)
    git(tmp_path, "config", "user.email", "test@test.com")
    git(tmp_path, "config", "user.name", "Test")
    git(tmp_path, "config", "commit.gpgsign", "false")
    # Initial commit
    (tmp_path / "README.md").write_text("# Test\n")
    commit_all(tmp_path, "init", "2024-01-01T10:00:00+0000")
    return tmp_path


@pytest.fixture
def history_repo(tmp_git_repo: Path) -> HistoryRepo:
    """A linear history with additions, a modification, and a deletion.

    init         README.md
    add app      app.py (30 lines)
    tweak | pipe app.py line 10 changed, notes.txt added
    drop notes   notes.txt deleted
    """
    repo = HistoryRepo(tmp_git_repo)
    repo.hashes["init"] = git(tmp_git_repo, "rev-parse", "HEAD").strip()

    app = tmp_git_repo / "app.py"
    app.write_text("\n".join(APP_LINES) + "\n")
    repo.hashes["add"] = commit_all(tmp_git_repo, "add app", "2024-01-02T10:00:00+0000")

    lines = list(APP_LINES)
    lines[9] = "line ten"
    app.write_text("\n".join(lines) + "\n")
    (tmp_git_repo / "notes.txt").write_text("note one\nnote two\n")
    repo.hashes["tweak"] = commit_all(tmp_git_repo, "tweak | pipe", "2024-01-03T10:00:00+0000")

    (tmp_git_repo / "notes.txt").unlink()
    repo.hashes["drop"] = commit_all(tmp_git_repo, "drop notes", "2024-01-04T10:00:00+0000")
    return repo

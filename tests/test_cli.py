"""Tests for the CLI commands."""

import json
from pathlib import Path

from typer.testing import CliRunner

from githarvest.cli import app

runner = CliRunner()


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "githarvest" in result.output


class TestInit:
    def test_creates_config(self, tmp_git_repo: Path, monkeypatch):
        monkeypatch.chdir(tmp_git_repo)
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 0
        assert (tmp_git_repo / ".githarvest.toml").exists()

    def test_refuses_overwrite(self, tmp_git_repo: Path, monkeypatch):
        monkeypatch.chdir(tmp_git_repo)
        (tmp_git_repo / ".githarvest.toml").write_text("existing")
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 1

    def test_outside_repository(self, tmp_path: Path):
        result = runner.invoke(app, ["init", "--repo", str(tmp_path)])
        assert result.exit_code == 2


class TestCommits:
    def test_json(self, history_repo):
        result = runner.invoke(app, ["commits", "--repo", str(history_repo.path), "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["count"] == 4
        assert [c["hash"] for c in data["commits"]] == history_repo.newest_first

    def test_max_count(self, history_repo):
        result = runner.invoke(
            app, ["commits", "--repo", str(history_repo.path), "-n", "1", "--format", "json"]
        )
        assert result.exit_code == 0
        assert json.loads(result.stdout)["count"] == 1

    def test_terminal(self, history_repo):
        result = runner.invoke(app, ["commits", "--repo", str(history_repo.path)])
        assert result.exit_code == 0
        assert "Commits" in result.stdout

    def test_from_subdirectory(self, history_repo, monkeypatch):
        sub = history_repo.path / "sub"
        sub.mkdir()
        monkeypatch.chdir(sub)
        result = runner.invoke(app, ["commits", "--format", "json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["count"] == 4


class TestShow:
    def test_abbreviated_hash(self, history_repo):
        short = history_repo.hashes["tweak"][:8]
        result = runner.invoke(app, ["show", short, "--repo", str(history_repo.path), "--format", "json"])
        assert result.exit_code == 0
        (commit,) = json.loads(result.stdout)["commits"]
        assert commit["hash"] == history_repo.hashes["tweak"]
        assert commit["message"] == "tweak | pipe"

    def test_not_found(self, history_repo):
        result = runner.invoke(app, ["show", "0123456789" * 4, "--repo", str(history_repo.path)])
        assert result.exit_code == 1


class TestFilesAndDiff:
    def test_files_json(self, history_repo):
        result = runner.invoke(
            app, ["files", history_repo.hashes["tweak"], "--repo", str(history_repo.path), "--format", "json"]
        )
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        statuses = {f["path"]: f["status"] for f in data["files"]}
        assert statuses == {"app.py": "modified", "notes.txt": "added"}
        assert "content" not in data["files"][0]

    def test_diff_json(self, history_repo):
        result = runner.invoke(
            app,
            ["diff", history_repo.hashes["tweak"], "app.py", "--repo", str(history_repo.path), "--format", "json"],
        )
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert "+line ten" in data["diff"]

    def test_diff_missing_commit_still_succeeds(self, history_repo):
        result = runner.invoke(
            app, ["diff", "0123456789" * 4, "app.py", "--repo", str(history_repo.path), "--format", "json"]
        )
        assert result.exit_code == 0
        assert "does not exist" in json.loads(result.stdout)["diff"]


class TestBlameAndBranches:
    def test_blame_json(self, history_repo):
        result = runner.invoke(app, ["blame", "notes.txt", "--commit", history_repo.hashes["tweak"],
                                     "--repo", str(history_repo.path), "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [b["content"] for b in data["blame"]] == ["note one", "note two"]

    def test_branches_json(self, history_repo):
        result = runner.invoke(app, ["branches", "--repo", str(history_repo.path), "--format", "json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["branches"] == ["main"]


class TestExitCodes:
    def test_exit_2_not_a_repository(self, tmp_path: Path):
        result = runner.invoke(app, ["commits", "--repo", str(tmp_path)])
        assert result.exit_code == 2

    def test_exit_2_missing_path(self, tmp_path: Path):
        result = runner.invoke(app, ["commits", "--repo", str(tmp_path / "nope")])
        assert result.exit_code == 2

    def test_exit_2_bad_format(self, history_repo):
        result = runner.invoke(app, ["commits", "--repo", str(history_repo.path), "--format", "xml"])
        assert result.exit_code == 2

    def test_exit_2_bad_config(self, history_repo):
        (history_repo.path / ".githarvest.toml").write_text("not [valid")
        result = runner.invoke(app, ["commits", "--repo", str(history_repo.path)])
        assert result.exit_code == 2

    def test_exit_2_bad_branch(self, history_repo):
        result = runner.invoke(app, ["commits", "--repo", str(history_repo.path), "--branch=-x"])
        assert result.exit_code == 2

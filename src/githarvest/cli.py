"""GitHarvest CLI — Typer application over HarvestSession."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Coroutine, Optional, TypeVar

import typer
from rich.console import Console

from githarvest import __version__

app = typer.Typer(
    name="githarvest",
    help="Extract commits, changed files, and diffs for code review.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console(stderr=True)

T = TypeVar("T")

_FORMATS = ("terminal", "json")


def _find_repo_root(start: Path) -> Path:
    """Nearest ancestor of *start* holding a .git entry, else *start* itself."""
    start = start.resolve()
    for candidate in (start, *start.parents):
        if (candidate / ".git").exists():
            return candidate
    return start


def _check_format(fmt: str) -> str:
    if fmt not in _FORMATS:
        console.print(f"[bold red]Invalid format:[/bold red] {fmt}")
        raise typer.Exit(code=2)
    return fmt


def _open_session(repo: Optional[str], config: Optional[str], verbose: bool = False):
    """Load config, configure logging, and bind a session. Exit 2 on failure."""
    from githarvest.config.loader import ConfigError, load_config
    from githarvest.errors import GitHarvestError
    from githarvest.logging import configure_logging
    from githarvest.session import HarvestSession

    start = Path(repo) if repo else Path.cwd()
    if not start.exists():
        console.print(f"[bold red]Error:[/bold red] Repository path does not exist: {start}")
        raise typer.Exit(code=2)
    repo_root = _find_repo_root(start)

    try:
        cfg = load_config(repo_root, config)
    except ConfigError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    configure_logging("DEBUG" if verbose else cfg.logging.level, cfg.logging.format)

    try:
        return HarvestSession.open(repo_root, cfg)
    except GitHarvestError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc


def _run(coro: Coroutine[Any, Any, T]) -> T:
    from githarvest.errors import GitHarvestError

    try:
        return asyncio.run(coro)
    except GitHarvestError as exc:
        console.print(f"[bold red]Git error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc


_repo_opt = typer.Option(None, "--repo", "-r", help="Repository path (default: current directory)")
_config_opt = typer.Option(None, "--config", "-c", help="Path to .githarvest.toml")
_format_opt = typer.Option("terminal", "--format", "-f", help="Output format: terminal | json")
_verbose_opt = typer.Option(False, "--verbose", "-v", help="Debug logging to stderr")


# ── commits ───────────────────────────────────────────────────────────────────


@app.command()
def commits(
    since: Optional[str] = typer.Option(None, "--since", help="Only commits after this date"),
    until: Optional[str] = typer.Option(None, "--until", help="Only commits before this date"),
    max_count: Optional[int] = typer.Option(None, "--max-count", "-n", min=1, help="Limit number of commits"),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Branch or revision to list"),
    repo: Optional[str] = _repo_opt,
    config: Optional[str] = _config_opt,
    format: str = _format_opt,
    verbose: bool = _verbose_opt,
) -> None:
    """List commits, newest first, with the files each one touched."""
    from githarvest.git.models import CommitFilter
    from githarvest.output import json_report, terminal

    fmt = _check_format(format)
    session = _open_session(repo, config, verbose)
    try:
        commit_filter = CommitFilter(since=since, until=until, max_count=max_count, branch=branch)
    except ValueError as exc:
        console.print(f"[bold red]Invalid filter:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    result = _run(session.list_commits(commit_filter))
    if fmt == "json":
        print(json_report.render_commits(result))
    else:
        terminal.render_commits(result)


# ── show ──────────────────────────────────────────────────────────────────────


@app.command()
def show(
    commit: str = typer.Argument(..., help="Full or abbreviated commit hash"),
    repo: Optional[str] = _repo_opt,
    config: Optional[str] = _config_opt,
    format: str = _format_opt,
    verbose: bool = _verbose_opt,
) -> None:
    """Show one commit and the files it touched."""
    from githarvest.output import json_report, terminal

    fmt = _check_format(format)
    session = _open_session(repo, config, verbose)
    found = _run(session.get_commit_by_id(commit))
    if not found:
        console.print(f"[yellow]Commit not found:[/yellow] {commit}")
        raise typer.Exit(code=1)

    if fmt == "json":
        print(json_report.render_commits(found))
    else:
        terminal.render_commit_detail(found[0])


# ── files ─────────────────────────────────────────────────────────────────────


@app.command()
def files(
    commit: str = typer.Argument(..., help="Commit hash"),
    content: bool = typer.Option(False, "--content", help="Include file snapshots (json only)"),
    repo: Optional[str] = _repo_opt,
    config: Optional[str] = _config_opt,
    format: str = _format_opt,
    verbose: bool = _verbose_opt,
) -> None:
    """List the files a commit changed, with status and line counts."""
    from githarvest.output import json_report, terminal

    fmt = _check_format(format)
    session = _open_session(repo, config, verbose)
    result = _run(session.commit_files(commit))
    if fmt == "json":
        print(json_report.render_files(commit, result, include_content=content))
    else:
        terminal.render_files(commit, result)


# ── diff ──────────────────────────────────────────────────────────────────────


@app.command()
def diff(
    commit: str = typer.Argument(..., help="Commit hash"),
    path: str = typer.Argument(..., help="File path relative to the repository root"),
    repo: Optional[str] = _repo_opt,
    config: Optional[str] = _config_opt,
    format: str = _format_opt,
    verbose: bool = _verbose_opt,
) -> None:
    """Print the unified diff of one file as changed by a commit."""
    from githarvest.output import json_report, terminal

    fmt = _check_format(format)
    session = _open_session(repo, config, verbose)
    text = _run(session.diff_for(commit, path))
    if fmt == "json":
        print(json_report.render_diff(commit, path, text))
    else:
        terminal.render_diff(text)


# ── blame ─────────────────────────────────────────────────────────────────────


@app.command()
def blame(
    path: str = typer.Argument(..., help="File path relative to the repository root"),
    commit: Optional[str] = typer.Option(None, "--commit", help="Blame as of this commit"),
    repo: Optional[str] = _repo_opt,
    config: Optional[str] = _config_opt,
    format: str = _format_opt,
    verbose: bool = _verbose_opt,
) -> None:
    """Show who last changed each line of a file."""
    from githarvest.output import json_report, terminal

    fmt = _check_format(format)
    session = _open_session(repo, config, verbose)
    result = _run(session.blame_for(path, commit))
    if fmt == "json":
        print(json_report.render_blame(path, result))
    else:
        terminal.render_blame(path, result)


# ── branches ──────────────────────────────────────────────────────────────────


@app.command()
def branches(
    repo: Optional[str] = _repo_opt,
    config: Optional[str] = _config_opt,
    format: str = _format_opt,
    verbose: bool = _verbose_opt,
) -> None:
    """List local branches."""
    from githarvest.output import json_report, terminal

    fmt = _check_format(format)
    session = _open_session(repo, config, verbose)
    result = _run(session.branches())
    if fmt == "json":
        print(json_report.render_branches(result))
    else:
        terminal.render_branches(result)


# ── init ──────────────────────────────────────────────────────────────────────


@app.command()
def init(
    repo: Optional[str] = _repo_opt,
) -> None:
    """Generate a starter .githarvest.toml in the repo root."""
    from githarvest.config.defaults import DEFAULT_TOML
    from githarvest.config.loader import CONFIG_FILENAME

    start = Path(repo) if repo else Path.cwd()
    repo_root = _find_repo_root(start)
    if not (repo_root / ".git").exists():
        console.print(f"[bold red]Error:[/bold red] Not a git repository: {repo_root}")
        raise typer.Exit(code=2)

    config_path = repo_root / CONFIG_FILENAME
    if config_path.exists():
        console.print(f"[yellow]⚠[/yellow]  {CONFIG_FILENAME} already exists at {config_path}")
        raise typer.Exit(code=1)

    config_path.write_text(DEFAULT_TOML, encoding="utf-8")
    console.print(f"[green]✓[/green] Created {config_path}")


# ── version ───────────────────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        print(f"githarvest {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback,
        is_eager=True, help="Show version and exit",
    ),
) -> None:
    """GitHarvest — commit history, changed files, and diffs for review pipelines."""

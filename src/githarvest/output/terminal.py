"""Rich terminal reporter — tables for commits, files, and blame; coloured diffs."""

from __future__ import annotations

from typing import Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from githarvest.git.models import BlameLine, Commit, CommitFile, FileStatus

_STATUS_STYLE = {
    FileStatus.ADDED: "bold green",
    FileStatus.MODIFIED: "bold yellow",
    FileStatus.DELETED: "bold red",
    FileStatus.RENAMED: "bold cyan",
    FileStatus.COPIED: "bold cyan",
    FileStatus.BINARY: "dim",
}

_STATUS_ICON = {
    FileStatus.ADDED: "A",
    FileStatus.MODIFIED: "M",
    FileStatus.DELETED: "D",
    FileStatus.RENAMED: "R",
    FileStatus.COPIED: "C",
    FileStatus.BINARY: "B",
}


def _status_pill(status: FileStatus) -> Text:
    return Text(f" {_STATUS_ICON.get(status, '?')} ", style=_STATUS_STYLE.get(status, ""))


def _console(console: Optional[Console]) -> Console:
    return console or Console()


def render_commits(commits: Sequence[Commit], *, console: Optional[Console] = None) -> None:
    """Print a commit table, newest first.

    Repository data goes through Text() so brackets are never read as markup.
    """
    out = _console(console)
    if not commits:
        out.print("[dim]No commits found.[/dim]")
        return

    table = Table(title="Commits", title_style="bold", border_style="dim")
    table.add_column("Hash", style="yellow", no_wrap=True)
    table.add_column("Date", style="green", no_wrap=True)
    table.add_column("Author", style="cyan")
    table.add_column("Message", min_width=20)
    table.add_column("Files", justify="right")

    for c in commits:
        table.add_row(c.hash[:10], c.date, Text(c.author), Text(c.message), str(len(c.files)))
    out.print(table)


def render_commit_detail(commit: Commit, *, console: Optional[Console] = None) -> None:
    out = _console(console)
    out.print(f"[bold yellow]commit {commit.hash}[/bold yellow]")
    out.print(f"[dim]Author:[/dim] {escape(commit.author)} <{escape(commit.author_email)}>")
    out.print(f"[dim]Date:[/dim]   {commit.date}")
    out.print()
    out.print(Text(f"    {commit.message}"))
    out.print()
    for path in commit.files:
        out.print(Text(f"  {path}", style="magenta"))


def render_files(
    commit_hash: str,
    files: Sequence[CommitFile],
    *,
    console: Optional[Console] = None,
) -> None:
    out = _console(console)
    if not files:
        out.print(f"[dim]No changed files for {commit_hash}.[/dim]")
        return

    table = Table(title=f"Files in {commit_hash[:10]}", title_style="bold", border_style="dim")
    table.add_column("Status", justify="center", width=8)
    table.add_column("Path", style="magenta")
    table.add_column("+", justify="right", style="green")
    table.add_column("-", justify="right", style="red")

    for f in files:
        table.add_row(_status_pill(f.status), Text(f.path), str(f.insertions), str(f.deletions))
    out.print(table)

    ins = sum(f.insertions for f in files)
    dels = sum(f.deletions for f in files)
    out.print(f"[dim]{len(files)} file(s), +{ins} -{dels}[/dim]")


def render_blame(
    file_path: str,
    lines: Sequence[BlameLine],
    *,
    console: Optional[Console] = None,
) -> None:
    out = _console(console)
    if not lines:
        out.print(f"[dim]No blame information for {escape(file_path)}.[/dim]")
        return

    table = Table(title=Text(f"Blame: {file_path}"), title_style="bold", border_style="dim", show_edge=False)
    table.add_column("Line", justify="right", style="green")
    table.add_column("Hash", style="yellow", no_wrap=True)
    table.add_column("Author", style="cyan", no_wrap=True)
    table.add_column("Time", style="dim", no_wrap=True)
    table.add_column("Content", overflow="fold")

    for b in lines:
        table.add_row(str(b.line), b.hash[:8], Text(b.author), b.time, Text(b.content))
    out.print(table)


def render_branches(branches: Sequence[str], *, console: Optional[Console] = None) -> None:
    out = _console(console)
    for name in branches:
        out.print(Text(f"  {name}", style="cyan"))


def render_diff(diff: str, *, console: Optional[Console] = None) -> None:
    _console(console).print(Syntax(diff, "diff", theme="ansi_dark", word_wrap=True))

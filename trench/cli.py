"""
CLI for inspecting the trench state store.

Read-mostly maintenance commands: list what is tracked, show captured
output, apply log retention, and poke session values.
"""

import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from trench.config import TrenchConfig
from trench.exceptions import ConfigError, TrenchError
from trench.state.store import StateStore

console = Console()
logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def get_store(ctx: click.Context) -> StateStore:
    """Open the store once per invocation and close it when the command ends."""
    store = ctx.obj.get("store") if ctx.obj else None
    if store is not None:
        return store
    try:
        config = TrenchConfig.from_env()
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)
    if ctx.obj.get("db_path"):
        config = config.model_copy(update={"db_path": ctx.obj["db_path"]})
    store = StateStore.from_config(config)
    ctx.obj["store"] = store
    ctx.call_on_close(store.close)
    return store


def _fail(e: TrenchError):
    console.print(f"[red]Error:[/red] {e}")
    sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--db", "db_path", envvar="TRENCH_DB_PATH", help="Database file (defaults to TRENCH_DB_PATH)")
@click.pass_context
def main(ctx: click.Context, verbose: bool, db_path: Optional[str]):
    """Trench state - inspect repos, worktrees, events and logs."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path


@main.command()
@click.pass_context
def repos(ctx: click.Context):
    """List registered repositories."""
    store = get_store(ctx)
    rows = store.repos.list()
    if not rows:
        console.print("[yellow]No repositories registered[/yellow]")
        return

    table = Table(title="Repositories", show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Path")
    table.add_column("Base")
    for repo in rows:
        table.add_row(str(repo.id), repo.name, repo.path, repo.default_base or "-")
    console.print(table)


@main.command()
@click.argument("repo_path")
@click.option("--tag", "-t", help="Only worktrees carrying this tag")
@click.pass_context
def worktrees(ctx: click.Context, repo_path: str, tag: Optional[str]):
    """List worktrees of the repository at REPO_PATH."""
    store = get_store(ctx)
    try:
        repo = store.repos.lookup_by_path(repo_path)
    except TrenchError as e:
        _fail(e)

    rows = store.worktrees.list_by_tag(repo, tag) if tag else store.worktrees.list(repo)
    if not rows:
        console.print(f"[yellow]No worktrees for {repo.name}[/yellow]")
        return

    table = Table(title=f"Worktrees of {repo.name}", show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Branch")
    table.add_column("Path")
    table.add_column("Kind")
    table.add_column("Tags")
    table.add_column("Last accessed", style="dim")
    for wt in rows:
        table.add_row(
            str(wt.id),
            wt.name,
            wt.branch,
            wt.path,
            "managed" if wt.managed else "adopted",
            ", ".join(store.tags.list(wt.id)),
            (wt.last_accessed or "-")[:19],
        )
    console.print(table)


@main.command()
@click.argument("repo_path")
@click.option("--worktree", "-w", help="Worktree name or branch")
@click.option("--type", "event_type", help="Only events of this type")
@click.option("--limit", "-n", default=50, type=click.IntRange(min=1), help="Maximum results (most recent)")
@click.pass_context
def events(ctx: click.Context, repo_path: str, worktree: Optional[str], event_type: Optional[str], limit: int):
    """List events recorded for the repository at REPO_PATH."""
    store = get_store(ctx)
    try:
        repo = store.repos.lookup_by_path(repo_path)
        wt = store.worktrees.find(repo, worktree) if worktree else None
    except TrenchError as e:
        _fail(e)

    rows = store.events.list(repo, wt, event_type=event_type)[-limit:]
    if not rows:
        console.print("[yellow]No events[/yellow]")
        return

    table = Table(title=f"Events of {repo.name}", show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Type", style="cyan")
    table.add_column("Worktree")
    table.add_column("Created", style="dim")
    table.add_column("Payload")
    for ev in rows:
        payload = ev.payload
        if isinstance(payload, bytes):
            payload = f"<{len(payload)} bytes>"
        table.add_row(
            str(ev.id),
            ev.event_type,
            str(ev.worktree_id) if ev.worktree_id is not None else "-",
            ev.created_at[:19],
            (payload or "")[:60],
        )
    console.print(table)


@main.command()
@click.argument("event_id", type=int)
@click.option("--stream", "-s", help="Only this stream (stdout, stderr, ...)")
@click.option("--numbers", "-n", is_flag=True, help="Prefix lines with their line number")
@click.pass_context
def logs(ctx: click.Context, event_id: int, stream: Optional[str], numbers: bool):
    """Print captured output of EVENT_ID."""
    store = get_store(ctx)
    try:
        store.events.lookup(event_id)
    except TrenchError as e:
        _fail(e)

    for line in store.logs.read(event_id, stream):
        prefix = f"{line.stream}:{line.line_number}: " if numbers else ""
        click.echo(f"{prefix}{line.line}")


@main.command()
@click.argument("worktree_id", type=int)
@click.option("--add", "-a", "to_add", multiple=True, help="Tag to add (repeatable)")
@click.option("--remove", "-r", "to_remove", multiple=True, help="Tag to remove (repeatable)")
@click.pass_context
def tags(ctx: click.Context, worktree_id: int, to_add: tuple, to_remove: tuple):
    """Show the tags of WORKTREE_ID, adding or removing some first."""
    store = get_store(ctx)
    try:
        for name in to_add:
            store.tags.add(worktree_id, name)
        for name in to_remove:
            if not store.tags.remove(worktree_id, name):
                console.print(f"[yellow]Worktree {worktree_id} has no tag {name}[/yellow]")
        names = store.tags.list(worktree_id)
    except TrenchError as e:
        _fail(e)

    if not names:
        console.print(f"[yellow]No tags on worktree {worktree_id}[/yellow]")
        return
    for name in names:
        click.echo(name)


@main.command(name="prune-logs")
@click.option("--days", "-d", type=int, help="Override TRENCH_LOG_RETENTION_DAYS")
@click.pass_context
def prune_logs(ctx: click.Context, days: Optional[int]):
    """Delete log lines of old events (events themselves are kept)."""
    store = get_store(ctx)
    deleted = store.prune_logs(days)
    console.print(f"[green]Pruned {deleted} log line(s)[/green]")


@main.group()
def session():
    """Get or set session values."""
    pass


@session.command(name="get")
@click.argument("key")
@click.pass_context
def session_get(ctx: click.Context, key: str):
    """Print the value stored under KEY."""
    store = get_store(ctx)
    try:
        click.echo(store.session.get(key))
    except TrenchError as e:
        _fail(e)


@session.command(name="set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def session_set(ctx: click.Context, key: str, value: str):
    """Store VALUE under KEY, replacing any previous value."""
    store = get_store(ctx)
    entry = store.session.set(key, value)
    console.print(f"[green]{entry.key}[/green] = {entry.value}")


if __name__ == "__main__":
    main()

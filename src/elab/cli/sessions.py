"""CLI command: elab sessions — list logging sessions on the master and locally."""

from __future__ import annotations

import sys

import click
from rich.console import Console
from rich.table import Table

from elab.errors import ElabError
from elab.historian.store import SessionStore
from elab.session.manager import ElabSession

console = Console(stderr=True)


@click.command()
@click.option("--last", "lastn", type=int, default=None, help="Only the last N sessions.")
@click.option("--local", is_flag=True, help="List session files written by this client.")
@click.pass_context
def sessions(ctx: click.Context, lastn: int | None, local: bool) -> None:
    """List logging sessions recorded by the eLab master."""
    config = ctx.obj["config"]
    out = Console()

    if local:
        store = SessionStore(config.sessions_dir)
        table = Table(title="Local session files")
        table.add_column("Session key", style="cyan", no_wrap=True)
        table.add_column("Device")
        table.add_column("Created")
        table.add_column("File", style="dim")
        for path in store.paths():
            data = store.load(path)
            table.add_row(
                str(data.get("session_key", "")),
                str(data.get("target", "")),
                str(data.get("created_at", "")),
                path.name,
            )
        out.print(table)
        return

    with ElabSession(config=config) as session:
        try:
            result = session.historian.list_sessions(lastn)
        except ElabError as exc:
            console.print(f"[red]Error:[/red] {exc.message}")
            sys.exit(1)

    records = result.get("sessions", result) if isinstance(result, dict) else result
    if not isinstance(records, list) or not records:
        console.print("[dim]No sessions.[/dim]")
        return

    first = records[0]
    columns = list(first) if isinstance(first, dict) else []
    table = Table(title="Logging sessions")
    for col in columns:
        table.add_column(str(col))
    for record in records:
        if isinstance(record, dict):
            table.add_row(*(str(record.get(col, "")) for col in columns))
    out.print(table)

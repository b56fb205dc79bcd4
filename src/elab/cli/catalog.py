"""CLI commands: elab list / elab install <device> — browse the master's catalog."""

from __future__ import annotations

import sys

import click
from rich.console import Console

from elab.cli.display import targets_table
from elab.errors import ElabError
from elab.session.manager import ElabSession

console = Console(stderr=True)


@click.command(name="list")
@click.pass_context
def list_targets(ctx: click.Context) -> None:
    """List devices registered on the eLab master."""
    with ElabSession(config=ctx.obj["config"]) as session:
        try:
            targets = session.list_targets()
        except ElabError as exc:
            console.print(f"[red]Error:[/red] {exc.message}")
            sys.exit(1)
    Console().print(targets_table(targets))


@click.command()
@click.argument("device")
@click.pass_context
def install(ctx: click.Context, device: str) -> None:
    """Download and unpack the library files of DEVICE."""
    config = ctx.obj["config"]
    with ElabSession(config=config) as session:
        try:
            installed = session.install(device)
        except ElabError as exc:
            console.print(f"[red]Error:[/red] {exc.message}")
            sys.exit(1)

    if not installed:
        console.print(
            f"[yellow]Device '{device}' is not registered in the eLab master "
            "database.[/yellow]"
        )
        sys.exit(1)
    console.print(
        f"[green]Installed[/green] {device} into {config.targets_dir / device}"
    )

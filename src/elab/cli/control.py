"""CLI command: elab set <device> TAG=VALUE... — write tags in CONTROL mode."""

from __future__ import annotations

import sys

import click
from rich.console import Console

from elab.cli.monitor import encryption_options
from elab.errors import ElabError
from elab.session.manager import ElabSession
from elab.session.models import Mode

console = Console(stderr=True)


def _parse_assignment(text: str) -> tuple[str, float | str]:
    name, sep, raw = text.partition("=")
    if not sep or not name:
        raise click.BadParameter(f"expected TAG=VALUE, got '{text}'")
    try:
        return name, float(raw)
    except ValueError:
        return name, raw


@click.command(name="set")
@click.argument("device")
@click.argument("assignments", nargs=-1, required=True)
@encryption_options
@click.pass_context
def set_tag(
    ctx: click.Context,
    device: str,
    assignments: tuple[str, ...],
    encryption: str,
    encryption_length: int,
    encryption_depth: str,
) -> None:
    """Write one or more TAG=VALUE pairs to DEVICE."""
    pairs = [_parse_assignment(a) for a in assignments]

    try:
        session = ElabSession(
            device,
            Mode.CONTROL,
            config=ctx.obj["config"],
            encryption=encryption,
            encryption_length=encryption_length,
            encryption_depth=encryption_depth,
        )
    except ElabError as exc:
        console.print(f"[red]Error:[/red] {exc.message}")
        sys.exit(1)

    with session:
        try:
            if len(pairs) == 1:
                ok = session.set_tag(*pairs[0])
            else:
                ok = session.set_tags(pairs)
            session.stop()
        except ElabError as exc:
            console.print(f"[red]Error:[/red] {exc.message}")
            sys.exit(1)

    if not ok:
        sys.exit(1)
    for name, value in pairs:
        console.print(f"  [cyan]{name}[/cyan] ← {value}")

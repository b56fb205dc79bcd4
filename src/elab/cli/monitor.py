"""CLI commands: elab tags / elab watch <device> — observe a device in MONITOR mode."""

from __future__ import annotations

import signal
import sys
import threading

import click
from rich.console import Console
from rich.live import Live

from elab.cli.display import tags_table
from elab.errors import ElabError
from elab.polling.engine import Snapshot
from elab.session.manager import ElabSession
from elab.session.models import Mode

console = Console(stderr=True)

_encryption_options = [
    click.option(
        "--encryption",
        type=click.Choice(["none", "paillier"], case_sensitive=False),
        default="none",
        show_default=True,
        help="Homomorphic encryption of the data channel.",
    ),
    click.option(
        "--encryption-length",
        type=int,
        default=512,
        show_default=True,
        help="Key length in bits (power of two).",
    ),
    click.option(
        "--encryption-depth",
        type=click.Choice(["full", "values"], case_sensitive=False),
        default="full",
        show_default=True,
        help="Encrypt whole snapshots or only tag values.",
    ),
]


def encryption_options(func):
    for option in reversed(_encryption_options):
        func = option(func)
    return func


def _open_monitor(ctx: click.Context, device: str, period: float, **kwargs) -> ElabSession:
    try:
        return ElabSession(
            device,
            Mode.MONITOR,
            polling_period=period,
            config=ctx.obj["config"],
            **kwargs,
        )
    except ElabError as exc:
        console.print(f"[red]Error:[/red] {exc.message}")
        sys.exit(1)


@click.command()
@click.argument("device")
@encryption_options
@click.pass_context
def tags(
    ctx: click.Context,
    device: str,
    encryption: str,
    encryption_length: int,
    encryption_depth: str,
) -> None:
    """Print the current tags of DEVICE once."""
    session = _open_monitor(
        ctx,
        device,
        1.0,
        encryption=encryption,
        encryption_length=encryption_length,
        encryption_depth=encryption_depth,
    )
    with session:
        engine = session.polling
        if engine is None or not engine.tick():
            error = engine.last_error if engine is not None else None
            console.print(f"[red]Error:[/red] {error.message if error else 'poll failed'}")
            sys.exit(1)
        Console().print(tags_table(session.get_all_tags(), title=device))


@click.command()
@click.argument("device")
@click.option(
    "--period",
    type=float,
    default=1.0,
    show_default=True,
    help="Polling period in seconds (0.05 to 10).",
)
@encryption_options
@click.pass_context
def watch(
    ctx: click.Context,
    device: str,
    period: float,
    encryption: str,
    encryption_length: int,
    encryption_depth: str,
) -> None:
    """Continuously display the tags of DEVICE."""
    live = Live(tags_table({}, title=device), console=Console())

    def on_update(snapshot: Snapshot) -> None:
        live.update(tags_table(snapshot.tags, title=f"{device} #{snapshot.sequence}"))

    session = _open_monitor(
        ctx,
        device,
        period,
        encryption=encryption,
        encryption_length=encryption_length,
        encryption_depth=encryption_depth,
        on_update=on_update,
    )
    done = threading.Event()

    def _signal_handler(signum: int, frame: object) -> None:
        done.set()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    console.print(f"[bold]eLab[/bold] watching [cyan]{device}[/cyan] every {period}s")
    console.print("  Press Ctrl+C to stop.\n")

    with session, live:
        session.start_polling()
        while not done.wait(timeout=0.5):
            pass

    console.print("\n[dim]Stopped.[/dim]")

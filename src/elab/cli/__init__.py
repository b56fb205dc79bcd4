"""CLI entry point — Click group with global options."""

from __future__ import annotations

import logging

import click

from elab import __version__
from elab.config import ElabConfig


@click.group()
@click.version_option(version=__version__, prog_name="elab")
@click.option(
    "--address",
    "-a",
    envvar="ELAB_ADDRESS",
    help="HTTP address of the eLab master.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def main(ctx: click.Context, address: str | None, verbose: bool) -> None:
    """eLab — client for eLab telemetry and control masters."""
    config = ElabConfig.load()
    if address:
        config.address = address.rstrip("/")
    config.verbose = verbose

    ctx.ensure_object(dict)
    ctx.obj["config"] = config

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _register_commands() -> None:
    from elab.cli.catalog import install, list_targets  # noqa: F811
    from elab.cli.control import set_tag  # noqa: F811
    from elab.cli.monitor import tags, watch  # noqa: F811
    from elab.cli.sessions import sessions  # noqa: F811

    main.add_command(list_targets)
    main.add_command(install)
    main.add_command(tags)
    main.add_command(watch)
    main.add_command(set_tag)
    main.add_command(sessions)


_register_commands()

"""Rich renderables shared by the CLI commands."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from rich.table import Table

from elab.catalog import Target


def targets_table(targets: Iterable[Target]) -> Table:
    table = Table(title="Registered devices")
    table.add_column("Device", style="cyan", no_wrap=True)
    table.add_column("Description")
    for target in targets:
        table.add_row(target.name, target.description)
    return table


def tags_table(tags: Mapping[str, Any], title: str = "") -> Table:
    table = Table(title=title or None)
    table.add_column("Tag", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")
    table.add_column("Metadata", style="dim")
    for name, record in tags.items():
        if isinstance(record, Mapping):
            value = record.get("value", "")
            meta = ", ".join(f"{k}={v}" for k, v in record.items() if k != "value")
        else:
            value, meta = record, ""
        table.add_row(name, str(value), meta)
    return table

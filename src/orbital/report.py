"""Developer report of state entries and the telemetry queue."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from .context import CoordinationContext


def _format_value(value: Any) -> str:
    try:
        text = json.dumps(value, ensure_ascii=False, sort_keys=True, default=repr)
    except (TypeError, ValueError):
        text = repr(value)
    return escape(text)


def build_state_table(context: CoordinationContext) -> Table:
    table = Table(title="State")
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_column("Subscribers", justify="right")
    for key, value in sorted(context.state.as_dict().items()):
        table.add_row(
            escape(key), _format_value(value), str(context.state.subscriber_count(key))
        )
    return table


def build_telemetry_table(context: CoordinationContext) -> Table:
    records = context.telemetry.snapshot()
    table = Table(
        title=f"Telemetry ({len(records)}/{context.telemetry.capacity})"
    )
    table.add_column("#", justify="right")
    table.add_column("Type", style="bold")
    table.add_column("Payload")
    table.add_column("Timestamp")
    table.add_column("Context")
    for index, record in enumerate(records, start=1):
        table.add_row(
            str(index),
            escape(record.type),
            _format_value(record.payload),
            record.timestamp.isoformat(timespec="milliseconds"),
            escape(record.context),
        )
    return table


def render_report(
    context: CoordinationContext, console: Console | None = None
) -> None:
    """Print the state and telemetry tables."""
    console = console or Console()
    console.print(build_state_table(context))
    console.print(build_telemetry_table(context))

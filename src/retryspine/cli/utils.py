"""
CLI utility helpers: output formatting.
"""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from retryspine.core.events import Event
from retryspine.execution.circuit_breaker import CircuitSnapshot
from retryspine.execution.statistics import StatisticsSnapshot

console = Console()
err_console = Console(stderr=True)

_EVENT_STYLES = {
    "attempt.started": "cyan",
    "attempt.succeeded": "green",
    "attempt.failed": "yellow",
    "retry.scheduled": "magenta",
    "circuit.opened": "bold red",
    "circuit.half_opened": "yellow",
    "circuit.closed": "green",
    "request.succeeded": "bold green",
    "request.failed": "bold red",
    "request.rejected": "red",
    "fallback.activated": "blue",
}


# ── Output helpers ───────────────────────────────────────────────────────


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_event(event: Event) -> None:
    """Render one domain event as a single log line."""
    style = _EVENT_STYLES.get(event.event_type, "white")
    fields = escape(" ".join(f"{k}={v}" for k, v in event.payload.items()))
    stamp = event.timestamp.strftime("%H:%M:%S")
    console.print(f"[dim]{stamp}[/dim] [{style}]{event.event_type}[/{style}] {fields}", highlight=False)


def print_statistics(stats: StatisticsSnapshot, *, title: str = "Statistics") -> None:
    """Render a statistics snapshot as a Rich table."""
    table = Table(title=title, show_lines=False, pad_edge=False)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Total requests", str(stats.total_requests))
    table.add_row("Successful", str(stats.successful_requests))
    table.add_row("Failed", str(stats.failed_requests))
    table.add_row("Rejected by circuit", str(stats.rejected_requests))
    table.add_row("Cancelled", str(stats.cancelled_requests))
    table.add_row("Total attempts", str(stats.total_attempts))
    table.add_row("Total retries", str(stats.total_retries))
    table.add_row("Success rate", f"{stats.success_rate * 100:.1f}%")
    table.add_row("Average latency", f"{stats.average_latency:.3f}s")
    console.print(table)

    if stats.error_type_counts:
        errors = Table(title="Errors by kind", pad_edge=False)
        errors.add_column("Kind")
        errors.add_column("Count", justify="right")
        for kind, count in sorted(stats.error_type_counts.items(), key=lambda kv: -kv[1]):
            errors.add_row(kind, str(count))
        console.print(errors)


def print_circuit(snapshot: CircuitSnapshot) -> None:
    color = {"closed": "green", "half_open": "yellow"}.get(snapshot.state.value, "red")
    line = (
        f"[bold]Circuit[/bold] {snapshot.name}: [{color}]{snapshot.state.value.upper()}[/{color}]"
        f" ({snapshot.consecutive_failures}/{snapshot.failure_threshold} failures)"
    )
    if snapshot.time_until_half_open is not None:
        line += f", half-open in {snapshot.time_until_half_open:.1f}s"
    console.print(line)


def print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")

"""
CLI: ``retryspine scenario``: run the simulated failure scenarios.
"""

from __future__ import annotations

import asyncio
import dataclasses
from typing import Any

import typer
from rich.markup import escape

from retryspine.cli.utils import (
    console,
    err_console,
    print_circuit,
    print_event,
    print_json,
    print_statistics,
)
from retryspine.core.result import Result
from retryspine.core.settings import get_settings
from retryspine.execution.executor import RetryExecutor
from retryspine.execution.policy import RetryPolicy
from retryspine.execution.simulator import ScenarioKind, SimulatedEndpoint, fallback_payload

app = typer.Typer(no_args_is_help=True)


async def _no_sleep(delay: float) -> None:
    return None


def _build_policy(**overrides: Any) -> RetryPolicy:
    """Settings-derived policy with the non-None CLI overrides applied."""
    policy = get_settings().to_policy()
    changes = {k: v for k, v in overrides.items() if v is not None}
    try:
        return dataclasses.replace(policy, **changes)
    except ValueError as e:
        err_console.print(f"[bold red]Error[/bold red]: {e}")
        raise typer.Exit(code=2) from e


def _build_executor(
    name: str,
    *,
    fast: bool,
    failure_threshold: int | None = None,
    open_duration: float | None = None,
) -> RetryExecutor:
    settings = get_settings()
    return RetryExecutor(
        name,
        failure_threshold=failure_threshold or settings.circuit_threshold,
        open_duration=settings.circuit_open_duration if open_duration is None else open_duration,
        response_time_window=settings.response_time_window,
        sleep=_no_sleep if fast else asyncio.sleep,
    )


def _build_endpoint(
    kind: ScenarioKind,
    *,
    fast: bool,
    seed: int | None,
    failure_rate: float | None = None,
) -> SimulatedEndpoint:
    return SimulatedEndpoint(
        kind,
        seed=seed,
        latency_range=(0.0, 0.0) if fast else (0.5, 2.5),
        failure_rate=failure_rate,
    )


def _report(executor: RetryExecutor, result: Result[Any], *, as_json: bool) -> None:
    stats = executor.statistics_snapshot()
    circuit = executor.circuit_snapshot()

    if as_json:
        print_json({
            **result.to_dict(),
            "statistics": stats.to_dict(),
            "circuit": circuit.to_dict(),
        })
        return

    console.print()
    if result.is_ok():
        console.print(f"[bold green]✓ Success[/bold green]: {escape(str(result.value))}")
    else:
        console.print(f"[bold red]✗ Failed[/bold red]: {escape(str(result.error))}")
    print_circuit(circuit)
    print_statistics(stats)


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("run")
def run_scenario(
    kind: ScenarioKind = typer.Argument(..., help="Scenario to simulate."),
    max_retries: int | None = typer.Option(None, "--max-retries", "-r", min=0, help="Retries after the first attempt."),
    base_delay: float | None = typer.Option(None, "--base-delay", "-d", min=0.0, help="Base backoff delay in seconds."),
    backoff: str | None = typer.Option(None, "--backoff", "-b", help="exponential, linear or fixed."),
    timeout: float | None = typer.Option(None, "--timeout", "-t", help="Per-attempt timeout in seconds."),
    seed: int | None = typer.Option(None, "--seed", help="Seed for reproducible runs."),
    fast: bool = typer.Option(False, "--fast", help="Skip simulated latency and backoff waits."),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Run one scenario through the retry executor."""
    policy = _build_policy(
        max_retries=max_retries,
        base_delay=base_delay,
        backoff_kind=backoff,
        request_timeout=timeout,
    )
    executor = _build_executor(kind.value, fast=fast)
    endpoint = _build_endpoint(kind, fast=fast, seed=seed)

    async def _run() -> Result[Any]:
        if not json_out:
            await executor.event_bus.subscribe("*", print_event)
        return await executor.execute(endpoint, policy)

    if not json_out:
        console.print(
            f"[bold]Scenario[/bold] {kind.value}: up to {policy.max_attempts} attempts,"
            f" {policy.backoff_kind.value} backoff from {policy.base_delay}s"
        )
    result = asyncio.run(_run())
    _report(executor, result, as_json=json_out)
    if result.is_err():
        raise typer.Exit(code=1)


@app.command("circuit-demo")
def circuit_demo(
    threshold: int | None = typer.Option(None, "--threshold", min=1, help="Failures that open the circuit."),
    open_duration: float | None = typer.Option(None, "--open-duration", min=0.0, help="Seconds the circuit stays open."),
    requests: int | None = typer.Option(None, "--requests", "-n", min=1, help="Requests to send (default: threshold + 1)."),
    fast: bool = typer.Option(False, "--fast", help="Skip simulated latency."),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Trip the circuit breaker with failing calls, then show the fast-fail."""
    executor = _build_executor(
        "circuit-demo",
        fast=fast,
        failure_threshold=threshold,
        open_duration=open_duration,
    )
    endpoint = _build_endpoint(ScenarioKind.SERVER_ERROR, fast=fast, seed=None, failure_rate=1.0)
    total = requests or executor.breaker.failure_threshold + 1

    async def _run() -> Result[Any]:
        if not json_out:
            await executor.event_bus.subscribe("*", print_event)
        policy = RetryPolicy.no_retry()
        result = await executor.execute(endpoint, policy)
        for _ in range(total - 1):
            result = await executor.execute(endpoint, policy)
        return result

    result = asyncio.run(_run())
    _report(executor, result, as_json=json_out)


@app.command("fallback")
def fallback_demo(
    failure_rate: float | None = typer.Option(None, "--failure-rate", min=0.0, max=1.0, help="Primary endpoint failure rate."),
    seed: int | None = typer.Option(None, "--seed"),
    fast: bool = typer.Option(False, "--fast", help="Skip simulated latency and backoff waits."),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Call a failing primary endpoint and fall back to static data."""
    policy = _build_policy()
    executor = _build_executor("fallback-demo", fast=fast)
    endpoint = _build_endpoint(ScenarioKind.SERVER_ERROR, fast=fast, seed=seed, failure_rate=failure_rate)

    async def _run() -> Result[Any]:
        if not json_out:
            await executor.event_bus.subscribe("*", print_event)
        return await executor.execute_with_fallback(endpoint, fallback_payload, policy)

    result = asyncio.run(_run())
    _report(executor, result, as_json=json_out)

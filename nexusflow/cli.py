#!/usr/bin/env python3
"""NexusFlow Trade Network CLI.

Command-line interface for running procurement workflows over the agent
network, inspecting the agent directory and checking configuration.
"""

import asyncio
import json
import logging
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config import NexusFlowSettings, get_settings
from .core.network import build_directory, load_network
from .core.orchestrator import OrchestrationEngine
from .core.scheduler import AsyncioScheduler
from .schemas.unified_models import (
    AgentRole,
    DirectoryQuery,
    EngineSnapshot,
    LogEntry,
    LogSeverity,
    ProcurementIntent,
    RunOutcome,
)
from .services.diagnostics import run_directory_diagnostics


# Initialize CLI and console
app = typer.Typer(help="NexusFlow trade network CLI")
console = Console()
err_console = Console(stderr=True)

SEVERITY_STYLES = {
    LogSeverity.INFO: "white",
    LogSeverity.SUCCESS: "green",
    LogSeverity.ERROR: "bold red",
    LogSeverity.WARNING: "yellow",
    LogSeverity.QUERY: "cyan",
    LogSeverity.ACTION: "magenta",
}

OUTCOME_STYLES = {
    RunOutcome.COMPLETED: "bold green",
    RunOutcome.DEGRADED: "bold yellow",
}


def _settings_for(
    network: Path | None = None,
    seed: int | None = None,
    fast: bool = False,
    concurrent: bool | None = None,
) -> NexusFlowSettings:
    """Global settings with command-line overrides applied."""
    settings = get_settings()

    negotiation_updates = {}
    if seed is not None:
        negotiation_updates["seed"] = seed
    if concurrent is not None:
        negotiation_updates["concurrent"] = concurrent

    updates = {
        "negotiation": settings.negotiation.model_copy(update=negotiation_updates),
    }
    if fast:
        updates["pacing"] = settings.pacing.model_copy(update={"scale": 0.0})
    if network is not None:
        updates["network_file"] = network

    return settings.model_copy(update=updates)


def _print_entry(entry: LogEntry) -> None:
    style = SEVERITY_STYLES[entry.severity]
    console.print(
        f"[dim]{entry.timestamp:%H:%M:%S}[/dim] "
        f"[bold blue]{entry.source:>12}[/bold blue] "
        f"[{style}]{entry.message}[/{style}]"
    )


def _node_table(snapshot: EngineSnapshot) -> Table:
    table = Table(title="Agent Status", show_header=True, header_style="bold magenta")
    table.add_column("Node", style="cyan")
    table.add_column("Label")
    table.add_column("Role", style="yellow")
    table.add_column("Status")

    for node in snapshot.nodes:
        table.add_row(node.id, node.label, node.role.value, node.status.value.upper())
    return table


@app.command()
def run(
    item: str | None = typer.Option(None, "--item", "-i", help="Item to procure"),
    qty: int | None = typer.Option(None, "--qty", "-q", min=1, help="Quantity"),
    capability: str | None = typer.Option(
        None, "--capability", "-c", help="Capability suppliers must offer"
    ),
    seed: int | None = typer.Option(None, "--seed", help="Seed for price jitter"),
    fast: bool = typer.Option(False, "--fast", help="Skip pacing delays"),
    concurrent: bool | None = typer.Option(
        None, "--concurrent/--sequential", help="Quote collection mode"
    ),
    network: Path | None = typer.Option(
        None, "--network", "-n", help="YAML network definition"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print final state as JSON"),
):
    """Run one procurement workflow end to end."""
    settings = _settings_for(network, seed, fast, concurrent)

    try:
        engine = OrchestrationEngine.from_settings(
            settings, scheduler=AsyncioScheduler(scale=settings.pacing.scale)
        )
    except ValueError as e:
        err_console.print(f"[bold red]Error building network: {e}[/bold red]")
        raise typer.Exit(code=2) from e

    intent = engine.default_intent()
    overrides = {
        key: value
        for key, value in {"item": item, "qty": qty, "capability": capability}.items()
        if value is not None
    }
    try:
        intent = ProcurementIntent.model_validate({**intent.model_dump(), **overrides})
    except ValidationError as e:
        message = escape(str(e))
        err_console.print(f"[bold red]Invalid procurement intent: {message}[/bold red]")
        raise typer.Exit(code=2) from e

    if not as_json:
        printed: set[int] = set()

        def stream(snapshot: EngineSnapshot) -> None:
            for entry in reversed(snapshot.logs):
                if entry.id not in printed:
                    printed.add(entry.id)
                    _print_entry(entry)

        engine.subscribe(stream)

    result = asyncio.run(engine.start(intent))
    snapshot = engine.snapshot()

    if as_json:
        payload = {
            "result": result.model_dump(mode="json"),
            "snapshot": snapshot.model_dump(mode="json", by_alias=True),
        }
        typer.echo(json.dumps(payload, indent=2))
    else:
        console.print(_node_table(snapshot))
        style = OUTCOME_STYLES.get(result.outcome, "bold red")
        lines = [f"[{style}]Outcome: {result.outcome.value.upper()}[/{style}]"]
        if result.winner_id:
            lines.append(f"Contract: {result.winner_id}")
        if result.logistics_id:
            lines.append(f"Freight: {result.logistics_id}")
        lines.append(f"Proposals: {len(result.proposals)}")
        console.print(Panel.fit("\n".join(lines), title="Procurement Run"))

    if result.outcome is not RunOutcome.COMPLETED:
        raise typer.Exit(code=1)


@app.command()
def agents(
    role: AgentRole | None = typer.Option(None, "--role", "-r", help="Filter by role"),
    capability: str | None = typer.Option(
        None, "--capability", "-c", help="Filter by capability"
    ),
    jurisdiction: str | None = typer.Option(
        None, "--jurisdiction", "-j", help="Filter by jurisdiction"
    ),
    network: Path | None = typer.Option(
        None, "--network", "-n", help="YAML network definition"
    ),
):
    """List directory records matching the given filters."""
    settings = _settings_for(network)
    try:
        directory = build_directory(load_network(settings.network_file))
    except ValueError as e:
        err_console.print(f"[bold red]Error loading network: {e}[/bold red]")
        raise typer.Exit(code=2) from e

    query = DirectoryQuery(role=role, capability=capability, jurisdiction=jurisdiction)
    records = directory.find(query)

    table = Table(
        title=f"Agents ({len(records)}/{directory.count()})",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("DID", style="cyan")
    table.add_column("Role", style="yellow")
    table.add_column("Jurisdiction")
    table.add_column("Capabilities", style="green")
    table.add_column("Endpoint", style="dim")

    for record in records:
        table.add_row(
            record.did,
            record.role.value,
            record.context.jurisdiction,
            ", ".join(record.capabilities),
            record.endpoint,
        )

    console.print(table)


@app.command()
def diagnose(
    network: Path | None = typer.Option(
        None, "--network", "-n", help="YAML network definition"
    ),
):
    """Run the directory self-test against the network definition."""
    settings = _settings_for(network)
    try:
        nodes = load_network(settings.network_file)
    except ValueError as e:
        err_console.print(f"[bold red]Error loading network: {e}[/bold red]")
        raise typer.Exit(code=2) from e

    report = run_directory_diagnostics([node.record for node in nodes])

    table = Table(
        title="Directory Diagnostics", show_header=True, header_style="bold blue"
    )
    table.add_column("Check", style="cyan")
    table.add_column("Result")
    table.add_column("Detail", style="dim")
    for check in report.checks:
        result = "[green]PASS[/green]" if check.passed else "[red]FAIL[/red]"
        table.add_row(check.name, result, check.detail)
    console.print(table)

    if not report.passed:
        console.print(f"[bold red]{len(report.failures)} check(s) failed[/bold red]")
        raise typer.Exit(code=1)
    console.print("[bold green]All directory checks passed[/bold green]")


@app.command()
def config():
    """Show the effective configuration."""
    settings = get_settings()
    typer.echo(json.dumps(settings.describe(), indent=2))


@app.callback()
def main(
    log_level: str | None = typer.Option(
        None, "--log-level", "-l", help="Logging level (default from settings)"
    ),
):
    """NexusFlow trade network CLI.

    Discover agents by capability and run procurement workflows across the
    buyer, supplier and logistics network.
    """
    level = (log_level or get_settings().log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


if __name__ == "__main__":
    app()

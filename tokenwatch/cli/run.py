"""Setup and engine commands for TokenWatch CLI.

Handles writing the config template, seeding demo data and running the
engine either continuously or for a single pass.
"""

import asyncio

import click
from rich.panel import Panel
from rich.table import Table

from tokenwatch.cli.main import console, error_panel, get_data_store, get_settings


@click.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing config file.")
@click.pass_context
def init(ctx: click.Context, force: bool) -> None:
    """Write the config template and create the database."""
    from tokenwatch.config import DEFAULT_CONFIG_PATH, write_template

    config_path = ctx.find_root().obj.get("config_path") or DEFAULT_CONFIG_PATH

    try:
        if config_path.exists() and not force:
            console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        else:
            write_template(config_path)
            console.print(f"[green]✓ Wrote config to {config_path}[/green]")

        store = get_data_store(ctx)
        console.print(f"[green]✓ Database ready at {store.db_path}[/green]")
    except OSError as e:
        error_panel("Failed to initialize TokenWatch:", e)


@click.command("seed")
@click.option("--points", type=int, default=60, show_default=True, help="Price samples per token.")
@click.option("--seed", "random_seed", type=int, default=None, help="Random seed for reproducible data.")
@click.pass_context
def seed(ctx: click.Context, points: int, random_seed: int) -> None:
    """Fill the database with demo tokens, samples and KOLs."""
    from tokenwatch.sources.mock import MockSampleSource

    try:
        store = get_data_store(ctx)
        counts = MockSampleSource(store, seed=random_seed).seed(points=points)
    except Exception as e:
        error_panel("Failed to seed demo data:", e)

    lines = "\n".join(f"{name.replace('_', ' ').title():<18} {count}" for name, count in counts.items())
    console.print(Panel(
        f"[bold green]Demo Data Seeded[/bold green]\n\n{lines}",
        title="[bold]Seed[/bold]",
        border_style="green",
    ))


@click.command("run")
@click.option("--once", is_flag=True, help="Run every engine tick once and exit.")
@click.pass_context
def run(ctx: click.Context, once: bool) -> None:
    """Start the alert, sentiment, KOL and analysis services.

    \b
    Examples:
      tokenwatch run           # Run until Ctrl+C
      tokenwatch run --once    # Single pass, print a summary
    """
    from tokenwatch.broadcast import ConsoleSink, FanoutSink, MemorySink
    from tokenwatch.engine.service import TokenWatchEngine

    settings = get_settings(ctx)
    tally = MemorySink()
    sink = FanoutSink([ConsoleSink(console), tally]) if once else ConsoleSink(console)

    try:
        engine = TokenWatchEngine(settings, data_store=get_data_store(ctx), sink=sink)
    except Exception as e:
        error_panel("Failed to start engine:", e)

    if once:
        results = engine.run_once()
        table = Table(title="Engine Pass", show_header=True, header_style="bold cyan")
        table.add_column("Service")
        table.add_column("Produced", justify="right")
        table.add_row("Alerts", str(len(results["alerts"])))
        table.add_row("Sentiment analyses", str(len(results["analyses"])))
        table.add_row("KOL signals", str(len(results["signals"])))
        table.add_row("Token analyses", str(len(results["token_analyses"])))
        console.print(table)

        counts = tally.counts()
        if counts:
            events = Table(title="Broadcast Events", show_header=True, header_style="bold cyan")
            events.add_column("Event")
            events.add_column("Count", justify="right")
            for name, count in sorted(counts.items()):
                events.add_row(name, str(count))
            console.print(events)
        return

    engine_settings = settings.engine
    console.print(Panel(
        f"Alerts every {engine_settings.alert_interval_seconds:g}s\n"
        f"Sentiment every {engine_settings.sentiment_interval_seconds:g}s\n"
        f"KOL tracking every {engine_settings.kol_interval_seconds:g}s\n"
        f"Token analysis every {engine_settings.analysis_interval_seconds:g}s\n\n"
        "[dim]Press Ctrl+C to stop[/dim]",
        title="[bold]TokenWatch Engine[/bold]",
        border_style="cyan",
    ))
    try:
        asyncio.run(engine.serve())
    except KeyboardInterrupt:
        console.print("[dim]Engine stopped[/dim]")

"""Alert inbox commands for TokenWatch CLI.

Lists alerts produced by the engine and marks them read.
"""

from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from tokenwatch.cli.main import console, error_panel, get_data_store

SEVERITY_STYLES = {
    "low": "dim",
    "medium": "yellow",
    "high": "red",
    "critical": "bold red",
}


@click.command("alerts")
@click.option("--unread", is_flag=True, help="Only show unread alerts.")
@click.option("--read", "read_id", type=int, default=None, help="Mark alert with specified ID as read.")
@click.option("--config", "config_id", type=int, default=None, help="Only alerts of this config.")
@click.option("--limit", type=int, default=50, show_default=True)
@click.pass_context
def alerts(
    ctx: click.Context,
    unread: bool,
    read_id: Optional[int],
    config_id: Optional[int],
    limit: int,
) -> None:
    """Display produced alerts.

    \b
    Examples:
      tokenwatch alerts              # Latest alerts
      tokenwatch alerts --unread     # Unread only
      tokenwatch alerts --read 5     # Mark alert 5 as read
    """
    store = get_data_store(ctx)

    if read_id is not None:
        alert = store.get_alert_by_id(read_id)
        if alert is None:
            error_panel(f"Alert with ID {read_id} not found")
        store.mark_alert_read(read_id)
        console.print(f"[green]✓ Marked alert {read_id} as read ({alert.title})[/green]")
        return

    rows = store.get_alerts(unread_only=unread, config_id=config_id, limit=limit)

    if not rows:
        console.print(Panel(
            "[dim]No alerts yet. Use 'tokenwatch run' to start the engine.[/dim]",
            title="[bold]Alerts[/bold]",
            border_style="dim",
        ))
        return

    table = Table(title="Alerts", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", width=6)
    table.add_column("Time", style="dim")
    table.add_column("Type")
    table.add_column("Title", style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Severity")
    table.add_column("Read", justify="center")

    for alert in rows:
        style = SEVERITY_STYLES.get(alert.severity, "")
        table.add_row(
            str(alert.id),
            alert.timestamp.strftime("%Y-%m-%d %H:%M"),
            alert.type,
            alert.title,
            f"{alert.score:.0f}",
            f"[{style}]{alert.severity}[/{style}]",
            "[dim]✓[/dim]" if alert.is_read else "[green]●[/green]",
        )

    console.print(table)
    console.print(f"\n[dim]Total: {len(rows)} alerts[/dim]")

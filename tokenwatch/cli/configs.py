"""Alert config management commands for TokenWatch CLI.

Handles creating, listing, inspecting, toggling and deleting alert
configs. Conditions are written as ``TYPE OP VALUE [TIMEFRAME]``.
"""

import re
from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from tokenwatch.cli.main import console, error_panel, get_data_store

OPERATORS = {
    ">": "greater_than",
    "<": "less_than",
    "=": "equals",
    "==": "equals",
    "%": "percentage_change",
    "between": "between",
}

CONDITION_PATTERN = re.compile(
    r"^\s*(?P<type>[a-z_]+)\s+(?P<op>==|>|<|=|%|between)\s+"
    r"(?P<value>-?[\d.]+(?:\.\.-?[\d.]+)?)"
    r"(?:\s+(?P<timeframe>1m|5m|15m|1h|4h|24h))?\s*$",
    re.IGNORECASE,
)


def parse_condition(text: str, token_address: Optional[str] = None) -> dict:
    """Parse a condition string.

    Args:
        text: e.g. "price_change > 50 1h" or "price_change between 10..20 5m".
        token_address: Optional token to scope the condition to.

    Returns:
        Condition dictionary ready for validation.

    Raises:
        click.BadParameter: If the string does not match the syntax.
    """
    match = CONDITION_PATTERN.match(text)
    if match is None:
        raise click.BadParameter(f"cannot parse condition '{text}'", param_hint="--condition")

    raw_value = match.group("value")
    try:
        if ".." in raw_value:
            low, high = raw_value.split("..")
            value = (float(low), float(high))
        else:
            value = float(raw_value)
    except ValueError:
        raise click.BadParameter(f"invalid value in '{text}'", param_hint="--condition")

    condition = {
        "type": match.group("type").lower(),
        "operator": OPERATORS[match.group("op").lower()],
        "value": value,
        "timeframe": match.group("timeframe") or "1h",
    }
    if token_address:
        condition["token_address"] = token_address
    return condition


def _get_repository(ctx: click.Context):
    from tokenwatch.engine.dispatcher import ConfigRepository

    return ConfigRepository(get_data_store(ctx))


@click.group("config")
def config() -> None:
    """Alert config management commands.

    \b
    Examples:
      tokenwatch config create "Pump" -c "price_change > 50 1h" --priority high
      tokenwatch config list
      tokenwatch config disable 3
    """
    pass


@config.command("create")
@click.argument("name")
@click.option("-c", "--condition", "conditions", multiple=True, required=True,
              help='Condition, e.g. "price_change > 50 1h". Repeatable.')
@click.option("-a", "--action", "actions", multiple=True,
              type=click.Choice(["notification", "email", "webhook", "auto_trade"]),
              help="Action to run when triggered. Repeatable. Default: notification.")
@click.option("--token", default=None, help="Scope conditions to one token address.")
@click.option("--owner", default="local", show_default=True, help="Owner ID.")
@click.option("--description", default="", help="Description.")
@click.option("--cooldown", type=int, default=30, show_default=True, help="Cooldown in minutes.")
@click.option("--priority", type=click.Choice(["low", "medium", "high", "critical"]),
              default="medium", show_default=True)
@click.option("--tag", "tags", multiple=True, help="Tag. Repeatable.")
@click.pass_context
def create(
    ctx: click.Context,
    name: str,
    conditions: tuple[str, ...],
    actions: tuple[str, ...],
    token: Optional[str],
    owner: str,
    description: str,
    cooldown: int,
    priority: str,
    tags: tuple[str, ...],
) -> None:
    """Create an alert config named NAME."""
    from tokenwatch.errors import TokenWatchError

    data = {
        "owner_id": owner,
        "name": name,
        "description": description,
        "conditions": [parse_condition(text, token) for text in conditions],
        "actions": [{"type": action} for action in (actions or ("notification",))],
        "cooldown_minutes": cooldown,
        "priority": priority,
        "tags": list(tags),
    }

    try:
        created = _get_repository(ctx).create(data)
    except TokenWatchError as e:
        error_panel("Failed to create alert config:", e)

    console.print(Panel(
        f"[bold green]Alert Config Created[/bold green]\n\n"
        f"ID:         {created.id}\n"
        f"Name:       {created.name}\n"
        f"Conditions: {len(created.conditions)}\n"
        f"Cooldown:   {created.cooldown_minutes} min\n"
        f"Priority:   {created.priority}",
        title="[bold]New Alert Config[/bold]",
        border_style="green",
    ))


@config.command("list")
@click.option("--owner", default=None, help="Only configs of this owner.")
@click.pass_context
def list_configs(ctx: click.Context, owner: Optional[str]) -> None:
    """List alert configs."""
    configs = _get_repository(ctx).list(owner_id=owner)

    if not configs:
        console.print(Panel(
            "[dim]No alert configs. Use 'tokenwatch config create' to add one.[/dim]",
            title="[bold]Alert Configs[/bold]",
            border_style="dim",
        ))
        return

    table = Table(title="Alert Configs", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", width=6)
    table.add_column("Name", style="bold")
    table.add_column("Owner")
    table.add_column("Conditions")
    table.add_column("Priority")
    table.add_column("Cooldown", justify="right")
    table.add_column("Last Triggered", style="dim")
    table.add_column("Status", justify="center")

    for cfg in configs:
        status = "[green]●[/green]" if cfg.is_active else "[dim]○[/dim]"
        last = cfg.last_triggered_at.strftime("%Y-%m-%d %H:%M") if cfg.last_triggered_at else "-"
        table.add_row(
            str(cfg.id),
            cfg.name,
            cfg.owner_id,
            ", ".join(c.type for c in cfg.conditions),
            cfg.priority,
            f"{cfg.cooldown_minutes}m",
            last,
            status,
        )

    console.print(table)
    console.print(f"\n[dim]Total: {len(configs)} configs[/dim]")


@config.command("show")
@click.argument("config_id", type=int)
@click.pass_context
def show(ctx: click.Context, config_id: int) -> None:
    """Show one alert config in detail."""
    from tokenwatch.engine.dispatcher import describe_condition

    cfg = _get_repository(ctx).get(config_id)
    if cfg is None:
        error_panel(f"Alert config {config_id} not found")

    conditions = "\n".join(f"  • {describe_condition(c)}" for c in cfg.conditions)
    actions = "\n".join(
        f"  • {a.type}{'' if a.enabled else ' (disabled)'}" for a in cfg.actions
    ) or "  [dim]none[/dim]"
    console.print(Panel(
        f"[bold]{cfg.name}[/bold]  [dim]{cfg.description}[/dim]\n\n"
        f"Owner:     {cfg.owner_id}\n"
        f"Active:    {'yes' if cfg.is_active else 'no'}\n"
        f"Priority:  {cfg.priority}\n"
        f"Cooldown:  {cfg.cooldown_minutes} min\n"
        f"Tags:      {', '.join(cfg.tags) or '-'}\n\n"
        f"[bold]Conditions[/bold]\n{conditions}\n\n"
        f"[bold]Actions[/bold]\n{actions}",
        title=f"[bold]Alert Config {cfg.id}[/bold]",
        border_style="cyan",
    ))


@config.command("delete")
@click.argument("config_id", type=int)
@click.pass_context
def delete(ctx: click.Context, config_id: int) -> None:
    """Delete an alert config."""
    from tokenwatch.errors import TokenWatchError

    try:
        _get_repository(ctx).delete(config_id)
    except TokenWatchError as e:
        error_panel("Failed to delete alert config:", e)
    console.print(f"[green]✓ Deleted alert config {config_id}[/green]")


def _set_active(ctx: click.Context, config_id: int, is_active: bool) -> None:
    from tokenwatch.errors import TokenWatchError

    try:
        _get_repository(ctx).update(config_id, is_active=is_active)
    except TokenWatchError as e:
        error_panel("Failed to update alert config:", e)
    state = "enabled" if is_active else "disabled"
    console.print(f"[green]✓ Alert config {config_id} {state}[/green]")


@config.command("enable")
@click.argument("config_id", type=int)
@click.pass_context
def enable(ctx: click.Context, config_id: int) -> None:
    """Enable an alert config."""
    _set_active(ctx, config_id, True)


@config.command("disable")
@click.argument("config_id", type=int)
@click.pass_context
def disable(ctx: click.Context, config_id: int) -> None:
    """Disable an alert config."""
    _set_active(ctx, config_id, False)

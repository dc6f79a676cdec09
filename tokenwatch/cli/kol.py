"""KOL tracking commands for TokenWatch CLI.

Handles adding monitored wallets, listing them, recording their trades and
showing the resulting signals.
"""

from datetime import datetime
from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from tokenwatch.cli.main import console, error_panel, get_data_store, get_settings


def _get_tracker(ctx: click.Context):
    """Build a tracker wired to the configured store."""
    from tokenwatch.broadcast import ConsoleSink
    from tokenwatch.engine.kol import KOLSignalScorer, KOLTracker
    from tokenwatch.sources.store import StoreSampleSource

    settings = get_settings(ctx)
    store = get_data_store(ctx)
    tracker = KOLTracker(
        StoreSampleSource(store),
        store,
        ConsoleSink(console),
        scorer=KOLSignalScorer(
            large_trade_sol=settings.kol.large_trade_sol,
            medium_trade_sol=settings.kol.medium_trade_sol,
        ),
        broadcast_confidence=settings.kol.broadcast_confidence,
        transactions_per_poll=settings.kol.transactions_per_poll,
    )
    tracker.load_active_kols()
    return tracker


@click.group("kol")
def kol() -> None:
    """KOL wallet tracking commands.

    \b
    Examples:
      tokenwatch kol add WALLET --name "Whale" --category trader --influence 85
      tokenwatch kol list
      tokenwatch kol record WALLET TOKEN buy 1000 0.05 120
    """
    pass


@kol.command("add")
@click.argument("wallet")
@click.option("--name", default="", help="Display name.")
@click.option("--category", type=click.Choice(["trader", "influencer", "institution"]),
              default="trader", show_default=True)
@click.option("--influence", type=click.FloatRange(0, 100), default=50.0, show_default=True)
@click.option("--success-rate", type=click.FloatRange(0, 100), default=0.0, show_default=True)
@click.option("--followers", type=int, default=0)
@click.option("--verified", is_flag=True, help="Identity verified.")
@click.option("--tag", "tags", multiple=True, help="Tag. Repeatable.")
@click.pass_context
def add(
    ctx: click.Context,
    wallet: str,
    name: str,
    category: str,
    influence: float,
    success_rate: float,
    followers: int,
    verified: bool,
    tags: tuple[str, ...],
) -> None:
    """Start monitoring WALLET."""
    from tokenwatch.errors import PersistenceFailure
    from tokenwatch.models import KOLProfile

    profile = KOLProfile(
        wallet_address=wallet,
        name=name,
        category=category,
        influence_score=influence,
        success_rate=success_rate,
        followers_count=followers,
        verified=verified,
        tags=list(tags),
    )
    try:
        kol_id = _get_tracker(ctx).add_kol(profile)
    except PersistenceFailure as e:
        error_panel("Failed to add KOL:", e)

    console.print(f"[green]✓ Monitoring {name or wallet} (ID: {kol_id})[/green]")


@kol.command("list")
@click.option("--limit", type=int, default=50, show_default=True)
@click.pass_context
def list_kols(ctx: click.Context, limit: int) -> None:
    """List monitored KOLs."""
    profiles = get_data_store(ctx).get_kols(limit=limit)

    if not profiles:
        console.print(Panel(
            "[dim]No KOLs monitored. Use 'tokenwatch kol add WALLET' to add one.[/dim]",
            title="[bold]KOLs[/bold]",
            border_style="dim",
        ))
        return

    table = Table(title="Monitored KOLs", show_header=True, header_style="bold cyan")
    table.add_column("Name", style="bold")
    table.add_column("Wallet", style="dim")
    table.add_column("Category")
    table.add_column("Influence", justify="right")
    table.add_column("Success", justify="right")
    table.add_column("Trades", justify="right")
    table.add_column("Verified", justify="center")

    for profile in profiles:
        table.add_row(
            profile.name or "-",
            f"{profile.wallet_address[:6]}…{profile.wallet_address[-4:]}",
            profile.category,
            f"{profile.influence_score:.0f}",
            f"{profile.success_rate:.1f}%",
            str(profile.total_trades),
            "[green]✓[/green]" if profile.verified else "",
        )

    console.print(table)


@kol.command("record")
@click.argument("wallet")
@click.argument("token")
@click.argument("action", type=click.Choice(["buy", "sell"]))
@click.argument("amount", type=float)
@click.argument("price", type=float)
@click.argument("value_sol", type=float)
@click.option("--tx", "tx_hash", default=None, help="Transaction hash (default: generated).")
@click.option("--pnl", type=float, default=None, help="Realized profit/loss.")
@click.pass_context
def record(
    ctx: click.Context,
    wallet: str,
    token: str,
    action: str,
    amount: float,
    price: float,
    value_sol: float,
    tx_hash: Optional[str],
    pnl: Optional[float],
) -> None:
    """Record a trade by WALLET and score it."""
    import uuid

    from pydantic import ValidationError

    from tokenwatch.errors import TokenWatchError
    from tokenwatch.models import KOLTransaction

    try:
        tx = KOLTransaction(
            wallet_address=wallet,
            token_address=token,
            transaction_hash=tx_hash or uuid.uuid4().hex,
            action=action,
            amount=amount,
            price=price,
            value_sol=value_sol,
            timestamp=datetime.now(),
            profit_loss=pnl,
        )
        signal = _get_tracker(ctx).record_transaction(tx)
    except (ValidationError, TokenWatchError) as e:
        error_panel("Failed to record transaction:", e)

    if signal is None:
        console.print("[yellow]Transaction ignored (wallet not monitored or already recorded)[/yellow]")
        return

    console.print(Panel(
        f"KOL:        {signal.kol_name}\n"
        f"Action:     {signal.action.upper()} {signal.token_symbol}\n"
        f"Value:      {signal.value_sol:.2f} SOL\n"
        f"Confidence: [bold]{signal.confidence:.0f}[/bold]\n"
        f"Reasoning:  {signal.reasoning}",
        title="[bold]KOL Signal[/bold]",
        border_style="cyan",
    ))


@kol.command("signals")
@click.option("--min-confidence", type=float, default=0.0, show_default=True)
@click.option("--limit", type=int, default=20, show_default=True)
@click.pass_context
def signals(ctx: click.Context, min_confidence: float, limit: int) -> None:
    """Show recent KOL signals."""
    rows = get_data_store(ctx).get_kol_signals(limit=limit, min_confidence=min_confidence)

    if not rows:
        console.print("[dim]No KOL signals recorded[/dim]")
        return

    table = Table(title="KOL Signals", show_header=True, header_style="bold cyan")
    table.add_column("Time", style="dim")
    table.add_column("KOL", style="bold")
    table.add_column("Action")
    table.add_column("Token")
    table.add_column("SOL", justify="right")
    table.add_column("Confidence", justify="right")

    for signal in rows:
        action_style = "green" if signal.action == "buy" else "red"
        table.add_row(
            signal.timestamp.strftime("%Y-%m-%d %H:%M"),
            signal.kol_name,
            f"[{action_style}]{signal.action.upper()}[/{action_style}]",
            signal.token_symbol,
            f"{signal.value_sol:.2f}",
            f"{signal.confidence:.0f}",
        )

    console.print(table)

"""Analyze command for TokenWatch CLI.

Runs the composite technical, sentiment, KOL and market analysis for one
token and prints the scores and recommendation.
"""

import click
from rich.panel import Panel
from rich.table import Table

from tokenwatch.cli.main import console, error_panel, get_data_store, get_settings
from tokenwatch.cli.sentiment import resolve_token

ACTION_STYLES = {
    "strong_buy": "bold green",
    "buy": "green",
    "hold": "white",
    "sell": "red",
    "strong_sell": "bold red",
}


def _score_style(score: float) -> str:
    if score >= 65:
        return "green"
    if score <= 35:
        return "red"
    return "yellow"


@click.command("analyze")
@click.argument("token")
@click.pass_context
def analyze(ctx: click.Context, token: str) -> None:
    """Score TOKEN (symbol or address) across technical, sentiment, KOL and market views."""
    from tokenwatch.engine.service import TokenWatchEngine

    store = get_data_store(ctx)
    address = resolve_token(store, token)
    engine = TokenWatchEngine(get_settings(ctx), data_store=store)

    try:
        analysis = engine.analyzer.analyze_token(address)
    except Exception as e:
        error_panel(f"Failed to analyze {token}:", e)

    if analysis is None:
        error_panel(f"Unknown token {token}")

    table = Table(title=f"{analysis.token_symbol} Analysis", show_header=True, header_style="bold cyan")
    table.add_column("View")
    table.add_column("Score", justify="right")
    table.add_column("Details")

    technical = analysis.technical
    rsi = f"{technical.rsi:.1f}" if technical.rsi is not None else "n/a"
    table.add_row(
        "Technical",
        f"[{_score_style(technical.score)}]{technical.score:.0f}[/]",
        f"trend {technical.trend}, RSI {rsi}, range {technical.support:.6g}-{technical.resistance:.6g}",
    )
    sentiment = analysis.sentiment
    table.add_row(
        "Sentiment",
        f"[{_score_style(sentiment.score)}]{sentiment.score:.0f}[/]",
        f"{sentiment.sentiment}, confidence {sentiment.confidence:.0f}%",
    )
    kol = analysis.kol
    table.add_row(
        "KOL",
        f"[{_score_style(kol.score)}]{kol.score:.0f}[/]",
        f"{kol.active_kols} wallets, {kol.transaction_count} trades, {kol.influence_level} influence",
    )
    market = analysis.market
    table.add_row(
        "Market",
        f"[{_score_style(market.score)}]{market.score:.0f}[/]",
        f"volume {market.volume_24h:,.0f}, 24h {market.price_change_24h:+.1f}%, "
        f"volatility {market.volatility:.0f}%",
    )
    console.print(table)

    rec = analysis.recommendation
    style = ACTION_STYLES.get(rec.action, "")
    reasoning = "\n".join(f"  • {reason}" for reason in rec.reasoning)
    risks = "\n".join(f"  • {risk}" for risk in rec.risk_factors)
    console.print(Panel(
        f"Overall:         {analysis.overall_score:.0f}\n"
        f"Risk:            {analysis.risk_score:.0f}\n"
        f"Potential:       {analysis.potential_score:.0f}\n"
        f"Action:          [{style}]{rec.action}[/{style}] ({rec.confidence:.0f}% confidence)\n"
        f"Horizon:         {rec.time_horizon}\n\n"
        f"[bold]Reasoning[/bold]\n{reasoning}\n\n"
        f"[bold]Risk factors[/bold]\n{risks}",
        title="[bold]Recommendation[/bold]",
        border_style="cyan",
    ))

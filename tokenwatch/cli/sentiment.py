"""Sentiment analysis command for TokenWatch CLI."""

import click
from rich.panel import Panel
from rich.table import Table

from tokenwatch.cli.main import console, error_panel, get_data_store, get_settings

LABEL_STYLES = {
    "very_bullish": "bold green",
    "bullish": "green",
    "neutral": "white",
    "bearish": "red",
    "very_bearish": "bold red",
}


def resolve_token(store, token: str) -> str:
    """Resolve a symbol to its address; addresses pass through."""
    for info in store.get_tokens():
        if info.symbol.upper() == token.upper():
            return info.address
    return token


@click.command("sentiment")
@click.argument("token")
@click.option("--hours", type=int, default=None, help="Lookback window (default from config).")
@click.option("--history", is_flag=True, help="Also list the samples used.")
@click.pass_context
def sentiment(ctx: click.Context, token: str, hours: int, history: bool) -> None:
    """Analyze social sentiment for TOKEN (symbol or address)."""
    from tokenwatch.broadcast import MemorySink
    from tokenwatch.engine.sentiment import SentimentAggregator, SentimentMonitor
    from tokenwatch.sources.store import StoreSampleSource

    settings = get_settings(ctx)
    store = get_data_store(ctx)
    address = resolve_token(store, token)
    lookback = hours or settings.sentiment.lookback_hours

    monitor = SentimentMonitor(
        StoreSampleSource(store),
        store,
        MemorySink(),
        aggregator=SentimentAggregator(
            source_weights=settings.sentiment.source_weights,
            decay_hours=settings.sentiment.decay_hours,
        ),
        lookback_hours=lookback,
    )
    analysis = monitor.analyze_token(address)

    if analysis is None:
        error_panel(f"No sentiment samples for {token} in the last {lookback}h")

    style = LABEL_STYLES.get(analysis.overall_sentiment, "")
    signals = "\n".join(f"  • {signal}" for signal in analysis.key_signals)
    console.print(Panel(
        f"Sentiment:       [{style}]{analysis.overall_sentiment}[/{style}] ({analysis.sentiment_score:+.1f})\n"
        f"Confidence:      {analysis.confidence:.0f}%\n"
        f"Trend:           {analysis.trend_direction}\n"
        f"Social volume:   {analysis.social_volume:.0f}\n"
        f"Influencers:     {analysis.influencer_activity:.0f}\n"
        f"Risk:            {analysis.risk_level}\n"
        f"Recommendation:  [bold]{analysis.recommendation}[/bold]\n"
        f"Samples:         {analysis.sample_count}\n\n"
        f"[bold]Key signals[/bold]\n{signals}",
        title=f"[bold]{analysis.token_symbol} Sentiment[/bold]",
        border_style="cyan",
    ))

    if history:
        table = Table(title="Samples", show_header=True, header_style="bold cyan")
        table.add_column("Time", style="dim")
        table.add_column("Source")
        table.add_column("Score", justify="right")
        table.add_column("Mentions", justify="right")
        for sample in monitor.get_history(address, hours=lookback):
            table.add_row(
                sample.timestamp.strftime("%Y-%m-%d %H:%M"),
                sample.source,
                f"{sample.score:+.1f}",
                str(sample.total_mentions),
            )
        console.print(table)

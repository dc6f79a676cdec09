"""Main CLI entry point for TokenWatch.

This module provides the main click group, lazy loading of the command
modules, and the helpers shared by all commands.
"""

import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

# Console for rich output
console = Console()


class LazyGroup(click.Group):
    """A click Group that lazily loads commands.

    Command modules pull in the engine and pydantic models, so they are
    only imported when the command is actually invoked.
    """

    def __init__(self, *args, lazy_subcommands: Optional[dict[str, str]] = None, **kwargs):
        """Initialize the lazy group.

        Args:
            lazy_subcommands: Mapping of command names to module paths.
        """
        super().__init__(*args, **kwargs)
        self._lazy_subcommands = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        base = super().list_commands(ctx)
        lazy = list(self._lazy_subcommands.keys())
        return sorted(set(base + lazy))

    def get_command(self, ctx: click.Context, cmd_name: str) -> Optional[click.Command]:
        if cmd_name in self.commands:
            return self.commands[cmd_name]

        if cmd_name in self._lazy_subcommands:
            return self._lazy_load(cmd_name)

        return None

    def _lazy_load(self, cmd_name: str) -> click.Command:
        """Lazily load a command from its module path."""
        import importlib

        module_path = self._lazy_subcommands[cmd_name]
        module = importlib.import_module(module_path)

        cmd = None
        for attr_name in dir(module):
            attr = getattr(module, attr_name)
            if isinstance(attr, click.Command) and attr.name == cmd_name:
                cmd = attr
                break

        if cmd is None:
            raise click.ClickException(f"Could not find command '{cmd_name}' in {module_path}")

        self.add_command(cmd)
        return cmd


LAZY_SUBCOMMANDS = {
    "init": "tokenwatch.cli.run",
    "seed": "tokenwatch.cli.run",
    "run": "tokenwatch.cli.run",
    "config": "tokenwatch.cli.configs",
    "alerts": "tokenwatch.cli.alerts",
    "sentiment": "tokenwatch.cli.sentiment",
    "analyze": "tokenwatch.cli.analyze",
    "kol": "tokenwatch.cli.kol",
}


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def setup_logging(verbose: bool) -> None:
    """Route log records through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


def error_panel(message: str, error: object = None) -> None:
    """Print an error panel and exit with status 1."""
    body = f"[red]{message}[/red]"
    if error is not None:
        body += f"\n\n{error}"
    console.print(Panel(body, title="[bold red]Error[/bold red]", border_style="red"))
    raise SystemExit(1)


def get_settings(ctx: click.Context):
    """Load settings for the current invocation."""
    from tokenwatch.config import load_settings
    from tokenwatch.errors import ConfigValidationError

    obj = ctx.find_root().obj
    if "settings" not in obj:
        try:
            obj["settings"] = load_settings(obj.get("config_path"))
        except ConfigValidationError as e:
            error_panel("Invalid configuration", e)
        if obj.get("db_path") is not None:
            engine = obj["settings"].engine.model_copy(update={"db_path": obj["db_path"]})
            obj["settings"] = obj["settings"].model_copy(update={"engine": engine})
    return obj["settings"]


def get_data_store(ctx: click.Context):
    """Get the data store for the configured database."""
    from tokenwatch.db.store import DataStore

    return DataStore(get_settings(ctx).engine.db_path)


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_SUBCOMMANDS, context_settings=CONTEXT_SETTINGS)
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ~/.config/tokenwatch/config.toml).",
)
@click.option(
    "--db", "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Override the database path.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.version_option(package_name="tokenwatch")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], db_path: Optional[Path], verbose: bool) -> None:
    """TokenWatch - alert evaluation and scoring engine for tokens.

    Evaluates user-defined alert rules over price and volume series,
    aggregates social sentiment, scores KOL wallet trades and combines
    them into per-token analyses.

    \b
    Quick Start:
      tokenwatch init            # Write config and create the database
      tokenwatch seed            # Fill the database with demo data
      tokenwatch run --once      # Run every engine tick once
      tokenwatch alerts          # View produced alerts
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["db_path"] = db_path
    setup_logging(verbose)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()

"""CLI for Break Even."""

import sys

import typer
from rich.console import Console
from rich.table import Table

from .config import load_settings
from .currency import SupportedCurrency, format_amount
from .db import Database
from .rates import ExchangeRateService
from .split.calculator import convert as convert_amount
from .split.cli import app as split_app
from .split.cli import parse_amount, setup_logging

app = typer.Typer(
    name="break-even",
    help="Split shared expenses and settle up",
)

app.add_typer(split_app, name="split", help="Split expenses and track settlements")

console = Console()


@app.command()
def convert(
    amount: str = typer.Argument(..., help="Amount to convert"),
    from_currency: str = typer.Argument(..., help="Source currency code"),
    to_currency: str = typer.Argument(..., help="Target currency code"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Convert an amount between currencies using the latest rates."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)

        rates = ExchangeRateService(settings, db).get_rates()
        converted = convert_amount(
            parse_amount(amount), from_currency, to_currency, rates
        )

        console.print(
            f"{format_amount(parse_amount(amount), from_currency)} = "
            f"[bold]{format_amount(converted, to_currency)}[/bold]"
        )

    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def rates(
    refresh: bool = typer.Option(
        False, "--refresh", help="Fetch new rates even if the cache is fresh"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show the exchange rates used for conversion."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)

        snapshot = ExchangeRateService(settings, db).get_rates(force_refresh=refresh)

        table = Table(
            title=f"Exchange rates (1 {snapshot.base_currency})",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("Code", style="cyan")
        table.add_column("Currency")
        table.add_column("Rate", justify="right")

        for currency in SupportedCurrency:
            rate = snapshot.rate(currency.value)
            table.add_row(
                f"{currency.symbol} {currency.value}",
                currency.display_name,
                f"{rate:.4f}" if rate is not None else "—",
            )

        console.print(table)
        console.print(f"[dim]Fetched at {snapshot.fetched_at:%Y-%m-%d %H:%M}[/dim]")

    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


if __name__ == "__main__":
    app()

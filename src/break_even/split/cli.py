"""CLI commands for splitting expenses and settling up."""

import json
import logging
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

import typer
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.table import Table

from ..config import load_settings
from ..currency import format_amount
from ..db import Database
from ..exceptions import BreakEvenError, InvalidAmountError
from ..models import (
    BalanceSummary,
    Expense,
    Participant,
    SettlementAllocation,
    SettlementRecord,
    SplitBreakdown,
)
from ..rates import ExchangeRateService
from .calculator import remaining_to_assign
from .receipt import parse_receipt_response, receipt_to_strategy
from .service import SplitService, total_outstanding
from .settlement import initial_shares, split_status
from .ui import assign_items_interactive

app = typer.Typer(
    name="split",
    help="Split expenses and track settlements",
)

console = Console()

_expenses_adapter = TypeAdapter(list[Expense])
_settlements_adapter = TypeAdapter(list[SettlementRecord])
_people_adapter = TypeAdapter(list[Participant])


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Downgrade httpx logging (network requests are too noisy at INFO)
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


# ============================================================================
# File loading
# ============================================================================


def _read_json(path: Path):
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise BreakEvenError(f"Could not read {path}: {e}") from e


def load_expenses(path: Path) -> list[Expense]:
    """Load one expense object or a list of expenses from a JSON file."""
    data = _read_json(path)
    if isinstance(data, dict):
        data = [data]
    try:
        return _expenses_adapter.validate_python(data)
    except ValidationError as e:
        raise BreakEvenError(f"Invalid expense data in {path}:\n{e}") from e


def load_settlements(path: Path) -> list[SettlementRecord]:
    """Load a list of settlement records from a JSON file."""
    try:
        return _settlements_adapter.validate_python(_read_json(path))
    except ValidationError as e:
        raise BreakEvenError(f"Invalid settlement data in {path}:\n{e}") from e


def load_people(path: Path | None, expense: Expense | None = None) -> list[Participant]:
    """
    Load participants from a JSON file.

    Without a file, participants are named after their IDs.
    """
    if path is not None:
        try:
            return _people_adapter.validate_python(_read_json(path))
        except ValidationError as e:
            raise BreakEvenError(f"Invalid people data in {path}:\n{e}") from e

    ids = expense.participant_ids if expense else []
    return [Participant(id=pid, name=pid) for pid in ids]


def write_expense(path: Path, expense: Expense):
    """Write an expense back to a JSON file."""
    path.write_text(
        json.dumps(expense.model_dump(mode="json"), indent=2) + "\n",
        encoding="utf-8",
    )


def parse_amount(value: str) -> Decimal:
    """Parse a CLI amount argument."""
    try:
        amount = Decimal(value)
    except InvalidOperation as e:
        raise InvalidAmountError(f"Invalid amount: {value}") from e
    if not amount.is_finite():
        raise InvalidAmountError(f"Invalid amount: {value}")
    return amount


def _single_expense(expenses: list[Expense], path: Path) -> Expense:
    if len(expenses) != 1:
        raise BreakEvenError(f"Expected exactly one expense in {path}")
    return expenses[0]


# ============================================================================
# Display
# ============================================================================


def format_money(amount: Decimal, currency_code: str, use_color: bool = True) -> str:
    """
    Format money in accounting style.

    Negative amounts use parentheses: ($85.02)
    """
    formatted = format_amount(abs(amount), currency_code)
    if amount < 0:
        return f"([red]{formatted}[/red])" if use_color else f"({formatted})"
    return f" [green]{formatted}[/green] " if use_color else f" {formatted} "


def display_breakdown(
    breakdown: SplitBreakdown,
    expense: Expense,
    people: list[Participant],
):
    """Display a split breakdown in a table."""
    names = {p.id: p.name for p in people}
    currency = breakdown.currency_code

    console.print(f"\n[bold]{expense.title or 'Expense'}[/bold]")
    console.print(f"  Paid by: {names.get(expense.payer_id, expense.payer_id)}")
    console.print(f"  Total: {format_money(breakdown.total_amount, currency)}")
    console.print(f"  Method: {breakdown.method}")
    console.print()

    table = Table(title="Shares", show_header=True, header_style="bold magenta")
    table.add_column("Participant", style="cyan")
    table.add_column("Share", justify="right", width=14)
    if breakdown.method == "by_parts":
        table.add_column("Percent", justify="right", style="dim", width=8)

    for line in breakdown.lines:
        row = [
            names.get(line.participant_id, line.participant_id),
            format_money(line.amount, currency),
        ]
        if breakdown.method == "by_parts":
            row.append(f"{line.percentage:.1f}%" if line.percentage is not None else "—")
        table.add_row(*row)

    console.print(table)

    console.print()
    console.print("[bold]Summary:[/bold]")
    console.print(f"  Assigned: {format_money(breakdown.assigned_total, currency)}")
    if breakdown.unassigned_total > 0:
        console.print(
            f"  [yellow]Unassigned items: "
            f"{format_amount(breakdown.unassigned_total, currency)}[/yellow]"
        )
    remaining = remaining_to_assign(expense)
    if remaining > 0:
        console.print(
            f"  [yellow]Left to assign: {format_amount(remaining, currency)}[/yellow]"
        )


def display_balance(summary: BalanceSummary, friend_name: str):
    """Display a balance summary with a friend."""
    currency = summary.display_currency

    table = Table(
        title=f"Balance with {friend_name}",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Currency", style="cyan")
    table.add_column("They owe you", justify="right")
    table.add_column("You owe them", justify="right")

    for code, entry in sorted(summary.by_currency.items()):
        table.add_row(
            code,
            format_amount(entry.friend_owes, code),
            format_amount(entry.user_owes, code),
        )

    console.print(table)
    console.print()

    if summary.net_balance > 0:
        console.print(
            f"[green]{friend_name} owes you "
            f"{format_amount(summary.net_balance, currency)}[/green]"
        )
    elif summary.net_balance < 0:
        console.print(
            f"[red]You owe {friend_name} "
            f"{format_amount(-summary.net_balance, currency)}[/red]"
        )
    else:
        console.print("[green]✓ All settled up[/green]")

    if summary.unconverted_currencies:
        console.print(
            f"[yellow]⚠️  No rates for {', '.join(summary.unconverted_currencies)}; "
            f"those amounts are shown unconverted[/yellow]"
        )
    for over in summary.over_settlements:
        console.print(
            f"[yellow]⚠️  Over-settled by {format_amount(over.excess, over.currency_code)}"
            f"[/yellow]"
        )


def display_allocation(allocation: SettlementAllocation, currency_code: str):
    """Display how a settlement was spread across shares."""
    table = Table(title="Settlement", show_header=True, header_style="bold magenta")
    table.add_column("Expense", style="dim")
    table.add_column("Applied", justify="right")
    table.add_column("Status")

    for applied in allocation.applied:
        table.add_row(
            applied.expense_id,
            format_amount(applied.amount_applied, currency_code),
            "[green]settled[/green]" if applied.fully_settled else "partial",
        )

    console.print(table)
    console.print(
        f"\nSettled {format_amount(allocation.settled_amount, currency_code)} "
        f"out of {format_amount(allocation.balance_before, currency_code)}"
    )
    console.print(
        f"Still owed: {format_amount(total_outstanding(allocation.shares), currency_code)}"
    )
    if allocation.unapplied_amount > 0:
        console.print(
            f"[yellow]⚠️  {format_amount(allocation.unapplied_amount, currency_code)} "
            f"exceeds what was owed and was not applied[/yellow]"
        )


def _fail(e: Exception, verbose: bool):
    console.print(f"\n[bold red]Error:[/bold red] {e}")
    if verbose:
        raise
    sys.exit(1)


# ============================================================================
# Commands
# ============================================================================


@app.command()
def show(
    expense_file: Path = typer.Argument(..., help="Expense JSON file"),
    people_file: Optional[Path] = typer.Option(
        None, "--people", "-p", help="Participants JSON file (for names)"
    ),
    strict: Optional[bool] = typer.Option(
        None, "--strict/--no-strict", help="Reject splits that don't add up"
    ),
    rounded: bool = typer.Option(
        False, "--round", help="Round shares to the currency's minor units"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show each participant's share of an expense."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        expense = _single_expense(load_expenses(expense_file), expense_file)
        people = load_people(people_file, expense)

        service = SplitService(settings)
        breakdown = service.create_breakdown(expense, strict=strict, rounded=rounded)

        display_breakdown(breakdown, expense, people)

    except Exception as e:
        _fail(e, verbose)


@app.command()
def balance(
    expenses_file: Path = typer.Argument(..., help="Expenses JSON file"),
    settlements_file: Optional[Path] = typer.Argument(
        None, help="Settlements JSON file"
    ),
    user: str = typer.Option(..., "--user", "-u", help="Your participant ID"),
    friend: str = typer.Option(..., "--friend", "-f", help="Friend's participant ID"),
    currency: Optional[str] = typer.Option(
        None, "--currency", "-c", help="Display currency"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show what you and a friend owe each other."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)

        expenses = load_expenses(expenses_file)
        settlements = load_settlements(settlements_file) if settlements_file else []

        service = SplitService(settings, ExchangeRateService(settings, db))
        summary = service.balance_with(
            expenses, settlements, user_id=user, friend_id=friend,
            display_currency=currency,
        )

        display_balance(summary, friend)

    except Exception as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def settle(
    expenses_file: Path = typer.Argument(..., help="Expenses JSON file"),
    debtor: str = typer.Option(..., "--from", help="Who is paying"),
    creditor: str = typer.Option(..., "--to", help="Who is being paid"),
    amount: str = typer.Option(..., "--amount", "-a", help="Payment amount"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Preview how a payment settles the payer's oldest shares first.

    Only expenses paid by the creditor, in the first expense's currency,
    are considered. Expenses without an id are skipped.
    """
    setup_logging(verbose)

    try:
        settings = load_settings()
        expenses = []
        for expense in load_expenses(expenses_file):
            if expense.payer_id != creditor:
                continue
            if expense.id is None:
                console.print(
                    f"[yellow]⚠️  Skipping '{expense.title or 'untitled'}': "
                    f"expenses need an id to track settlements[/yellow]"
                )
                continue
            expenses.append(expense)
        if not expenses:
            console.print(f"[yellow]No expenses paid by {creditor}.[/yellow]")
            return

        currency = expenses[0].currency_code
        shares = [
            share
            for expense in expenses
            if expense.currency_code == currency
            for share in initial_shares(expense)
            if share.participant_id == debtor
        ]

        service = SplitService(settings)
        allocation = service.record_settlement(shares, parse_amount(amount))

        display_allocation(allocation, currency)

        for expense in expenses:
            if expense.currency_code != currency:
                continue
            expense_shares = [
                s for s in initial_shares(expense) if s.participant_id != debtor
            ] + [s for s in allocation.shares if s.expense_id == expense.id]
            console.print(
                f"  {expense.title or expense.id}: {split_status(expense_shares)}"
            )

    except Exception as e:
        _fail(e, verbose)


@app.command()
def assign(
    expense_file: Path = typer.Argument(..., help="By-item expense JSON file"),
    people_file: Optional[Path] = typer.Option(
        None, "--people", "-p", help="Participants JSON file (for names)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Interactively assign by-item expense items to participants."""
    setup_logging(verbose)

    try:
        expense = _single_expense(load_expenses(expense_file), expense_file)
        if expense.strategy.method != "by_item":
            raise BreakEvenError("Only by-item expenses have items to assign")

        people = load_people(people_file, expense)
        people = [p for p in people if expense.has_participant(p.id)]

        items = assign_items_interactive(
            expense.strategy.items, people, expense.currency_code
        )
        updated = expense.model_copy(
            update={"strategy": expense.strategy.model_copy(update={"items": items})}
        )
        write_expense(expense_file, updated)

        console.print(f"\n[bold green]✓ Saved assignments to {expense_file}[/bold green]")

    except Exception as e:
        _fail(e, verbose)


@app.command()
def receipt(
    receipt_file: Path = typer.Argument(..., help="Receipt analysis JSON output"),
    payer: str = typer.Option(..., "--payer", help="Who paid"),
    participants: list[str] = typer.Option(
        ..., "--participant", "-p", help="Participant ID (repeatable)"
    ),
    currency: str = typer.Option("USD", "--currency", "-c", help="Currency code"),
    output: Path = typer.Option(
        Path("expense.json"), "--output", "-o", help="Where to write the expense"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Create a by-item expense from a scanned receipt."""
    setup_logging(verbose)

    try:
        try:
            text = receipt_file.read_text(encoding="utf-8")
        except OSError as e:
            raise BreakEvenError(f"Could not read {receipt_file}: {e}") from e

        scan = parse_receipt_response(text)
        title, total, strategy = receipt_to_strategy(scan)

        expense = Expense(
            title=title,
            total_amount=total,
            currency_code=currency,
            strategy=strategy,
            payer_id=payer,
            participant_ids=participants,
        )
        write_expense(output, expense)

        console.print(
            f"[bold green]✓ Created '{title}' with {len(strategy.items)} items "
            f"({format_amount(total, currency)})[/bold green]"
        )
        console.print(
            f"\n[bold]Assign items with:[/bold]\n"
            f"  [cyan]break-even split assign {output}[/cyan]\n"
        )

    except Exception as e:
        _fail(e, verbose)

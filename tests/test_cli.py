"""Tests for the command line interface."""

import json
from decimal import Decimal

import pytest
from typer.testing import CliRunner

from break_even.cli import app
from break_even.split import cli as split_cli

runner = CliRunner()

DINNER = {
    "id": "dinner",
    "title": "Dinner",
    "total_amount": "90",
    "currency_code": "USD",
    "payer_id": "me",
    "participant_ids": ["me", "ana", "ben"],
    "strategy": {"method": "by_parts", "parts": {"me": 1, "ana": 2, "ben": 1}},
    "created_at": "2025-01-10T19:00:00",
}

HOTEL = {
    "id": "hotel",
    "title": "Hotel",
    "total_amount": "40",
    "currency_code": "EUR",
    "payer_id": "ana",
    "participant_ids": ["me", "ana"],
    "created_at": "2025-01-11T10:00:00",
    "exchange_rates": {
        "base_currency": "USD",
        "rates": {"USD": "1", "EUR": "0.8"},
        "fetched_at": "2025-01-11T09:00:00",
    },
}


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Run every command against a temporary database with fallback rates."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "cli.db"))
    monkeypatch.delenv("EXCHANGE_RATE_API_KEY", raising=False)
    monkeypatch.delenv("DEFAULT_CURRENCY", raising=False)
    monkeypatch.delenv("STRICT_SPLIT_VALIDATION", raising=False)


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestConvert:
    def test_convert_with_fallback_rates(self):
        result = runner.invoke(app, ["convert", "100", "USD", "EUR"])

        assert result.exit_code == 0
        assert "$100.00 = €92.00" in result.stdout

    def test_unknown_currency_fails(self):
        result = runner.invoke(app, ["convert", "100", "USD", "XYZ"])

        assert result.exit_code == 1
        assert "Error" in result.stdout

    def test_invalid_amount_fails(self):
        result = runner.invoke(app, ["convert", "lots", "USD", "EUR"])

        assert result.exit_code == 1
        assert "Invalid amount" in result.stdout


class TestRates:
    def test_lists_supported_currencies(self):
        result = runner.invoke(app, ["rates"])

        assert result.exit_code == 0
        assert "Japanese Yen" in result.stdout
        assert "0.9200" in result.stdout


class TestSplitShow:
    def test_by_parts_breakdown(self, tmp_path):
        expense_file = write_json(tmp_path / "dinner.json", DINNER)

        result = runner.invoke(app, ["split", "show", str(expense_file)])

        assert result.exit_code == 0
        assert "Dinner" in result.stdout
        assert "$45.00" in result.stdout
        assert "50.0%" in result.stdout

    def test_people_file_names(self, tmp_path):
        expense_file = write_json(tmp_path / "dinner.json", DINNER)
        people_file = write_json(
            tmp_path / "people.json",
            [
                {"id": "me", "name": "Sam", "is_current_user": True},
                {"id": "ana", "name": "Ana Lima"},
                {"id": "ben", "name": "Ben"},
            ],
        )

        result = runner.invoke(
            app, ["split", "show", str(expense_file), "--people", str(people_file)]
        )

        assert result.exit_code == 0
        assert "Ana Lima" in result.stdout
        assert "Paid by: Sam" in result.stdout

    def test_strict_rejects_unbalanced_split(self, tmp_path):
        unbalanced = {
            **DINNER,
            "strategy": {"method": "unequal", "amounts": {"me": "30", "ana": "20"}},
        }
        expense_file = write_json(tmp_path / "dinner.json", unbalanced)

        result = runner.invoke(app, ["split", "show", str(expense_file), "--strict"])

        assert result.exit_code == 1
        assert "expected 90" in result.stdout

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["split", "show", str(tmp_path / "nope.json")])

        assert result.exit_code == 1
        assert "Could not read" in result.stdout


class TestSplitBalance:
    def test_mixed_currency_balance(self, tmp_path):
        expense = {**DINNER, "strategy": {"method": "equal"}}
        expenses_file = write_json(tmp_path / "expenses.json", [expense, HOTEL])

        result = runner.invoke(
            app,
            ["split", "balance", str(expenses_file), "--user", "me", "--friend", "ana"],
        )

        assert result.exit_code == 0
        assert "ana owes you $5.00" in result.stdout

    def test_settlements_applied(self, tmp_path):
        expense = {**DINNER, "strategy": {"method": "equal"}}
        expenses_file = write_json(tmp_path / "expenses.json", [expense])
        settlements_file = write_json(
            tmp_path / "settlements.json",
            [{"payer_id": "ana", "payee_id": "me", "amount": "30"}],
        )

        result = runner.invoke(
            app,
            [
                "split",
                "balance",
                str(expenses_file),
                str(settlements_file),
                "--user",
                "me",
                "--friend",
                "ana",
            ],
        )

        assert result.exit_code == 0
        assert "All settled up" in result.stdout


class TestSplitSettle:
    def test_oldest_shares_first(self, tmp_path):
        lunch = {
            **DINNER,
            "id": "lunch",
            "title": "Lunch",
            "strategy": {"method": "equal"},
            "total_amount": "30",
            "created_at": "2025-01-12T12:00:00",
        }
        expense = {**DINNER, "strategy": {"method": "equal"}}
        expenses_file = write_json(tmp_path / "expenses.json", [lunch, expense])

        result = runner.invoke(
            app,
            [
                "split",
                "settle",
                str(expenses_file),
                "--from",
                "ana",
                "--to",
                "me",
                "--amount",
                "35",
            ],
        )

        assert result.exit_code == 0
        assert "Settled $35.00 out of $40.00" in result.stdout
        assert "Still owed: $5.00" in result.stdout
        assert "Dinner: partial" in result.stdout

    def test_skips_expenses_without_id(self, tmp_path):
        untracked = {k: v for k, v in DINNER.items() if k != "id"}
        untracked["title"] = "Taxi"
        expense = {**DINNER, "strategy": {"method": "equal"}}
        expenses_file = write_json(tmp_path / "expenses.json", [untracked, expense])

        result = runner.invoke(
            app,
            [
                "split",
                "settle",
                str(expenses_file),
                "--from",
                "ana",
                "--to",
                "me",
                "--amount",
                "10",
            ],
        )

        assert result.exit_code == 0
        assert "Skipping 'Taxi'" in result.stdout
        assert "Settled $10.00 out of $30.00" in result.stdout

    def test_rejects_non_positive_amount(self, tmp_path):
        expenses_file = write_json(tmp_path / "expenses.json", [DINNER])

        result = runner.invoke(
            app,
            [
                "split",
                "settle",
                str(expenses_file),
                "--from",
                "ana",
                "--to",
                "me",
                "--amount",
                "0",
            ],
        )

        assert result.exit_code == 1


class TestSplitReceipt:
    def test_creates_by_item_expense(self, tmp_path):
        receipt_file = tmp_path / "scan.json"
        receipt_file.write_text(
            json.dumps(
                {
                    "merchantName": "Corner Bistro",
                    "items": [
                        {"name": "Burger", "quantity": 2, "unitPrice": 12.5},
                        {"name": "Fries", "quantity": 1, "unitPrice": 4.25},
                    ],
                    "total": 29.25,
                }
            ),
            encoding="utf-8",
        )
        output = tmp_path / "expense.json"

        result = runner.invoke(
            app,
            [
                "split",
                "receipt",
                str(receipt_file),
                "--payer",
                "me",
                "-p",
                "me",
                "-p",
                "ana",
                "--output",
                str(output),
            ],
        )

        assert result.exit_code == 0
        assert "Corner Bistro" in result.stdout
        saved = json.loads(output.read_text(encoding="utf-8"))
        assert saved["strategy"]["method"] == "by_item"
        assert [item["name"] for item in saved["strategy"]["items"]] == [
            "Burger",
            "Fries",
        ]
        assert saved["participant_ids"] == ["me", "ana"]
        assert Decimal(saved["total_amount"]) == Decimal("29.25")


class TestSplitAssign:
    def test_saves_assignments(self, tmp_path, monkeypatch):
        by_item = {
            **DINNER,
            "strategy": {
                "method": "by_item",
                "items": [{"name": "Pizza", "amount": "90", "assigned_to": []}],
            },
        }
        expense_file = write_json(tmp_path / "dinner.json", by_item)

        def fake_assign(items, participants, currency_code):
            assert [p.id for p in participants] == ["me", "ana", "ben"]
            return [
                item.model_copy(update={"assigned_to": {"me", "ana"}})
                for item in items
            ]

        monkeypatch.setattr(split_cli, "assign_items_interactive", fake_assign)

        result = runner.invoke(app, ["split", "assign", str(expense_file)])

        assert result.exit_code == 0
        saved = json.loads(expense_file.read_text(encoding="utf-8"))
        assert sorted(saved["strategy"]["items"][0]["assigned_to"]) == ["ana", "me"]

    def test_rejects_other_methods(self, tmp_path):
        expense_file = write_json(tmp_path / "dinner.json", DINNER)

        result = runner.invoke(app, ["split", "assign", str(expense_file)])

        assert result.exit_code == 1
        assert "by-item" in result.stdout

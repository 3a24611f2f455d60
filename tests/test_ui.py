"""Tests for interactive item assignment helpers."""

from decimal import Decimal
from unittest.mock import MagicMock, patch

from prompt_toolkit.document import Document

from break_even.models import Participant, SplitItem
from break_even.split.ui import (
    ParticipantCompleter,
    assign_items_interactive,
    parse_assignment,
)

PEOPLE = [
    Participant(id="u1", name="Maria", is_current_user=True),
    Participant(id="u2", name="Ben"),
    Participant(id="u3", name="Bea"),
]


def completions(text: str) -> list[str]:
    completer = ParticipantCompleter(PEOPLE)
    document = Document(text, cursor_position=len(text))
    return [c.text for c in completer.get_completions(document, None)]


class TestParticipantCompleter:
    def test_fuzzy_match(self):
        assert completions("mr") == ["Maria"]

    def test_completes_last_name_only(self):
        assert completions("Maria, be") == ["Ben", "Bea"]

    def test_empty_query_lists_everyone(self):
        assert completions("") == ["Maria", "Ben", "Bea", "everyone"]


class TestParseAssignment:
    def test_names_to_ids(self):
        assert parse_assignment("maria, Ben", PEOPLE) == {"u1", "u2"}

    def test_everyone(self):
        assert parse_assignment("everyone", PEOPLE) == {"u1", "u2", "u3"}

    def test_unknown_name(self):
        assert parse_assignment("Maria, Zed", PEOPLE) is None

    def test_blank_entries_ignored(self):
        assert parse_assignment("Bea,,", PEOPLE) == {"u3"}


class TestAssignItemsInteractive:
    @patch("break_even.split.ui.PromptSession")
    def test_assigns_and_retries_unknown_names(self, mock_session_class):
        mock_session = MagicMock()
        mock_session.prompt.side_effect = ["Zed", "Maria, Ben", ""]
        mock_session_class.return_value = mock_session
        items = [
            SplitItem(name="Pizza", amount=Decimal("20")),
            SplitItem(name="Salad", amount=Decimal("8"), assigned_to={"u3"}),
        ]

        updated = assign_items_interactive(items, PEOPLE, "USD")

        assert updated[0].assigned_to == {"u1", "u2"}
        assert updated[1].assigned_to == {"u3"}
        assert items[0].assigned_to == set()

    @patch("break_even.split.ui.PromptSession")
    def test_ctrl_c_keeps_progress(self, mock_session_class):
        mock_session = MagicMock()
        mock_session.prompt.side_effect = ["Bea", KeyboardInterrupt()]
        mock_session_class.return_value = mock_session
        items = [
            SplitItem(name="Pizza", amount=Decimal("20")),
            SplitItem(name="Salad", amount=Decimal("8")),
        ]

        updated = assign_items_interactive(items, PEOPLE, "USD")

        assert updated[0].assigned_to == {"u3"}
        assert updated[1].assigned_to == set()

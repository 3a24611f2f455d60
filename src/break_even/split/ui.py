"""Interactive UI components for assigning receipt items to participants."""

import logging
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from ..currency import format_amount
from ..models import Participant, SplitItem

logger = logging.getLogger(__name__)

EVERYONE = "everyone"


class ParticipantCompleter(Completer):
    """Fuzzy search completer for participant names.

    Completes the last comma-separated word, so several people can be
    entered on one line ("ana, ben").
    """

    def __init__(self, participants: list[Participant]):
        """Initialize the completer with the expense participants."""
        self.participants = participants
        self.names = [p.name for p in participants] + [EVERYONE]

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions for the word being typed."""
        current = document.text_before_cursor.split(",")[-1].strip()
        query = current.lower()

        for name in self.names:
            if not query or self._fuzzy_match(query, name.lower()):
                yield Completion(
                    text=name,
                    start_position=-len(current),
                    display=name,
                )

    def _fuzzy_match(self, query: str, text: str) -> bool:
        """
        Fuzzy match: all characters in query must appear in order in text.

        Example:
            query="mr" matches "Maria"
        """
        query_idx = 0
        for char in text:
            if query_idx < len(query) and char == query[query_idx]:
                query_idx += 1
        return query_idx == len(query)


def parse_assignment(text: str, participants: list[Participant]) -> set[str] | None:
    """
    Map a comma-separated list of names to participant IDs.

    "everyone" selects all participants. Names match case-insensitively.

    Returns:
        Set of participant IDs, or None if any name is unknown
    """
    by_name = {p.name.lower(): p.id for p in participants}
    assigned: set[str] = set()

    for raw in text.split(","):
        name = raw.strip().lower()
        if not name:
            continue
        if name == EVERYONE:
            return {p.id for p in participants}
        if name not in by_name:
            return None
        assigned.add(by_name[name])

    return assigned


def assign_items_interactive(
    items: list[SplitItem],
    participants: list[Participant],
    currency_code: str,
) -> list[SplitItem]:
    """
    Interactively assign each item to one or more participants.

    Empty input keeps the item's current assignment. Ctrl+C stops and
    keeps whatever was assigned so far.

    Returns:
        Updated copies of the items
    """
    completer = ParticipantCompleter(participants)
    session: PromptSession[str] = PromptSession(completer=completer)
    id_to_name = {p.id: p.name for p in participants}

    updated = [item.model_copy(deep=True) for item in items]

    print("\nAssign items (comma-separated names, 'everyone', Enter to keep)\n")

    try:
        for item in updated:
            current = ", ".join(
                sorted(id_to_name.get(pid, pid) for pid in item.assigned_to)
            )
            print(f"🧾 {item.name}: {format_amount(item.amount, currency_code)}")

            while True:
                result = session.prompt(
                    "Assign to: ",
                    default=current,
                    complete_while_typing=True,
                )

                if not result.strip():
                    break

                assigned = parse_assignment(result, participants)
                if assigned is None:
                    print("   ⚠️  Unknown name, try again")
                    continue

                item.assigned_to = assigned
                logger.info(f"Assigned '{item.name}' to {sorted(assigned)}")
                break

    except (KeyboardInterrupt, EOFError):
        print("\nStopped assigning items")

    return updated

"""Interactive prompts for picking members and confirming actions."""

import logging
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from ..models import Member

logger = logging.getLogger(__name__)


def fuzzy_match(query: str, text: str) -> bool:
    """
    Fuzzy match: all characters in query must appear in order in text.

    Example:
        query="tr" matches "Taro"
        query="hnk" matches "Hanako"
    """
    query_idx = 0
    for char in text:
        if query_idx < len(query) and char == query[query_idx]:
            query_idx += 1
    return query_idx == len(query)


class MemberCompleter(Completer):
    """Fuzzy search completer for project members."""

    def __init__(self, members: list[Member]):
        """Initialize the completer with selectable members."""
        self.members = members
        self.name_to_id = {m.name: m.id for m in members}

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        query = document.text.lower()

        for member in self.members:
            if not query or fuzzy_match(query, member.name.lower()):
                yield Completion(
                    text=member.name,
                    start_position=-len(document.text),
                    display=member.name,
                )


def select_member_interactive(
    members: list[Member], label: str, default: str = ""
) -> str | None:
    """
    Interactive member selection with fuzzy search.

    Args:
        members: Selectable (active) members
        label: What the member is being picked for, e.g. "Payer"
        default: Name to pre-fill

    Returns:
        Selected member ID, or None to skip
    """
    if not members:
        print("No active members to choose from")
        return None

    completer = MemberCompleter(members)
    session: PromptSession[str] = PromptSession(completer=completer)
    print("   Type to search, press Enter to confirm, Ctrl+C to skip")

    try:
        default_text = default
        while True:
            result = session.prompt(
                f"{label}: ",
                default=default_text,
                complete_while_typing=True,
            )

            if not result:
                return None

            member_id = completer.name_to_id.get(result.strip())
            if member_id:
                logger.info(f"User selected {label.lower()}: {result.strip()}")
                return member_id

            print("Unknown member. Pick from the list or press Tab to complete.")
            default_text = ""

    except KeyboardInterrupt:
        print("\nSkipped")
        return None
    except EOFError:
        return None


def confirm(question: str) -> bool:
    """Simple yes/no confirmation; Enter means no."""
    try:
        response = input(f"{question} [y/N] ").strip().lower()
    except (KeyboardInterrupt, EOFError):
        return False
    return response in ("y", "yes")

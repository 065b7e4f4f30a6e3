"""
Command-line interface for studying due flashcards.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from flashdeck.models import Card
from flashdeck.session import StudySession

logger = logging.getLogger(__name__)
console = Console()

_YES = {"y", "yes"}
_NO = {"n", "no"}


def _get_user_outcome() -> bool:
    """
    Ask whether the answer was recalled until the user answers y or n.

    Returns:
        True for "known", False for "not known".
    """
    while True:
        answer = console.input("[bold]Did you know it? (y/n): [/bold]")
        answer = (answer or "").strip().lower()
        if answer in _YES:
            return True
        if answer in _NO:
            return False
        console.print("[bold red]Invalid input. Please answer y or n.[/bold red]")


def _display_card(card: Card) -> None:
    """Show the question, wait for Enter, then reveal the answer."""
    console.print(Panel(Text(card.question), title="Question", border_style="green"))
    console.input("[italic]Press Enter to see the answer...[/italic]")
    console.print(Panel(Text(card.answer), title="Answer", border_style="blue"))


def _describe_next_review(card: Card) -> str:
    if card.interval == 0:
        return "[yellow]Not known.[/yellow] Next review in [bold]1 hour[/bold]."
    due = datetime.fromtimestamp(card.next_review_at / 1000, tz=timezone.utc)
    days = "day" if card.interval == 1 else "days"
    return (
        f"[green]Known.[/green] Next review in [bold]{card.interval} {days}[/bold] "
        f"on {due.strftime('%Y-%m-%d')}."
    )


def start_study_flow(session: StudySession, limit: Optional[int] = None) -> int:
    """
    Walk the user through every card that is due now.

    Args:
        session: The study session to review against.
        limit: Maximum number of cards to review.

    Returns:
        The number of cards reviewed.
    """
    due_now = session.get_due_counts().due_now
    if due_now == 0:
        console.print("[bold yellow]No cards are due for review.[/bold yellow]")
        console.print("[bold cyan]Study session finished.[/bold cyan]")
        return 0

    total = min(due_now, limit) if limit else due_now
    reviewed = 0
    while reviewed < total:
        card = session.get_current_card()
        if card is None or not card.is_due(session.clock()):
            break

        reviewed += 1
        console.rule(f"[bold]Card {reviewed} of {total}[/bold]")
        _display_card(card)
        known = _get_user_outcome()

        updated = session.mark_known() if known else session.mark_not_known()
        if updated is None:
            logger.error(f"Card {card.id} disappeared during review.")
            break
        console.print(_describe_next_review(updated))
        console.print("")

    console.print("[bold cyan]Study session finished. Well done![/bold cyan]")
    return reviewed

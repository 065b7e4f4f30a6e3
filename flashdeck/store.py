"""
In-memory card store and review log.

Both are plain containers owned by a single study session; persistence is the
gateway's concern.
"""

import logging
from typing import Dict, Iterable, Iterator, List, Optional

from .codec import generate_unique_id
from .constants import DEFAULT_EASE_FACTOR
from .models import Card, ReviewData, ReviewEvent

logger = logging.getLogger(__name__)


def new_card(
    question: str, answer: str, now: int, card_id: Optional[str] = None
) -> Card:
    """
    Create a never-reviewed card that is due immediately.

    Raises:
        pydantic.ValidationError: If question or answer is empty.
    """
    return Card(
        id=card_id or generate_unique_id(),
        question=question,
        answer=answer,
        interval=0,
        ease_factor=DEFAULT_EASE_FACTOR,
        review_count=0,
        last_reviewed_at=None,
        next_review_at=now,
        created=now,
    )


class CardStore:
    """Ordered collection of cards keyed by id."""

    def __init__(self, cards: Iterable[Card] = ()):
        self._cards: Dict[str, Card] = {}
        for card in cards:
            if card.id in self._cards:
                logger.warning(f"Duplicate card id {card.id}; keeping the last one.")
            self._cards[card.id] = card

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(list(self._cards.values()))

    def __contains__(self, card_id: object) -> bool:
        return card_id in self._cards

    def get(self, card_id: str) -> Optional[Card]:
        return self._cards.get(card_id)

    def all(self) -> List[Card]:
        return list(self._cards.values())

    def add(self, card: Card) -> None:
        if card.id in self._cards:
            raise ValueError(f"Card {card.id} already exists.")
        self._cards[card.id] = card

    def replace(self, card: Card) -> None:
        """Swap in a new version of an existing card, keeping its position."""
        if card.id not in self._cards:
            raise KeyError(card.id)
        self._cards[card.id] = card

    def remove(self, card_id: str) -> bool:
        """Delete a card by id. Review events that reference it are kept."""
        return self._cards.pop(card_id, None) is not None

    def replace_all(self, cards: Iterable[Card]) -> None:
        """Swap the whole collection, as an import does."""
        self._cards = {card.id: card for card in cards}


class ReviewLog:
    """Append-only sequence of review events."""

    def __init__(self, reviews: Iterable[ReviewEvent] = ()):
        self._reviews: List[ReviewEvent] = list(reviews)

    def __len__(self) -> int:
        return len(self._reviews)

    def __iter__(self) -> Iterator[ReviewEvent]:
        return iter(list(self._reviews))

    def append(self, event: ReviewEvent) -> None:
        self._reviews.append(event)

    def all(self) -> List[ReviewEvent]:
        return list(self._reviews)

    def for_card(self, card_id: str) -> List[ReviewEvent]:
        return [r for r in self._reviews if r.card_id == card_id]

    def replace_all(self, reviews: Iterable[ReviewEvent]) -> None:
        """Swap the whole log. Only imports do this."""
        self._reviews = list(reviews)


def snapshot(store: CardStore, log: ReviewLog) -> ReviewData:
    """Combine store and log into a persistable snapshot."""
    return ReviewData(cards=store.all(), reviews=log.all())

"""
This module defines the StudySession class, the entry point a front end uses
to drive spaced-repetition study. It owns the card store and review log for
one session, asks the scheduler which card comes next, and has every mutation
persisted through the gateway.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from . import codec
from .analytics import summarize_reviews
from .models import Card, DueCounts, ReviewData, ReviewEvent, utc_now_ms
from .persistence import PersistenceGateway
from .review_processor import ReviewProcessor
from .scheduler import BaseScheduler, SM2Scheduler, get_due_counts, select_next_card
from .store import CardStore, ReviewLog, new_card, snapshot

logger = logging.getLogger(__name__)


class StudySession:
    """
    Manages the cards and review history of one study session.

    The session hydrates from storage when constructed, so every mutation
    happens after hydration. After each mutation the full snapshot is
    persisted and the current card is re-selected.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        scheduler: Optional[BaseScheduler] = None,
        seed_cards: Iterable[Mapping] = (),
        clock: Callable[[], int] = utc_now_ms,
    ):
        """
        Parameters:
            gateway: Persistence gateway for the session's storage key.
            scheduler: Scheduler applied to outcomes (SM2Scheduler by default).
            seed_cards: ``{question, answer[, id]}`` mappings used when
                storage holds no cards.
            clock: Returns the current time in epoch ms.
        """
        self.gateway = gateway
        self.scheduler = scheduler or SM2Scheduler()
        self.clock = clock

        data = gateway.hydrate(seed_cards, now=clock())
        self.store = CardStore(data.cards)
        self.log = ReviewLog(data.reviews)
        self.review_processor = ReviewProcessor(
            self.store, self.log, self.scheduler, gateway
        )
        if gateway.source == "seed":
            self._persist()

        self._current_card_id: Optional[str] = None
        self._select_current()

    # --- internal helpers ---

    def _persist(self) -> None:
        self.gateway.persist(snapshot(self.store, self.log))

    def _select_current(self) -> None:
        card = select_next_card(self.store.all(), self.clock())
        self._current_card_id = card.id if card else None

    # --- read API ---

    @property
    def cards(self) -> List[Card]:
        return self.store.all()

    @property
    def reviews(self) -> List[ReviewEvent]:
        return self.log.all()

    def get_current_card(self) -> Optional[Card]:
        """The card to study now, or None when the deck is empty."""
        if self._current_card_id is None:
            return None
        return self.store.get(self._current_card_id)

    def get_due_counts(self, now: Optional[int] = None) -> DueCounts:
        return get_due_counts(self.store, self.clock() if now is None else now)

    def export_snapshot(self) -> ReviewData:
        """The full ``{cards, reviews}`` state."""
        return snapshot(self.store, self.log)

    def export_cards(self, now: Optional[int] = None) -> Dict[str, Any]:
        """Export document with review statistics and the review history."""
        now = self.clock() if now is None else now
        data = self.export_snapshot()
        stats = summarize_reviews(data, now).model_dump(mode="json", by_alias=True)
        return codec.export_cards(data, stats=stats, now=now)

    # --- outcome reports ---

    def _mark(self, known: bool) -> Optional[Card]:
        card = self.get_current_card()
        if card is None:
            logger.info("No current card to review.")
            return None
        updated = self.review_processor.process_review(
            card.id, known, reviewed_at=self.clock()
        )
        self._select_current()
        return updated

    def mark_known(self) -> Optional[Card]:
        """Record that the current card was recalled. Returns the updated card."""
        return self._mark(True)

    def mark_not_known(self) -> Optional[Card]:
        """Record that the current card was forgotten. Returns the updated card."""
        return self._mark(False)

    # --- card lifecycle ---

    def add_card(self, question: str, answer: str) -> Card:
        """
        Add a never-reviewed card, due immediately.

        Raises:
            pydantic.ValidationError: If question or answer is empty.
        """
        card = new_card(question, answer, self.clock())
        self.store.add(card)
        logger.info(f"Added card {card.id}")
        self._persist()
        self._select_current()
        return card

    def remove_card(self, card_id: str) -> bool:
        """
        Delete a card. Its review events stay in the log.

        Returns:
            False if no card has that id.
        """
        if not self.store.remove(card_id):
            logger.info(f"Card {card_id} not found; nothing removed.")
            return False
        logger.info(f"Removed card {card_id}")
        self._persist()
        self._select_current()
        return True

    # --- import ---

    def import_snapshot(self, payload: Any) -> bool:
        """
        Replace the cards with an imported collection.

        Accepts a ``{cards, reviews}`` snapshot (reviews are appended to the
        existing log), an export document, or a bare list of
        ``{question, answer}`` objects (existing reviews kept).

        Returns:
            True on success; False leaves the session untouched.
        """
        imported = codec.import_snapshot(
            payload, existing_reviews=self.log.all(), now=self.clock()
        )
        if imported is None:
            return False

        self.store.replace_all(imported.cards)
        self.log.replace_all(imported.reviews)
        logger.info(
            f"Imported {len(imported.cards)} card(s); "
            f"review log now holds {len(imported.reviews)} event(s)."
        )
        self._persist()
        self._select_current()
        return True

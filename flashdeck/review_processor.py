"""
Shared review processing logic for flashdeck.

The ReviewProcessor applies one outcome report end to end:
1. Scheduler computation (new card state + review event)
2. Atomic replacement of the card in the store
3. Appending the event to the review log
4. Persisting the full snapshot
"""

import logging
from typing import Optional

from .models import Card, utc_now_ms
from .persistence import PersistenceGateway
from .scheduler import BaseScheduler
from .store import CardStore, ReviewLog, snapshot

logger = logging.getLogger(__name__)


class ReviewProcessor:
    """
    Processes outcome reports against a card store and review log.
    """

    def __init__(
        self,
        store: CardStore,
        log: ReviewLog,
        scheduler: BaseScheduler,
        gateway: PersistenceGateway,
    ):
        self.store = store
        self.log = log
        self.scheduler = scheduler
        self.gateway = gateway

    def process_review(
        self, card_id: str, known: bool, reviewed_at: Optional[int] = None
    ) -> Card:
        """
        Reschedule a card after an outcome and record the review.

        The card is swapped in only after the scheduler has produced both the
        new state and the review event, so a failure leaves the store and log
        untouched.

        Args:
            card_id: Id of the reviewed card.
            known: Whether the user recalled the answer.
            reviewed_at: Review time in epoch ms (defaults to now).

        Returns:
            The updated card.

        Raises:
            KeyError: If no card with ``card_id`` exists.
        """
        ts = utc_now_ms() if reviewed_at is None else reviewed_at

        card = self.store.get(card_id)
        if card is None:
            raise KeyError(f"Card {card_id} not found")

        logger.debug(f"Processing review for card {card_id} (known={known})")
        updated_card, event = self.scheduler.apply(card, known, ts)

        self.store.replace(updated_card)
        self.log.append(event)
        self.gateway.persist(snapshot(self.store, self.log))

        logger.debug(
            f"Review processed for card {card_id}. "
            f"Interval: {updated_card.interval}d, "
            f"next review at {updated_card.next_review_at}"
        )
        return updated_card

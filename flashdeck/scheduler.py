# flashdeck/scheduler.py

"""
Defines the BaseScheduler abstract class and the SM2Scheduler for flashdeck,
a simplified SM-2 family spaced-repetition scheduler, along with the due-card
selection and due-count helpers.
"""

import heapq
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from pydantic import BaseModel, Field, model_validator

from .codec import generate_unique_id
from .constants import (
    DEFAULT_EASE_FACTOR,
    EASE_BONUS,
    EASE_PENALTY,
    FIRST_INTERVAL_DAYS,
    MAX_EASE_FACTOR,
    MIN_EASE_FACTOR,
    MS_PER_DAY,
    RELEARN_DELAY_MS,
)
from .models import Card, DueCounts, ReviewEvent

logger = logging.getLogger(__name__)


@dataclass
class SchedulerOutput:
    interval: int
    ease_factor: float
    next_review_at: int
    last_reviewed_at: int
    review_count: int


class BaseScheduler(ABC):
    """
    Abstract base class for all schedulers in flashdeck.
    """

    @abstractmethod
    def compute_next_state(
        self, card: Card, known: bool, now: int
    ) -> SchedulerOutput:
        """
        Computes the next scheduling state of a card after an outcome.

        Args:
            card: The card as it was before the review.
            known: Whether the user recalled the answer.
            now: Epoch milliseconds of the review.

        Returns:
            A SchedulerOutput object containing the new state.
        """
        pass

    def apply(
        self, card: Card, known: bool, now: int
    ) -> Tuple[Card, ReviewEvent]:
        """
        Return the rescheduled card and the review event recording the outcome.

        The input card is left untouched.
        """
        output = self.compute_next_state(card, known, now)
        updated_card = card.model_copy(
            update={
                "interval": output.interval,
                "ease_factor": output.ease_factor,
                "review_count": output.review_count,
                "last_reviewed_at": output.last_reviewed_at,
                "next_review_at": output.next_review_at,
            }
        )
        event = ReviewEvent(
            id=generate_unique_id(),
            card_id=card.id,
            known=known,
            timestamp=now,
        )
        logger.debug(
            f"Card {card.id} {'known' if known else 'not known'}: "
            f"interval {card.interval} -> {output.interval}, "
            f"ease {card.ease_factor:.2f} -> {output.ease_factor:.2f}"
        )
        return updated_card, event


class SchedulerConfig(BaseModel):
    """Configuration for the SM-2 scheduler."""

    initial_ease: float = DEFAULT_EASE_FACTOR
    min_ease: float = Field(default=MIN_EASE_FACTOR, gt=0)
    max_ease: float = MAX_EASE_FACTOR
    ease_bonus: float = Field(default=EASE_BONUS, ge=0)
    ease_penalty: float = Field(default=EASE_PENALTY, ge=0)
    first_interval_days: int = Field(default=FIRST_INTERVAL_DAYS, ge=1)
    relearn_delay_ms: int = Field(default=RELEARN_DELAY_MS, ge=0)

    @model_validator(mode="after")
    def check_ease_bounds(self) -> "SchedulerConfig":
        if self.min_ease > self.max_ease:
            raise ValueError(
                f"min_ease ({self.min_ease}) exceeds max_ease ({self.max_ease})"
            )
        if not (self.min_ease <= self.initial_ease <= self.max_ease):
            raise ValueError(
                f"initial_ease ({self.initial_ease}) must lie within "
                f"[{self.min_ease}, {self.max_ease}]"
            )
        return self


def round_half_up(value: float) -> int:
    """Round a non-negative number to the nearest integer, halves going up."""
    return int(math.floor(value + 0.5))


class SM2Scheduler(BaseScheduler):
    """
    Simplified SM-2 scheduler.

    A recall on the short cycle graduates the card to ``first_interval_days``;
    later recalls multiply the interval by the ease factor. A lapse drops the
    card back to the short cycle and makes it due again after
    ``relearn_delay_ms``. The ease factor is nudged up or down and clamped.
    """

    def __init__(self, config: Optional[SchedulerConfig] = None):
        if config is None:
            config = SchedulerConfig()
        self.config = config

    def compute_next_state(
        self, card: Card, known: bool, now: int
    ) -> SchedulerOutput:
        cfg = self.config
        if known:
            if card.interval == 0:
                interval = cfg.first_interval_days
            else:
                interval = round_half_up(card.interval * card.ease_factor)
            ease = min(card.ease_factor + cfg.ease_bonus, cfg.max_ease)
            next_review_at = now + interval * MS_PER_DAY
        else:
            interval = 0
            ease = max(card.ease_factor - cfg.ease_penalty, cfg.min_ease)
            next_review_at = now + cfg.relearn_delay_ms

        return SchedulerOutput(
            interval=interval,
            ease_factor=ease,
            next_review_at=next_review_at,
            last_reviewed_at=now,
            review_count=card.review_count + 1,
        )


_DEFAULT_SCHEDULER = SM2Scheduler()


def mark_known(card: Card, now: int) -> Tuple[Card, ReviewEvent]:
    """Reschedule ``card`` after a successful recall at ``now``."""
    return _DEFAULT_SCHEDULER.apply(card, True, now)


def mark_not_known(card: Card, now: int) -> Tuple[Card, ReviewEvent]:
    """Reschedule ``card`` after a failed recall at ``now``."""
    return _DEFAULT_SCHEDULER.apply(card, False, now)


def _selection_key(card: Card, now: int) -> Tuple[int, int]:
    return (0 if card.is_due(now) else 1, card.next_review_at)


def select_next_card(cards: Sequence[Card], now: int) -> Optional[Card]:
    """
    Pick the card to present next.

    Due cards (``next_review_at <= now``) come before every card that is not
    yet due; within each group the earliest ``next_review_at`` wins, and ties
    keep store order. Returns None for an empty deck.
    """
    best = heapq.nsmallest(1, cards, key=lambda c: _selection_key(c, now))
    return best[0] if best else None


def get_due_counts(cards: Iterable[Card], now: int) -> DueCounts:
    """
    Count cards per due bucket.

    Buckets are ``<= now``, ``(now, now+1d]``, ``(now+1d, now+2d]`` and
    ``(now+2d, now+7d]``; a card on a boundary falls in the earlier bucket.
    """
    due_now = due_today = due_tomorrow = due_this_week = total = 0
    for card in cards:
        total += 1
        at = card.next_review_at
        if at <= now:
            due_now += 1
        elif at <= now + MS_PER_DAY:
            due_today += 1
        elif at <= now + 2 * MS_PER_DAY:
            due_tomorrow += 1
        elif at <= now + 7 * MS_PER_DAY:
            due_this_week += 1

    return DueCounts(
        due_now=due_now,
        due_today=due_today,
        due_tomorrow=due_tomorrow,
        due_this_week=due_this_week,
        total=total,
    )

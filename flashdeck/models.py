"""
Pydantic models for cards, review events and the persisted snapshot.

Attributes are snake_case in Python; the persisted and exported JSON uses the
camelCase names (``easeFactor``, ``nextReviewAt`` ...). Both spellings are
accepted on input.
"""

from __future__ import annotations

import time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .constants import DEFAULT_EASE_FACTOR, MAX_EASE_FACTOR, MIN_EASE_FACTOR


def utc_now_ms() -> int:
    """Current time as integer milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    def to_wire(self) -> dict:
        """Dump to the camelCase JSON-compatible form used on disk."""
        return self.model_dump(by_alias=True, mode="json")


class Card(_WireModel):
    """
    A question/answer study unit with its spaced-repetition scheduling state.

    Cards are immutable; the scheduler produces a new instance for every
    outcome and the store swaps it in by id.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque unique identifier, stable for the card's lifetime.",
    )
    question: str = Field(..., min_length=1, description="Prompt text.")
    answer: str = Field(..., min_length=1, description="Answer text.")
    interval: int = Field(
        default=0,
        ge=0,
        description="Days until next review after a recall; 0 = short cycle.",
    )
    ease_factor: float = Field(
        default=DEFAULT_EASE_FACTOR,
        ge=MIN_EASE_FACTOR,
        le=MAX_EASE_FACTOR,
        description="Multiplier applied to the interval on a recall.",
    )
    review_count: int = Field(
        default=0, ge=0, description="Number of completed reviews."
    )
    last_reviewed_at: Optional[int] = Field(
        default=None, description="Epoch ms of the most recent review."
    )
    next_review_at: int = Field(
        ..., description="Epoch ms at/after which the card is due."
    )
    created: int = Field(..., description="Epoch ms of card creation.")

    def is_due(self, now: int) -> bool:
        return self.next_review_at <= now


class ReviewEvent(_WireModel):
    """One outcome report for one card. Never mutated after creation."""

    id: str = Field(..., min_length=1)
    card_id: str = Field(
        ...,
        description="Id of the reviewed card; may outlive the card itself.",
    )
    known: bool
    timestamp: int = Field(..., description="Epoch ms of the review.")


class ReviewData(BaseModel):
    """The persisted snapshot: every card plus the full review log."""

    model_config = ConfigDict(extra="ignore")

    cards: List[Card] = Field(default_factory=list)
    reviews: List[ReviewEvent] = Field(default_factory=list)

    @field_validator("reviews", mode="before")
    @classmethod
    def none_reviews_to_empty(cls, v):
        """Older snapshots may carry ``reviews: null``."""
        return [] if v is None else v

    def to_wire(self) -> dict:
        return {
            "cards": [card.to_wire() for card in self.cards],
            "reviews": [review.to_wire() for review in self.reviews],
        }


class DueCounts(_WireModel):
    """Number of cards falling into each due-time bucket."""

    due_now: int = 0
    due_today: int = 0
    due_tomorrow: int = 0
    due_this_week: int = 0
    total: int = 0

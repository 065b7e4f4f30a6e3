"""
Review statistics derived from a snapshot.

Review events may reference cards that have since been deleted. Those
orphaned events still count toward totals, accuracy and streaks, but are left
out of anything reported per card.
"""

from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .constants import MS_PER_DAY
from .models import Card, ReviewData, ReviewEvent
from .scheduler import round_half_up


class DailyReviewCount(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    day: date
    reviews: int


class ReviewStats(BaseModel):
    """Summary figures for a study history."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_reviews: int = 0
    known_reviews: int = 0
    accuracy_percentage: int = 0
    current_streak: int = 0
    upcoming_reviews: int = 0
    orphaned_reviews: int = 0
    last_seven_days: List[DailyReviewCount] = Field(default_factory=list)


def _utc_day(ms: int) -> date:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).date()


def orphaned_reviews(data: ReviewData) -> List[ReviewEvent]:
    """Review events whose card no longer exists."""
    card_ids = {card.id for card in data.cards}
    return [r for r in data.reviews if r.card_id not in card_ids]


def current_streak(reviews: List[ReviewEvent], today: date) -> int:
    """
    Number of consecutive review days ending today, or yesterday if nothing
    has been reviewed yet today.
    """
    days = sorted({_utc_day(r.timestamp) for r in reviews}, reverse=True)
    if not days or days[0] < today - timedelta(days=1):
        return 0

    streak = 1
    for previous, current in zip(days, days[1:]):
        if previous - current != timedelta(days=1):
            break
        streak += 1
    return streak


def summarize_reviews(data: ReviewData, now: int) -> ReviewStats:
    total = len(data.reviews)
    known = sum(1 for r in data.reviews if r.known)
    accuracy = round_half_up(known / total * 100) if total else 0

    today = _utc_day(now)
    per_day = Counter(_utc_day(r.timestamp) for r in data.reviews)
    last_seven = [
        DailyReviewCount(day=day, reviews=per_day.get(day, 0))
        for day in (today - timedelta(days=offset) for offset in range(6, -1, -1))
    ]

    upcoming = sum(
        1
        for card in data.cards
        if now < card.next_review_at < now + 7 * MS_PER_DAY
    )

    return ReviewStats(
        total_reviews=total,
        known_reviews=known,
        accuracy_percentage=accuracy,
        current_streak=current_streak(data.reviews, today),
        upcoming_reviews=upcoming,
        orphaned_reviews=len(orphaned_reviews(data)),
        last_seven_days=last_seven,
    )


def most_missed_cards(data: ReviewData, limit: int = 5) -> List[Tuple[Card, int]]:
    """
    Existing cards with the most "not known" reviews, most missed first.
    Orphaned events are skipped.
    """
    cards_by_id = {card.id: card for card in data.cards}
    misses = Counter(
        r.card_id
        for r in data.reviews
        if not r.known and r.card_id in cards_by_id
    )
    return [(cards_by_id[card_id], count) for card_id, count in misses.most_common(limit)]

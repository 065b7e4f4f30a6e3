"""
Import/export codec for flashcard collections.

Untrusted payloads (decoded JSON) are validated here into ``Card`` and
``ReviewData`` models before any other part of flashdeck touches them.
Validation problems are returned as itemized messages rather than raised.
"""

import itertools
import logging
import secrets
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError

from .constants import DEFAULT_EASE_FACTOR, EXPORT_FORMAT_VERSION
from .models import Card, ReviewData, ReviewEvent, utc_now_ms

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_ID_COUNTER = itertools.count()
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Fields whose absence triggers a "missing scheduling data" warning.
SCHEDULING_FIELDS = ("interval", "easeFactor", "reviewCount", "nextReviewAt")

# Field names written by earlier versions of the export format.
LEGACY_FIELD_ALIASES = {
    "ease": "easeFactor",
    "reviews": "reviewCount",
    "nextReview": "nextReviewAt",
}

_CARD_WIRE_FIELDS = (
    "id",
    "question",
    "answer",
    "interval",
    "easeFactor",
    "reviewCount",
    "lastReviewedAt",
    "nextReviewAt",
    "created",
)


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_unique_id() -> str:
    """
    Generate an identifier that is unique within this process.

    Combines a base-36 millisecond timestamp, a process-wide counter and a
    random suffix, so ids stay distinct even when many are created within the
    same millisecond.
    """
    stamp = _to_base36(utc_now_ms())
    sequence = _to_base36(next(_ID_COUNTER)).rjust(4, "0")
    return f"{stamp}{sequence}{secrets.token_hex(3)}"


def iso_timestamp(ms: int) -> str:
    """Format epoch milliseconds as an ISO-8601 UTC string (``...Z``)."""
    dt = _EPOCH + timedelta(milliseconds=ms)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso_timestamp(value: str) -> int:
    """Parse an ISO-8601 string into epoch milliseconds. Naive means UTC."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - _EPOCH) // timedelta(milliseconds=1)


class ImportResult(BaseModel):
    """Outcome of validating an imported payload."""

    is_valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    cards: List[Card] = Field(default_factory=list)
    stats: Optional[Dict[str, Any]] = None
    review_history: List[Any] = Field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.is_valid = False


def _apply_legacy_aliases(raw_card: Dict[str, Any]) -> Dict[str, Any]:
    """Rename legacy keys in place on a copied card dict."""
    for legacy, current in LEGACY_FIELD_ALIASES.items():
        if legacy in raw_card:
            value = raw_card.pop(legacy)
            if current not in raw_card:
                raw_card[current] = value
    next_review = raw_card.get("nextReviewAt")
    if isinstance(next_review, str):
        raw_card["nextReviewAt"] = parse_iso_timestamp(next_review)
    return raw_card


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def _format_validation_error(e: ValidationError) -> str:
    details = e.errors()[0]
    field = ".".join(map(str, details["loc"]))
    return f"'{field}': {details['msg']}"


def _validate_card_entry(
    raw: Any, index: int, now: int, result: ImportResult
) -> Optional[Card]:
    if not isinstance(raw, Mapping):
        result.add_error(f"Card at index {index} is not an object")
        return None

    card = {k: v for k, v in raw.items()}

    if not card.get("id"):
        result.warnings.append(
            f"Card at index {index} is missing an ID. A new ID will be generated."
        )
        card["id"] = generate_unique_id()
    elif not isinstance(card["id"], str):
        card["id"] = str(card["id"])

    text_ok = True
    if not _is_text(card.get("question")):
        result.add_error(f"Card at index {index} has invalid or missing question")
        text_ok = False
    if not _is_text(card.get("answer")):
        result.add_error(f"Card at index {index} has invalid or missing answer")
        text_ok = False

    try:
        _apply_legacy_aliases(card)
    except (TypeError, ValueError) as e:
        result.add_error(
            f"Card at index {index} has an unreadable review date: {e}"
        )
        return None

    missing = [f for f in SCHEDULING_FIELDS if f not in card]
    if missing:
        result.warnings.append(
            f"Card at index {index} is missing scheduling data "
            f"({', '.join(missing)}). Setting default values."
        )
        defaults = {
            "interval": 0,
            "easeFactor": DEFAULT_EASE_FACTOR,
            "reviewCount": 0,
            "nextReviewAt": now,
        }
        for field in missing:
            card[field] = defaults[field]
    card.setdefault("lastReviewedAt", None)
    card.setdefault("created", now)

    if not text_ok:
        return None

    try:
        return Card.model_validate(
            {k: card[k] for k in _CARD_WIRE_FIELDS if k in card}
        )
    except ValidationError as e:
        result.add_error(
            f"Card at index {index} has invalid scheduling data: "
            f"{_format_validation_error(e)}"
        )
        return None


def validate_imported_data(
    data: Any, now: Optional[int] = None
) -> ImportResult:
    """
    Validate an imported payload and normalize its cards.

    Fatal problems (payload not an object, no ``cards`` list, a card without
    usable question/answer text, out-of-range scheduling values) land in
    ``errors`` and make the result invalid; every card is still examined so
    all problems are reported at once. Repairs (generated ids, default
    scheduling data, dropped ``stats``/``reviewHistory``) land in ``warnings``.

    Args:
        data: The decoded payload, of any shape.
        now: Epoch ms used for backfilled review times; defaults to the
            current time.

    Returns:
        An ImportResult. ``cards`` is populated only when the result is valid.
        The payload itself is not modified.
    """
    now = utc_now_ms() if now is None else now
    result = ImportResult()

    if not isinstance(data, Mapping):
        result.add_error("Invalid data format: Expected a JSON object")
        return result

    raw_cards = data.get("cards")
    if not isinstance(raw_cards, list):
        result.add_error("Missing or invalid cards array")
        return result

    cards: List[Card] = []
    for index, raw in enumerate(raw_cards):
        card = _validate_card_entry(raw, index, now, result)
        if card is not None:
            cards.append(card)

    stats = data.get("stats")
    if stats is not None:
        if isinstance(stats, Mapping):
            result.stats = dict(stats)
        else:
            result.warnings.append(
                "Invalid stats object format. Using default stats."
            )

    history = data.get("reviewHistory")
    if history is not None:
        if isinstance(history, list):
            result.review_history = list(history)
        else:
            result.warnings.append(
                "Invalid review history format. Review history will be reset."
            )

    if result.is_valid:
        result.cards = cards

    logger.debug(
        f"Validated import: {len(raw_cards)} card(s), "
        f"{len(result.errors)} error(s), {len(result.warnings)} warning(s)"
    )
    return result


def new_card_dict(question: Any, answer: Any, now: int) -> Dict[str, Any]:
    """Wire-form dict for a never-reviewed card."""
    return {
        "id": generate_unique_id(),
        "question": question,
        "answer": answer,
        "interval": 0,
        "easeFactor": DEFAULT_EASE_FACTOR,
        "reviewCount": 0,
        "lastReviewedAt": None,
        "nextReviewAt": now,
        "created": now,
    }


def _loose_card(raw: Mapping, now: int) -> Card:
    card = _apply_legacy_aliases(dict(raw))
    card_id = card.get("id")
    return Card.model_validate(
        {
            "id": str(card_id) if card_id else generate_unique_id(),
            "question": card.get("question"),
            "answer": card.get("answer"),
            "interval": card.get("interval") or 0,
            "easeFactor": card.get("easeFactor") or DEFAULT_EASE_FACTOR,
            "reviewCount": card.get("reviewCount") or 0,
            "lastReviewedAt": card.get("lastReviewedAt") or None,
            "nextReviewAt": card.get("nextReviewAt") or now,
            "created": card.get("created") or now,
        }
    )


def import_snapshot(
    payload: Any,
    existing_reviews: Sequence[ReviewEvent] = (),
    now: Optional[int] = None,
) -> Optional[ReviewData]:
    """
    Build replacement state from a snapshot, export document or bare card list.

    - ``{"cards": [...], "reviews": [...]}`` (or an export document carrying
      ``reviewHistory``): cards get defaults for falsy scheduling fields and
      imported reviews are appended after ``existing_reviews``.
    - ``[{"question": ..., "answer": ...}, ...]``: every card starts fresh
      and ``existing_reviews`` are kept.

    Returns:
        The new ReviewData, or None when the payload has neither shape or any
        card or review fails validation.
    """
    now = utc_now_ms() if now is None else now

    try:
        if isinstance(payload, Mapping) and isinstance(
            payload.get("cards"), list
        ):
            cards = []
            for raw in payload["cards"]:
                if not isinstance(raw, Mapping):
                    logger.warning(f"Rejected import: card entry {raw!r}")
                    return None
                cards.append(_loose_card(raw, now))

            raw_reviews = payload.get("reviews")
            if raw_reviews is None:
                raw_reviews = payload.get("reviewHistory")
            if raw_reviews is None:
                raw_reviews = []
            if not isinstance(raw_reviews, list):
                logger.warning("Rejected import: reviews is not a list")
                return None
            imported = [ReviewEvent.model_validate(r) for r in raw_reviews]
            return ReviewData(
                cards=cards, reviews=list(existing_reviews) + imported
            )

        if isinstance(payload, list):
            cards = []
            for raw in payload:
                if not isinstance(raw, Mapping):
                    logger.warning(f"Rejected import: card entry {raw!r}")
                    return None
                cards.append(
                    Card.model_validate(
                        new_card_dict(raw.get("question"), raw.get("answer"), now)
                    )
                )
            return ReviewData(cards=cards, reviews=list(existing_reviews))
    except ValidationError as e:
        logger.warning(
            f"Rejected import: {_format_validation_error(e)}"
        )
        return None
    except (TypeError, ValueError) as e:
        logger.warning(f"Rejected import: {e}")
        return None

    logger.warning(
        f"Rejected import: unsupported payload type {type(payload).__name__}"
    )
    return None


def prepare_data_for_export(
    data: Mapping, now: Optional[int] = None
) -> Dict[str, Any]:
    """
    Assemble an export document.

    ``stats`` and ``reviewHistory`` default to empty when absent; the document
    is stamped with ``exportDate`` (ISO-8601) and the format ``version``.
    """
    now = utc_now_ms() if now is None else now
    cards = [
        card.to_wire() if isinstance(card, Card) else card
        for card in data.get("cards") or []
    ]
    return {
        "cards": cards,
        "stats": data.get("stats") or {},
        "reviewHistory": data.get("reviewHistory") or [],
        "exportDate": iso_timestamp(now),
        "version": EXPORT_FORMAT_VERSION,
    }


def export_cards(
    review_data: ReviewData,
    stats: Optional[Dict[str, Any]] = None,
    now: Optional[int] = None,
) -> Dict[str, Any]:
    """Export document for a snapshot; its reviews become ``reviewHistory``."""
    return prepare_data_for_export(
        {
            "cards": review_data.cards,
            "stats": stats,
            "reviewHistory": [r.to_wire() for r in review_data.reviews],
        },
        now=now,
    )

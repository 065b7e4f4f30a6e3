"""
Persistence gateway between a study session and durable storage.

Hydrates the session's snapshot once at startup and writes the full snapshot
back after every mutation. Storage failures are logged and absorbed here; they
never reach the caller.
"""

import logging
from typing import Iterable, Mapping, Optional

from pydantic import ValidationError

from .constants import DEFAULT_STORAGE_KEY
from .db.database import SnapshotDatabase
from .db.db_utils import json_to_snapshot, snapshot_to_json
from .exceptions import DatabaseError, MarshallingError
from .models import ReviewData, utc_now_ms
from .store import new_card

logger = logging.getLogger(__name__)


class PersistenceGateway:
    """
    Loads and saves the ``{cards, reviews}`` snapshot under one storage key.
    """

    def __init__(
        self, db: SnapshotDatabase, storage_key: str = DEFAULT_STORAGE_KEY
    ):
        self.db = db
        self.storage_key = storage_key
        self._hydrated = False
        # Where the hydrated state came from: "storage", "seed" or "empty".
        self.source: Optional[str] = None

    @property
    def is_hydrated(self) -> bool:
        return self._hydrated

    def _read_snapshot(self) -> Optional[ReviewData]:
        try:
            raw = self.db.get(self.storage_key)
        except DatabaseError as e:
            logger.warning(f"Could not read saved flashcard data: {e}")
            return None
        if raw is None:
            return None
        try:
            return json_to_snapshot(raw)
        except MarshallingError as e:
            logger.warning(f"Discarding malformed flashcard data: {e}")
            return None

    def _seed_snapshot(
        self, seed_cards: Iterable[Mapping], now: int
    ) -> Optional[ReviewData]:
        try:
            cards = [
                new_card(
                    seed["question"], seed["answer"], now, card_id=seed.get("id")
                )
                for seed in seed_cards
            ]
        except (KeyError, TypeError, ValidationError) as e:
            logger.warning(f"Ignoring invalid seed cards: {e}")
            return None
        return ReviewData(cards=cards, reviews=[]) if cards else None

    def hydrate(
        self, seed_cards: Iterable[Mapping] = (), now: Optional[int] = None
    ) -> ReviewData:
        """
        Produce the session's starting state.

        A saved snapshot with at least one card is adopted as-is. Otherwise
        the seed cards, if any, become fresh never-reviewed cards with an
        empty review log. Failing both, the state is empty. Unreadable or
        malformed saved data counts as absent.
        """
        now = utc_now_ms() if now is None else now
        saved = self._read_snapshot()

        if saved is not None and saved.cards:
            data = saved
            self.source = "storage"
            logger.info(
                f"Loaded {len(data.cards)} card(s) and {len(data.reviews)} "
                "review(s) from storage."
            )
        else:
            seeded = self._seed_snapshot(seed_cards, now)
            data = seeded or ReviewData()
            self.source = "seed" if seeded else "empty"
            logger.info(f"Starting with {len(data.cards)} seed card(s).")

        self._hydrated = True
        return data

    def persist(self, data: ReviewData) -> bool:
        """
        Write the full snapshot. Refused until hydration has run.

        Returns:
            True if the snapshot was written.
        """
        if not self._hydrated:
            logger.warning("Refusing to persist before hydration has completed.")
            return False
        try:
            self.db.put(self.storage_key, snapshot_to_json(data))
        except DatabaseError as e:
            logger.error(f"Failed to save flashcard data: {e}")
            return False
        return True


"""
Builds the StudySession every CLI command works against.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Mapping, Optional

from flashdeck.db.database import SnapshotDatabase
from flashdeck.persistence import PersistenceGateway
from flashdeck.seeds import DEFAULT_SEED_CARDS, load_seed_file
from flashdeck.session import StudySession

logger = logging.getLogger(__name__)


def resolve_seed_cards(seed_path: Optional[Path]) -> List[Mapping]:
    """
    Seed cards from a YAML deck, or the built-in introductory deck.

    Raises:
        SeedFileError: If ``seed_path`` cannot be loaded.
    """
    if seed_path is None:
        return list(DEFAULT_SEED_CARDS)
    return load_seed_file(seed_path)


@contextmanager
def open_study_session(
    db_path: Path, storage_key: str, seed_path: Optional[Path] = None
) -> Iterator[StudySession]:
    """
    Open the database, hydrate a session and close the database afterwards.
    """
    seed_cards = resolve_seed_cards(seed_path)
    with SnapshotDatabase(db_path=db_path) as db:
        gateway = PersistenceGateway(db, storage_key=storage_key)
        session = StudySession(gateway, seed_cards=seed_cards)
        logger.debug(f"Opened study session on {db_path} ({gateway.source})")
        yield session

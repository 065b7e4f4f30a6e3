import logging
import pytest
from pathlib import Path
from typing import Generator

from flashdeck.constants import DEFAULT_EASE_FACTOR
from flashdeck.db import SnapshotDatabase
from flashdeck.models import Card
from flashdeck.persistence import PersistenceGateway

# 2023-11-14T22:13:20Z
NOW = 1_700_000_000_000


class FakeClock:
    """Callable clock returning a settable epoch-ms time."""

    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


# each test runs on cwd to its temp dir
@pytest.fixture(autouse=True)
def go_to_tmpdir(request):
    """
    Run each test with the working directory set to its tmpdir, so that
    stray .env files or database files never leak between tests.
    """
    tmpdir = request.getfixturevalue("tmpdir")
    with tmpdir.as_cwd():
        yield


@pytest.fixture
def now() -> int:
    return NOW


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# --- Database Fixtures ---
@pytest.fixture
def db_path_file(tmp_path: Path) -> Path:
    """Path to a file-backed test database inside tmp_path."""
    return tmp_path / "test_flashdeck.db"


@pytest.fixture(params=["memory", "file"])
def snapshot_db(
    request, db_path_file: Path
) -> Generator[SnapshotDatabase, None, None]:
    """
    A SnapshotDatabase, either in-memory or file-backed. The connection is
    closed on teardown and the file-backed database removed.
    """
    if request.param == "memory":
        db = SnapshotDatabase(":memory:")
    else:
        db = SnapshotDatabase(db_path_file)
    try:
        yield db
    finally:
        db.close_connection()
        if request.param == "file" and db_path_file.exists():
            try:
                db_path_file.unlink()
            except OSError as e:
                logging.warning(
                    f"Error removing temporary DB file in test fixture teardown: {e}"
                )


@pytest.fixture
def memory_db() -> Generator[SnapshotDatabase, None, None]:
    db = SnapshotDatabase(":memory:")
    try:
        yield db
    finally:
        db.close_connection()


@pytest.fixture
def gateway(memory_db: SnapshotDatabase) -> PersistenceGateway:
    return PersistenceGateway(memory_db, storage_key="test-key")


def make_card(card_id: str, next_review_at: int, **overrides) -> Card:
    """Build a card with sensible defaults for scheduling tests."""
    fields = dict(
        id=card_id,
        question=f"Question {card_id}",
        answer=f"Answer {card_id}",
        interval=0,
        ease_factor=DEFAULT_EASE_FACTOR,
        review_count=0,
        last_reviewed_at=None,
        next_review_at=next_review_at,
        created=NOW - 10_000,
    )
    fields.update(overrides)
    return Card(**fields)


@pytest.fixture
def sample_card() -> Card:
    """A never-reviewed card that is due at NOW."""
    return make_card("card-1", NOW)


@pytest.fixture
def sample_cards() -> list:
    """Three cards: overdue, not yet due and slightly overdue."""
    return [
        make_card("early", NOW - 1000),
        make_card("future", NOW + 1000),
        make_card("late", NOW - 500),
    ]

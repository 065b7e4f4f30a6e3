"""flashdeck - A small spaced repetition flashcard library."""

from .models import Card, ReviewEvent, ReviewData, DueCounts
from .scheduler import SM2Scheduler, SchedulerConfig
from .db import SnapshotDatabase
from .persistence import PersistenceGateway
from .session import StudySession
from .codec import (
    ImportResult,
    generate_unique_id,
    prepare_data_for_export,
    validate_imported_data,
)

__all__ = [
    "Card",
    "ReviewEvent",
    "ReviewData",
    "DueCounts",
    "SM2Scheduler",
    "SchedulerConfig",
    "SnapshotDatabase",
    "PersistenceGateway",
    "StudySession",
    "ImportResult",
    "generate_unique_id",
    "prepare_data_for_export",
    "validate_imported_data",
]

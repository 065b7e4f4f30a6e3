"""Storage package for flashdeck.

Only SnapshotDatabase is exported as the public API.
"""

from .database import SnapshotDatabase

__all__ = ["SnapshotDatabase"]

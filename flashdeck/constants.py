"""
Scheduling and storage constants.

This module contains the static parameters of the simplified SM-2 scheduler
and the persisted-snapshot contract. No runtime configuration - pure constants only.
"""

# Time units, in milliseconds (all timestamps are integer ms since the epoch).
MS_PER_HOUR: int = 60 * 60 * 1000
MS_PER_DAY: int = 24 * MS_PER_HOUR

# Ease factor bounds and adjustments applied after each outcome.
DEFAULT_EASE_FACTOR: float = 2.5
MIN_EASE_FACTOR: float = 1.3
MAX_EASE_FACTOR: float = 2.5
EASE_BONUS: float = 0.1  # added on a successful recall
EASE_PENALTY: float = 0.2  # subtracted on a failed recall

# Interval (days) given to a card recalled while on the short cycle.
FIRST_INTERVAL_DAYS: int = 1

# Delay before a failed card becomes due again.
RELEARN_DELAY_MS: int = MS_PER_HOUR

# Key under which the snapshot is stored in the key-value store.
DEFAULT_STORAGE_KEY: str = "flashcard-data"

# Version stamped on export documents.
EXPORT_FORMAT_VERSION: str = "1.0.0"

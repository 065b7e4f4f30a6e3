"""
Utility functions for marshalling snapshots to and from their stored JSON
form, plus database file backups.
"""

import json
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ..exceptions import MarshallingError
from ..models import ReviewData


def snapshot_to_json(data: ReviewData) -> str:
    """Serialize a snapshot to the camelCase JSON stored on disk."""
    return json.dumps(data.to_wire(), ensure_ascii=False)


def json_to_snapshot(raw: str) -> ReviewData:
    """
    Parse stored JSON back into a snapshot.

    Raises:
        MarshallingError: If the text is not JSON or does not describe a
            ``{cards, reviews}`` snapshot.
    """
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MarshallingError(
            f"Stored snapshot is not valid JSON: {e}", original_exception=e
        ) from e

    if not isinstance(payload, dict):
        raise MarshallingError(
            f"Stored snapshot must be a JSON object, got {type(payload).__name__}."  # noqa: E501
        )

    try:
        return ReviewData.model_validate(payload)
    except ValidationError as e:
        raise MarshallingError(
            f"Failed to parse stored snapshot. Error: {e}",
            original_exception=e,
        ) from e


def find_latest_backup(db_path: Path) -> Optional[Path]:
    """
    Return the newest backup of ``db_path`` in its sibling "backups"
    directory, or None if there is none.
    """
    backup_dir = db_path.parent / "backups"
    if not backup_dir.exists():
        return None

    backup_files = list(backup_dir.glob(f"{db_path.stem}-backup-*{db_path.suffix}"))
    if not backup_files:
        return None

    # Names embed the timestamp, so the lexical max is the newest.
    return max(backup_files, key=lambda p: p.name)


def backup_database(db_path: Path) -> Path:
    """
    Creates a timestamped backup of the database file.

    Returns:
        The path to the backup, or ``db_path`` itself when there is no file
        to back up yet.
    """
    if not db_path.exists():
        return db_path

    backup_dir = db_path.parent / "backups"
    backup_dir.mkdir(exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
    backup_path = backup_dir / f"{db_path.stem}-backup-{timestamp}{db_path.suffix}"

    shutil.copy2(db_path, backup_path)
    return backup_path

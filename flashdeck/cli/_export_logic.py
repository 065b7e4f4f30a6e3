"""
Contains the business logic for exporting and importing flashcard JSON files.
This logic is called by the CLI commands in main.py.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict

from flashdeck.codec import ImportResult, validate_imported_data
from flashdeck.session import StudySession

logger = logging.getLogger(__name__)


def export_to_json(session: StudySession, output_path: Path) -> Dict[str, Any]:
    """
    Write the session's export document to ``output_path``.

    Raises:
        IOError: If the file or its directory cannot be written.
    """
    document = session.export_cards()
    logger.info(f"Exporting {len(document['cards'])} card(s) to {output_path}")
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(
            json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8"
        )
    except OSError as e:
        logger.error(f"Could not write export file {output_path}: {e}")
        raise IOError(f"Failed to write export file: {e}") from e
    return document


def read_import_file(input_path: Path) -> Any:
    """
    Load a JSON import file.

    Raises:
        IOError: If the file cannot be read.
        ValueError: If it is not valid JSON.
    """
    try:
        content = input_path.read_text(encoding="utf-8")
    except OSError as e:
        raise IOError(f"Could not read {input_path}: {e}") from e
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse JSON file: {e}") from e


def import_payload(
    session: StudySession, payload: Any, strict: bool = True
) -> ImportResult:
    """
    Validate (in strict mode) and import a decoded payload into the session.

    In strict mode an object payload must pass validate_imported_data; its
    normalized cards are imported together with the file's ``reviews`` (or
    validated ``reviewHistory``). Bare card lists and non-strict imports go
    straight to the session's permissive import.

    Returns:
        The validation result. ``is_valid`` is False when the import was
        rejected, in which case the session is unchanged.
    """
    if strict and not isinstance(payload, list):
        result = validate_imported_data(payload, now=session.clock())
        if not result.is_valid:
            logger.warning(f"Import rejected with {len(result.errors)} error(s).")
            return result
        reviews = payload.get("reviews")
        normalized = {
            "cards": [card.to_wire() for card in result.cards],
            "reviews": reviews if reviews is not None else result.review_history,
        }
    else:
        result = ImportResult()
        normalized = payload

    if not session.import_snapshot(normalized):
        result.add_error("Failed to import cards. Invalid format.")
    return result

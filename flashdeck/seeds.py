"""
Seed decks: the cards a brand-new study session starts with.

A seed file is YAML, either a mapping with a ``cards`` list or a bare list.
Each entry needs ``question`` (or ``q``) and ``answer`` (or ``a``) and may
carry an ``id``.
"""

import html
import logging
from pathlib import Path
from typing import Any, Dict, List, Tuple

import bleach
import yaml

from .exceptions import SeedFileError

logger = logging.getLogger(__name__)

SeedCard = Dict[str, str]

DEFAULT_SEED_CARDS: Tuple[SeedCard, ...] = (
    {
        "id": "1",
        "question": "What is spaced repetition?",
        "answer": (
            "A learning technique that incorporates increasing intervals of "
            "time between reviews of previously learned material."
        ),
    },
    {
        "id": "2",
        "question": "What is the forgetting curve?",
        "answer": (
            "A hypothesis about the decline of memory retention over time, "
            "formulated by Hermann Ebbinghaus."
        ),
    },
    {
        "id": "3",
        "question": "Who developed the first spaced repetition system?",
        "answer": (
            "Piotr Woźniak developed SuperMemo, one of the first spaced "
            "repetition software programs, in the 1980s."
        ),
    },
)


def sanitize_card_text(text: str) -> str:
    """Strip surrounding whitespace and any HTML markup from card text."""
    return html.unescape(bleach.clean(text.strip(), tags=set(), strip=True))


def _parse_entry(entry: Any, index: int, file_path: Path) -> SeedCard:
    if not isinstance(entry, dict):
        raise SeedFileError(file_path, f"Card at index {index} is not a mapping.")

    question = entry.get("question", entry.get("q"))
    answer = entry.get("answer", entry.get("a"))
    for field, value in (("question", question), ("answer", answer)):
        if not isinstance(value, str) or not sanitize_card_text(value):
            raise SeedFileError(
                file_path, f"Card at index {index} has invalid or missing {field}."
            )

    seed: SeedCard = {
        "question": sanitize_card_text(question),
        "answer": sanitize_card_text(answer),
    }
    if entry.get("id") is not None:
        seed["id"] = str(entry["id"])
    return seed


def load_seed_file(file_path: Path) -> List[SeedCard]:
    """
    Read a YAML seed deck.

    Raises:
        SeedFileError: If the file is missing or unreadable, is not valid
            YAML, has the wrong shape, or a card lacks question/answer text.
    """
    try:
        content = file_path.read_text(encoding="utf-8")
        raw = yaml.safe_load(content)
    except FileNotFoundError:
        raise SeedFileError(file_path, "File not found.") from None
    except OSError as e:
        raise SeedFileError(file_path, f"Could not read file: {e}") from e
    except yaml.YAMLError as e:
        raise SeedFileError(file_path, f"Invalid YAML syntax: {e}") from e

    if isinstance(raw, dict):
        raw = raw.get("cards")
    if not isinstance(raw, list):
        raise SeedFileError(
            file_path, "Expected a list of cards or a mapping with a 'cards' list."
        )

    seeds = [_parse_entry(entry, i, file_path) for i, entry in enumerate(raw)]
    logger.info(f"Loaded {len(seeds)} seed card(s) from {file_path}")
    return seeds

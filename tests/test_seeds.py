from pathlib import Path

import pytest

from flashdeck.exceptions import SeedFileError
from flashdeck.seeds import DEFAULT_SEED_CARDS, load_seed_file, sanitize_card_text


def write_yaml(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "deck.yaml"
    path.write_text(content, encoding="utf-8")
    return path


def test_default_seed_deck():
    assert [c["id"] for c in DEFAULT_SEED_CARDS] == ["1", "2", "3"]
    assert all(c["question"] and c["answer"] for c in DEFAULT_SEED_CARDS)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("  plain  ", "plain"),
        ("<b>bold</b> text", "bold text"),
        ("<script>alert(1)</script>", "alert(1)"),
        ("Is 2 < 3 & 4?", "Is 2 < 3 & 4?"),
        ("Tom &amp; <i>Jerry</i>", "Tom & Jerry"),
    ],
)
def test_sanitize_card_text(raw, expected):
    assert sanitize_card_text(raw) == expected


def test_load_mapping_with_cards(tmp_path: Path):
    path = write_yaml(
        tmp_path,
        """
cards:
  - id: intro
    question: What is 2 + 2?
    answer: "4"
  - q: Capital of France?
    a: Paris
""",
    )

    seeds = load_seed_file(path)

    assert seeds == [
        {"question": "What is 2 + 2?", "answer": "4", "id": "intro"},
        {"question": "Capital of France?", "answer": "Paris"},
    ]


def test_load_bare_list_and_numeric_ids(tmp_path: Path):
    path = write_yaml(tmp_path, "- {id: 7, question: Q, answer: A}\n")

    assert load_seed_file(path) == [{"question": "Q", "answer": "A", "id": "7"}]


def test_missing_file(tmp_path: Path):
    with pytest.raises(SeedFileError) as exc_info:
        load_seed_file(tmp_path / "absent.yaml")
    assert exc_info.value.message == "File not found."
    assert exc_info.value.file_path == tmp_path / "absent.yaml"


def test_invalid_yaml(tmp_path: Path):
    path = write_yaml(tmp_path, "cards: [unclosed\n")
    with pytest.raises(SeedFileError, match="Invalid YAML syntax"):
        load_seed_file(path)


@pytest.mark.parametrize("content", ["just text\n", "cards: 3\n", "{}\n"])
def test_wrong_shape(tmp_path: Path, content):
    path = write_yaml(tmp_path, content)
    with pytest.raises(SeedFileError, match="Expected a list of cards"):
        load_seed_file(path)


@pytest.mark.parametrize(
    "content, field",
    [
        ("- {answer: A}\n", "question"),
        ("- {question: Q, answer: 5}\n", "answer"),
        ("- {question: '<i></i>', answer: A}\n", "question"),
    ],
)
def test_card_without_text(tmp_path: Path, content, field):
    path = write_yaml(tmp_path, content)
    with pytest.raises(SeedFileError, match=f"invalid or missing {field}"):
        load_seed_file(path)


def test_non_mapping_entry(tmp_path: Path):
    path = write_yaml(tmp_path, "- just a string\n")
    with pytest.raises(SeedFileError, match="not a mapping"):
        load_seed_file(path)

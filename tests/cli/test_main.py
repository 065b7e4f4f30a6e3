# Standard library imports
import json
import re
from pathlib import Path
from unittest.mock import patch

# Third-party imports
import pytest
from typer.testing import CliRunner

# Local application imports
from flashdeck.cli.main import app, main
from flashdeck.db import SnapshotDatabase
from flashdeck.db.db_utils import json_to_snapshot


runner = CliRunner()


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences (color and control codes) from text."""
    ansi_escape = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")
    return ansi_escape.sub("", text)


def normalize_output(text: str) -> str:
    """
    Strip ANSI codes and table borders, then collapse all whitespace into
    single spaces.
    """
    text = strip_ansi(text)
    text = re.sub(r"[\u2500-\u257f|]", " ", text)
    return re.sub(r"\s+", " ", text).strip()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("FLASHDECK_DB_PATH", "FLASHDECK_STORAGE_KEY", "FLASHDECK_SEED_PATH"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "deck.db"


def invoke(*args, input=None):
    return runner.invoke(app, [str(a) for a in args], input=input)


def stored_snapshot(db_path: Path):
    with SnapshotDatabase(db_path) as db:
        return json_to_snapshot(db.get("flashcard-data"))


def test_list_seeds_a_fresh_database(db_path: Path):
    result = invoke("list", "--db", db_path)

    assert result.exit_code == 0, result.stdout
    assert "Cards" in normalize_output(result.stdout)
    assert [c.id for c in stored_snapshot(db_path).cards] == ["1", "2", "3"]


def test_custom_seed_deck(db_path: Path, tmp_path: Path):
    deck = tmp_path / "deck.yaml"
    deck.write_text('- {question: "Capital of Peru?", answer: Lima}\n')

    result = invoke("list", "--db", db_path, "--seed", deck)

    assert result.exit_code == 0, result.stdout
    assert "Capital of Peru?" in normalize_output(result.stdout)


def test_seed_deck_from_environment(db_path: Path, tmp_path: Path, monkeypatch):
    deck = tmp_path / "env-deck.yaml"
    deck.write_text('- {question: "Largest ocean?", answer: Pacific}\n')
    monkeypatch.setenv("FLASHDECK_SEED_PATH", str(deck))

    result = invoke("list", "--db", db_path)

    assert result.exit_code == 0, result.stdout
    assert "Largest ocean?" in normalize_output(result.stdout)


def test_bad_seed_deck_fails(db_path: Path, tmp_path: Path):
    result = invoke("list", "--db", db_path, "--seed", tmp_path / "missing.yaml")

    assert result.exit_code == 1
    assert "File not found." in normalize_output(result.stdout)


def test_add_card(db_path: Path):
    result = invoke("add", "What is 6 x 7?", "<b>42</b>", "--db", db_path)

    assert result.exit_code == 0, result.stdout
    assert "Added card" in normalize_output(result.stdout)
    added = stored_snapshot(db_path).cards[-1]
    assert added.question == "What is 6 x 7?"
    assert added.answer == "42"
    assert added.review_count == 0


def test_add_card_keeps_plain_ampersands_and_angle_brackets(db_path: Path):
    result = invoke("add", "Tom & Jerry?", "cat < mouse", "--db", db_path)

    assert result.exit_code == 0, result.stdout
    added = stored_snapshot(db_path).cards[-1]
    assert added.question == "Tom & Jerry?"
    assert added.answer == "cat < mouse"


def test_add_card_with_empty_text_fails(db_path: Path):
    result = invoke("add", "<i></i>", "answer", "--db", db_path)

    assert result.exit_code == 1
    assert "must not be empty" in normalize_output(result.stdout)


def test_remove_card(db_path: Path):
    result = invoke("remove", "2", "--db", db_path)

    assert result.exit_code == 0, result.stdout
    assert [c.id for c in stored_snapshot(db_path).cards] == ["1", "3"]


def test_remove_unknown_card_fails(db_path: Path):
    result = invoke("remove", "nope", "--db", db_path)

    assert result.exit_code == 1
    assert "no card with id nope" in normalize_output(result.stdout)


def test_due_counts(db_path: Path):
    result = invoke("due", "--db", db_path)

    assert result.exit_code == 0, result.stdout
    output = normalize_output(result.stdout)
    assert "Due now 3" in output
    assert "Total cards 3" in output


def test_study_reviews_due_cards(db_path: Path):
    result = invoke("study", "--db", db_path, "--limit", 2, input="\ny\n\nn\n")

    assert result.exit_code == 0, result.stdout
    output = normalize_output(result.stdout)
    assert "Card 1 of 2" in output
    assert "Card 2 of 2" in output
    assert "Well done!" in output

    snapshot = stored_snapshot(db_path)
    assert [r.known for r in snapshot.reviews] == [True, False]
    assert snapshot.cards[0].interval == 1


def test_study_with_nothing_due(db_path: Path, tmp_path: Path):
    deck = tmp_path / "empty.yaml"
    deck.write_text("cards: []\n")

    result = invoke("study", "--db", db_path, "--seed", deck)

    assert result.exit_code == 0, result.stdout
    assert "No cards are due for review." in normalize_output(result.stdout)


def test_removing_every_card_reseeds_the_deck(db_path: Path):
    for card_id in ("1", "2", "3"):
        assert invoke("remove", card_id, "--db", db_path).exit_code == 0
    assert stored_snapshot(db_path).cards == []

    result = invoke("list", "--db", db_path)

    assert result.exit_code == 0, result.stdout
    assert [c.id for c in stored_snapshot(db_path).cards] == ["1", "2", "3"]


def test_study_and_list_card_text_with_brackets(db_path: Path, tmp_path: Path):
    import_file = tmp_path / "brackets.json"
    import_file.write_text(
        json.dumps([{"question": "What does [/] close?", "answer": "It closes [b]"}])
    )
    result = invoke("import", import_file, "--db", db_path, "--no-strict")
    assert result.exit_code == 0, result.stdout

    result = invoke("study", "--db", db_path, input="\ny\n")

    assert result.exit_code == 0, result.stdout
    output = normalize_output(result.stdout)
    assert "What does [/] close?" in output
    assert "It closes [b]" in output

    result = invoke("list", "--db", db_path)

    assert result.exit_code == 0, result.stdout
    assert "[/]" in normalize_output(result.stdout)


def test_stats_lists_missed_card_with_brackets(db_path: Path, tmp_path: Path):
    import_file = tmp_path / "brackets.json"
    import_file.write_text(json.dumps([{"question": "list[int]?", "answer": "[/]"}]))
    invoke("import", import_file, "--db", db_path, "--no-strict")
    invoke("study", "--db", db_path, input="\nn\n")

    result = invoke("stats", "--db", db_path)

    assert result.exit_code == 0, result.stdout
    assert "list[int]?" in normalize_output(result.stdout)


def test_stats_after_study(db_path: Path):
    invoke("study", "--db", db_path, "--limit", 1, input="\nn\n")

    result = invoke("stats", "--db", db_path)

    assert result.exit_code == 0, result.stdout
    output = normalize_output(result.stdout)
    assert "Total Reviews 1" in output
    assert "Accuracy 0%" in output
    assert "Most Missed" in output


def test_export(db_path: Path, tmp_path: Path):
    output_file = tmp_path / "out" / "export.json"

    result = invoke("export", "--db", db_path, "-o", output_file)

    assert result.exit_code == 0, result.stdout
    document = json.loads(output_file.read_text(encoding="utf-8"))
    assert len(document["cards"]) == 3
    assert document["version"] == "1.0.0"
    assert document["exportDate"].endswith("Z")


def test_import_valid_file_backs_up_first(db_path: Path, tmp_path: Path):
    invoke("list", "--db", db_path)
    import_file = tmp_path / "import.json"
    import_file.write_text(
        json.dumps(
            {
                "cards": [
                    {"question": "Q1", "answer": "A1"},
                    {"id": "keep", "question": "Q2", "answer": "A2"},
                ]
            }
        )
    )

    result = invoke("import", import_file, "--db", db_path)

    assert result.exit_code == 0, result.stdout
    output = normalize_output(result.stdout)
    assert "Database backed up to" in output
    assert "missing an ID" in output
    assert "Imported 2 card(s)." in output
    assert [c.question for c in stored_snapshot(db_path).cards] == ["Q1", "Q2"]
    assert list((tmp_path / "backups").glob("deck-backup-*.db"))


def test_import_invalid_file_changes_nothing(db_path: Path, tmp_path: Path):
    invoke("list", "--db", db_path)
    import_file = tmp_path / "import.json"
    import_file.write_text(json.dumps({"cards": [{"question": "", "answer": "A"}]}))

    result = invoke("import", import_file, "--db", db_path)

    assert result.exit_code == 1
    output = normalize_output(result.stdout)
    assert "invalid or missing question" in output
    assert "Import failed" in output
    assert len(stored_snapshot(db_path).cards) == 3


def test_import_bare_list_needs_no_strict(db_path: Path, tmp_path: Path):
    import_file = tmp_path / "list.json"
    import_file.write_text(json.dumps([{"question": "Q", "answer": "A"}]))

    result = invoke("import", import_file, "--db", db_path, "--no-strict")

    assert result.exit_code == 0, result.stdout
    assert [c.question for c in stored_snapshot(db_path).cards] == ["Q"]


def test_import_rejects_non_json(db_path: Path, tmp_path: Path):
    import_file = tmp_path / "broken.json"
    import_file.write_text("{not json")

    result = invoke("import", import_file, "--db", db_path)

    assert result.exit_code == 1
    assert "Failed to parse JSON file" in normalize_output(result.stdout)


def test_restore_without_backups_fails(db_path: Path):
    result = invoke("restore", "--db", db_path, "--yes")

    assert result.exit_code == 1
    assert "No backup files found." in normalize_output(result.stdout)


def test_restore_latest_backup(db_path: Path, tmp_path: Path):
    invoke("list", "--db", db_path)
    import_file = tmp_path / "import.json"
    import_file.write_text(json.dumps({"cards": [{"question": "Q", "answer": "A"}]}))
    invoke("import", import_file, "--db", db_path)
    assert len(stored_snapshot(db_path).cards) == 1

    result = invoke("restore", "--db", db_path, "--yes")

    assert result.exit_code == 0, result.stdout
    assert "successfully restored" in normalize_output(result.stdout)
    assert len(stored_snapshot(db_path).cards) == 3


def test_restore_cancelled(db_path: Path, tmp_path: Path):
    invoke("list", "--db", db_path)
    backups = tmp_path / "backups"
    backups.mkdir()
    (backups / "deck-backup-20240101-000000-000000.db").write_bytes(b"")

    result = invoke("restore", "--db", db_path, input="n\n")

    assert result.exit_code == 0
    assert "Restore operation cancelled." in normalize_output(result.stdout)


def test_main_reports_unexpected_errors(capsys):
    with patch("flashdeck.cli.main.app", side_effect=RuntimeError("kaboom")):
        with pytest.raises(SystemExit) as exc_info:
            main()

    assert exc_info.value.code == 1
    assert "UNEXPECTED ERROR: kaboom" in normalize_output(capsys.readouterr().out)

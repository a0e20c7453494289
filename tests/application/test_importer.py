from pathlib import Path

import pytest

from lexicard.application.importer import detect_format, load_word_file, parse_word_list
from lexicard.domain.errors import ValidationError


def test_csv_with_header_and_commas_in_definition():
    content = "word,definition\nserendipity,a happy, unplanned discovery\n\nephemeral,short-lived\n"

    drafts = parse_word_list(content, "csv")

    assert [d.word for d in drafts] == ["serendipity", "ephemeral"]
    assert drafts[0].definition == "a happy, unplanned discovery"


def test_text_separators():
    content = "gato: cat\nperro\tdog\ncasa house, home\n"

    drafts = parse_word_list(content, "text")

    assert [(d.word, d.definition) for d in drafts] == [
        ("gato", "cat"),
        ("perro", "dog"),
        ("casa", "house, home"),
    ]


def test_malformed_rows_are_all_reported():
    content = "gato: cat\nlonely\nperro:\n"

    with pytest.raises(ValidationError) as exc:
        parse_word_list(content, "text")

    assert len(exc.value.errors) == 2
    assert exc.value.errors[0].startswith("line 2:")
    assert exc.value.errors[1].startswith("line 3:")


def test_yaml_entries():
    content = """
words:
  - word: Fernweh
    definition: longing for far-off places
    examples: Ich habe Fernweh.
    pronunciation: FERN-vay
  - word: Heimat
    definition: homeland
    examples: [Meine Heimat, Die Heimat]
"""
    drafts = parse_word_list(content, "yaml")

    assert drafts[0].examples == ("Ich habe Fernweh.",)
    assert drafts[0].pronunciation == "FERN-vay"
    assert drafts[1].examples == ("Meine Heimat", "Die Heimat")
    assert drafts[1].pronunciation is None


def test_yaml_rejects_non_list():
    with pytest.raises(ValidationError):
        parse_word_list("just a string", "yaml")

    with pytest.raises(ValidationError) as exc:
        parse_word_list("- word: only\n- definition: half\n", "yaml")
    assert len(exc.value.errors) == 2


def test_empty_and_unknown_format():
    with pytest.raises(ValidationError, match="No words found"):
        parse_word_list("\n\n", "csv")

    with pytest.raises(ValidationError, match="Unsupported import format"):
        parse_word_list("a,b", "xml")


@pytest.mark.parametrize(
    "name,fmt",
    [("list.csv", "csv"), ("list.TXT", "text"), ("list.yml", "yaml"), ("list", "text")],
)
def test_detect_format(name, fmt):
    assert detect_format(Path(name)) == fmt


def test_load_word_file(tmp_path):
    path = tmp_path / "words.csv"
    path.write_text("hola,hello\nadios,goodbye\n", encoding="utf-8")

    drafts = load_word_file(path)

    assert [d.word for d in drafts] == ["hola", "adios"]

"""
Word list parsing for bulk import.

Supported formats:
- csv:  ``word,definition`` per line. Commas after the first belong to the definition.
- text: ``word: definition``, ``word<TAB>definition`` or ``word definition``.
- yaml: a list of mappings with ``word``, ``definition`` and optional
  ``examples`` / ``pronunciation``.

Parsing is all-or-nothing: every bad row is collected and reported in a
single ValidationError.
"""

import logging
from pathlib import Path
from typing import Any, Literal

import yaml

from lexicard.domain.errors import ValidationError
from lexicard.domain.models import WordDraft

logger = logging.getLogger(__name__)

ImportFormat = Literal["csv", "text", "yaml"]

_SUFFIX_FORMATS: dict[str, ImportFormat] = {
    ".csv": "csv",
    ".txt": "text",
    ".tsv": "text",
    ".yaml": "yaml",
    ".yml": "yaml",
}


def detect_format(path: Path) -> ImportFormat:
    """Pick an import format from the file suffix, defaulting to text."""
    return _SUFFIX_FORMATS.get(path.suffix.lower(), "text")


def load_word_file(path: Path, fmt: ImportFormat | None = None) -> list[WordDraft]:
    """Read and parse a word list file."""
    fmt = fmt or detect_format(path)
    content = path.read_text(encoding="utf-8")
    drafts = parse_word_list(content, fmt)
    logger.info(f"Parsed {len(drafts)} words from {path} ({fmt})")
    return drafts


def parse_word_list(content: str, fmt: ImportFormat) -> list[WordDraft]:
    """
    Parse a word list.

    Raises:
        ValidationError: Unknown format, empty input, or one or more malformed rows.
    """
    if fmt == "csv":
        drafts, errors = _parse_lines(content, _split_csv_line)
    elif fmt == "text":
        drafts, errors = _parse_lines(content, _split_text_line)
    elif fmt == "yaml":
        drafts, errors = _parse_yaml(content)
    else:
        raise ValidationError(f"Unsupported import format '{fmt}'")

    if errors:
        raise ValidationError(f"{len(errors)} invalid row(s) in word list", errors=errors)
    if not drafts:
        raise ValidationError("No words found in word list")
    return drafts


def _parse_lines(content: str, split) -> tuple[list[WordDraft], list[str]]:
    drafts: list[WordDraft] = []
    errors: list[str] = []

    for lineno, line in enumerate(content.splitlines(), start=1):
        if not line.strip():
            continue

        word, definition = split(line)
        if lineno == 1 and word.lower() == "word" and definition.lower() == "definition":
            continue  # header

        if not word or not definition:
            errors.append(f"line {lineno}: expected a word and a definition, got {line.strip()!r}")
            continue
        drafts.append(WordDraft(word=word, definition=definition))

    return drafts, errors


def _split_csv_line(line: str) -> tuple[str, str]:
    word, _, definition = line.partition(",")
    return word.strip(), definition.strip()


def _split_text_line(line: str) -> tuple[str, str]:
    line = line.strip()
    for sep in (":", "\t"):
        if sep in line:
            word, _, definition = line.partition(sep)
            return word.strip(), definition.strip()
    word, _, definition = line.partition(" ")
    return word.strip(), definition.strip()


def _parse_yaml(content: str) -> tuple[list[WordDraft], list[str]]:
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValidationError(f"Invalid YAML word list: {e}") from e

    if isinstance(data, dict) and "words" in data:
        data = data["words"]
    if data is None:
        return [], []
    if not isinstance(data, list):
        raise ValidationError("YAML word list must be a list of entries")

    drafts: list[WordDraft] = []
    errors: list[str] = []
    for idx, entry in enumerate(data, start=1):
        draft = _draft_from_mapping(entry)
        if draft is None:
            errors.append(f"entry {idx}: expected 'word' and 'definition', got {entry!r}")
            continue
        drafts.append(draft)
    return drafts, errors


def _draft_from_mapping(entry: Any) -> WordDraft | None:
    if not isinstance(entry, dict):
        return None

    word = str(entry.get("word") or "").strip()
    definition = str(entry.get("definition") or "").strip()
    if not word or not definition:
        return None

    examples = entry.get("examples") or []
    if isinstance(examples, str):
        examples = [examples]
    pronunciation = entry.get("pronunciation")

    return WordDraft(
        word=word,
        definition=definition,
        examples=tuple(str(e) for e in examples),
        pronunciation=str(pronunciation) if pronunciation else None,
    )

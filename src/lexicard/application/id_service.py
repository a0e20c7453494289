"""Service for generating stable identifiers for words, books and sessions."""

from ulid import ULID


def generate_id(prefix: str) -> str:
    """Generate a sortable id using ULID, e.g. ``word_01HV...``."""
    return f"{prefix}_{ULID()}"

"""YAML-driven phrase lists consumed by the pattern matchers."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from config.settings import settings

logger = logging.getLogger(__name__)

BUNDLED_PATH = Path(__file__).resolve().with_name("patterns.yaml")


class PhraseBook(BaseModel):
    """Phrase lists grouped by the matcher that reads them."""

    version: int = 1
    global_disinterest: List[str] = Field(default_factory=list)
    role_disinterest: List[str] = Field(default_factory=list)
    role_disinterest_guards: List[str] = Field(default_factory=list)
    no_experience: List[str] = Field(default_factory=list)
    role_unsure: List[str] = Field(default_factory=list)
    no_react_experience: List[str] = Field(default_factory=list)
    specific_roles: Dict[str, str] = Field(default_factory=dict)
    generic_role_nouns: List[str] = Field(default_factory=list)
    generic_role_exact: List[str] = Field(default_factory=list)
    positive_words: List[str] = Field(default_factory=list)
    negative_words: List[str] = Field(default_factory=list)
    vague_replies: List[str] = Field(default_factory=list)

    @field_validator("*", mode="after")
    @classmethod
    def _lower(cls, value):
        # Matching is case-insensitive; normalise once at load.
        if isinstance(value, list):
            return [str(item).lower() for item in value]
        return value


def _load_yaml(path: Path) -> dict:
    import yaml

    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def load_phrase_book(path: Optional[os.PathLike[str] | str] = None) -> PhraseBook:
    """Load phrase lists from ``path``; a missing override falls back to the bundled file."""

    target = Path(path) if path else BUNDLED_PATH
    try:
        raw = _load_yaml(target)
    except FileNotFoundError:
        if target == BUNDLED_PATH:
            raise
        logger.warning("Phrase file %s not found; using bundled phrases", target)
        raw = _load_yaml(BUNDLED_PATH)
    return PhraseBook.model_validate(raw)


_book: Optional[PhraseBook] = None


def phrase_book() -> PhraseBook:
    global _book
    if _book is None:
        _book = load_phrase_book(settings.PATTERNS_PATH)
    return _book


def reset_phrase_book() -> None:
    """Forget the cached phrase book so the next call reloads it."""

    global _book
    _book = None


__all__ = ["BUNDLED_PATH", "PhraseBook", "load_phrase_book", "phrase_book", "reset_phrase_book"]

"""Keyword and regex classifiers over candidate free text.

Every matcher is a pure function of the text and a :class:`PhraseBook`
(defaulting to the configured one), case-insensitive and stateless.
"""
from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, Literal, Optional, Tuple

from config.patterns import PhraseBook, phrase_book

Polarity = Literal["yes", "no"]

SALARY_RE = re.compile(r"\$?(\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)([kK])?")
RATING_RE = re.compile(r"(\d+)")
NAME_PREFIX_RE = re.compile(
    r"\b(?:(?:my|the|this|that|our)\s+name\s+is|name\s+is|i\s+am|i'm|call\s+me|it's)\s+([a-z]+)",
    re.IGNORECASE,
)
FIRST_WORD_RE = re.compile(r"([a-z]+)", re.IGNORECASE)


def _norm(text: Optional[str]) -> str:
    return (text or "").strip().lower()


def _book(book: Optional[PhraseBook]) -> PhraseBook:
    return book if book is not None else phrase_book()


def _contains_any(text: str, phrases: Iterable[str]) -> bool:
    return any(phrase in text for phrase in phrases)


@lru_cache(maxsize=32)
def _bounded(phrases: Tuple[str, ...]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(phrase) for phrase in sorted(phrases, key=len, reverse=True))
    return re.compile(rf"(?<![a-z0-9'])(?:{alternatives})(?![a-z0-9'])")


def _contains_word(text: str, phrases: Iterable[str]) -> bool:
    phrases = tuple(phrases)
    if not phrases:
        return False
    return _bounded(phrases).search(text) is not None


def is_disinterested(text: str, book: Optional[PhraseBook] = None) -> bool:
    """Global disengagement ("quit", "not interested", ...), whole words only."""

    return _contains_word(_norm(text), _book(book).global_disinterest)


def is_role_disinterested(text: str, book: Optional[PhraseBook] = None) -> bool:
    """Disinterest while choosing a role; bare "no"/"none" count here only."""

    sample = _norm(text)
    phrases = _book(book)
    if _contains_any(sample, phrases.role_disinterest_guards):
        return False
    return _contains_word(sample, phrases.role_disinterest)


def is_no_experience(text: str, book: Optional[PhraseBook] = None) -> bool:
    return _contains_any(_norm(text), _book(book).no_experience)


def detect_role(text: str, book: Optional[PhraseBook] = None) -> Optional[str]:
    """Canonical label of the first specific role keyword in ``text``."""

    sample = _norm(text)
    for keyword, label in _book(book).specific_roles.items():
        if keyword.lower() in sample:
            return label
    return None


def is_vague_role_response(text: str, book: Optional[PhraseBook] = None) -> bool:
    sample = _norm(text)
    phrases = _book(book)
    generic = _contains_any(sample, phrases.generic_role_nouns) or sample in phrases.generic_role_exact
    return generic and detect_role(sample, phrases) is None


def is_unsure_about_role(text: str, book: Optional[PhraseBook] = None) -> bool:
    return _contains_any(_norm(text), _book(book).role_unsure)


def has_no_react_experience(text: str, book: Optional[PhraseBook] = None) -> bool:
    return _contains_any(_norm(text), _book(book).no_react_experience)


def yes_no_polarity(text: str, book: Optional[PhraseBook] = None) -> Polarity:
    """Vocabulary vote over whitespace tokens.

    Ties with no votes at all resolve to "yes" unless the raw text contains
    "no" or "not" anywhere, even inside another word.
    """

    sample = (text or "").lower()
    phrases = _book(book)
    positive = set(phrases.positive_words)
    negative = set(phrases.negative_words)
    pos = neg = 0
    for token in sample.split():
        if token in positive:
            pos += 1
        if token in negative:
            neg += 1
    if pos > neg:
        return "yes"
    if pos == 0 and neg == 0 and "no" not in sample and "not" not in sample:
        return "yes"
    return "no"


def extract_salary(text: str) -> Optional[float]:
    match = SALARY_RE.search(text or "")
    if match is None:
        return None
    amount = float(match.group(1).replace(",", ""))
    if match.group(2):
        amount *= 1000
    return amount


def extract_rating(text: str) -> Optional[int]:
    match = RATING_RE.search(text or "")
    return int(match.group(1)) if match else None


def extract_name(text: str) -> Optional[str]:
    """Best-effort name from "my name is X", "I'm X", "call me X" or the first word."""

    sample = (text or "").strip()
    match = NAME_PREFIX_RE.search(sample) or FIRST_WORD_RE.search(sample)
    if match is None:
        return sample or None
    return match.group(1)


def is_short_or_vague(text: str, book: Optional[PhraseBook] = None) -> bool:
    sample = (text or "").strip()
    if len(sample.split()) < 2:
        return True
    return sample.lower() in _book(book).vague_replies


def is_question(text: str) -> bool:
    return (text or "").strip().endswith("?")


__all__ = [
    "Polarity",
    "detect_role",
    "extract_name",
    "extract_rating",
    "extract_salary",
    "has_no_react_experience",
    "is_disinterested",
    "is_no_experience",
    "is_question",
    "is_role_disinterested",
    "is_short_or_vague",
    "is_unsure_about_role",
    "is_vague_role_response",
    "yes_no_polarity",
]

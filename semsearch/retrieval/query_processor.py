"""
Query processing and interpretation.

This module cleans raw query text into its canonical form and labels the
query with a coarse, rule-based intent. The intent is advisory metadata
surfaced to downstream consumers; it does not change retrieval or ranking.
"""

import re

from semsearch.core.exceptions import InvalidInputError
from semsearch.core.schemas import Intent, IntentType, Query

_WHITESPACE = re.compile(r"\s+")
_WORD = re.compile(r"\w+")

FACTUAL_PREFIXES = ("what", "who", "when", "where")
EXPLANATORY_PREFIXES = ("how", "why")
LIST_PREFIXES = ("list", "show", "find")
TIME_SENSITIVE_KEYWORDS = frozenset({"recent", "latest", "current", "today", "now"})


def normalize(raw: str) -> str:
    """
    Canonicalize raw query text.

    Collapses runs of whitespace to a single space, trims, and lowercases.

    Raises:
        InvalidInputError: if nothing but whitespace remains
    """
    if raw is None:
        raise InvalidInputError("Search query cannot be empty")

    normalized = _WHITESPACE.sub(" ", raw).strip().lower()
    if not normalized:
        raise InvalidInputError("Search query cannot be empty")
    return normalized


def classify(normalized: str) -> Intent:
    """Label a normalized query by prefix and keyword matching."""
    words = _WORD.findall(normalized)
    first = words[0] if words else ""

    intent_type = IntentType.GENERAL
    if first in FACTUAL_PREFIXES:
        intent_type = IntentType.FACTUAL
    elif first in EXPLANATORY_PREFIXES:
        intent_type = IntentType.EXPLANATORY
    elif first in LIST_PREFIXES:
        intent_type = IntentType.LIST

    return Intent(
        type=intent_type,
        requires_list=intent_type == IntentType.LIST,
        time_sensitive=any(word in TIME_SENSITIVE_KEYWORDS for word in words),
    )


def process_query(raw: str) -> Query:
    """Normalize and classify a raw query."""
    normalized = normalize(raw)
    return Query(raw=raw, normalized_text=normalized, intent=classify(normalized))

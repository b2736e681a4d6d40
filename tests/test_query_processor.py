"""Tests for query normalization and intent labeling."""

import pytest

from semsearch.core.exceptions import InvalidInputError
from semsearch.core.schemas import IntentType
from semsearch.retrieval.query_processor import classify, normalize, process_query


def test_normalize_collapses_whitespace_and_lowercases():
    assert normalize("  What   is\tthe\n Vacation POLICY? ") == "what is the vacation policy?"


def test_normalize_is_idempotent():
    once = normalize("  Show  Me  Recent Reports ")
    assert normalize(once) == once


@pytest.mark.parametrize("raw", ["", "   ", "\n\t "])
def test_normalize_rejects_blank_queries(raw):
    with pytest.raises(InvalidInputError):
        normalize(raw)


def test_normalize_rejects_none():
    with pytest.raises(InvalidInputError):
        normalize(None)


@pytest.mark.parametrize(
    "query,expected",
    [
        ("what is the vacation policy?", IntentType.FACTUAL),
        ("who approves expenses", IntentType.FACTUAL),
        ("when is payday", IntentType.FACTUAL),
        ("where is the office", IntentType.FACTUAL),
        ("how do i reset my password", IntentType.EXPLANATORY),
        ("why was my claim rejected", IntentType.EXPLANATORY),
        ("vacation policy", IntentType.GENERAL),
    ],
)
def test_classify_by_prefix(query, expected):
    intent = classify(query)
    assert intent.type == expected
    assert intent.requires_list is False


@pytest.mark.parametrize("query", ["list all holidays", "show open tickets", "find onboarding docs"])
def test_list_prefixes_require_list(query):
    intent = classify(query)
    assert intent.requires_list is True
    assert intent.type == IntentType.LIST


def test_prefix_must_be_a_whole_word():
    # "whatever" and "shower" are not question or list prefixes
    assert classify("whatever happened").type == IntentType.GENERAL
    assert classify("shower schedule").requires_list is False


def test_time_sensitive_keywords():
    assert classify("latest security bulletin").time_sensitive is True
    assert classify("what is happening now?").time_sensitive is True
    assert classify("security bulletin").time_sensitive is False
    # Substrings do not count
    assert classify("knowledge base").time_sensitive is False


def test_default_intent_has_no_flags():
    intent = classify("expense report template")
    assert intent.type == IntentType.GENERAL
    assert not intent.requires_list
    assert not intent.time_sensitive


def test_process_query_keeps_raw_text():
    query = process_query("  How do I File a Claim? ")
    assert query.raw == "  How do I File a Claim? "
    assert query.normalized_text == "how do i file a claim?"
    assert query.intent.type == IntentType.EXPLANATORY

"""
Tests for the tokenizer used by the document-term matrix pipeline.

These tests validate that:

- text is lowercased and punctuation does not glue words together
- purely numeric tokens are dropped, alphanumeric ones are kept
- stopwords are retained (no stopword removal, no stemming)
- corpus tokenization preserves document order, also with joblib workers
"""

from __future__ import annotations

import pytest

from review_features.data.datasets import load_data_config
from review_features.features.preprocessing import (
    filter_short_tokens,
    preprocess_text_to_tokens,
    tokenize_corpus,
    tokenize_text,
)


def test_lowercase_and_punctuation():
    tokens = preprocess_text_to_tokens("GREAT story!!!Loved it.")
    assert tokens == ["great", "story", "loved", "it"]


def test_numeric_tokens_removed_but_alphanumeric_kept():
    tokens = preprocess_text_to_tokens("rated 10 out of 10, better than mp3 players 2")
    assert "10" not in tokens
    assert "2" not in tokens
    assert "mp3" in tokens


def test_numeric_tokens_kept_when_disabled():
    tokens = preprocess_text_to_tokens("10 out of 10", {"remove_numbers": False})
    assert tokens == ["10", "out", "of", "10"]


def test_stopwords_are_retained():
    """
    Words like "not" and "the" carry rating signal and must survive.
    """
    tokens = preprocess_text_to_tokens("This is not the worst book")
    assert tokens == ["this", "is", "not", "the", "worst", "book"]


def test_min_token_length():
    tokens = preprocess_text_to_tokens("a an the book", {"min_token_length": 3})
    assert tokens == ["the", "book"]


@pytest.mark.parametrize("min_length", [0, 1])
def test_filter_short_tokens_keeps_all_at_or_below_one(min_length):
    assert filter_short_tokens(["a", "bad", "a"], min_length) == ["a", "bad", "a"]


def test_filter_short_tokens_keeps_order_and_repeats():
    assert filter_short_tokens(["bad", "a", "ok", "bad"], 2) == ["bad", "ok", "bad"]


def test_non_string_input_is_coerced():
    assert preprocess_text_to_tokens(12.5, {"remove_numbers": False}) == ["12", "5"]


def test_unknown_tokenize_method_raises():
    with pytest.raises(ValueError):
        tokenize_text("some text", method="sentencepiece")


def test_tokenize_corpus_preserves_order():
    texts = ["first doc", "second doc here", "", "third"]
    expected = [["first", "doc"], ["second", "doc", "here"], [], ["third"]]

    assert tokenize_corpus(texts) == expected
    assert tokenize_corpus(texts, n_jobs=2) == expected


def test_config_preprocessing_section_is_usable():
    cfg = load_data_config("config/data.yaml")["preprocessing"]
    assert preprocess_text_to_tokens("Bad, BAD book 2!", cfg) == ["bad", "bad", "book"]

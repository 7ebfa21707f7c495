"""
Tests for document-frequency vocabulary selection.

These tests validate that:

- terms are kept on document frequency, not raw term frequency
- the threshold boundary is inclusive, also where float products drift
- lowering the threshold never shrinks the vocabulary
- empty collections and over-strict thresholds raise EmptyVocabularyError
- invalid ratios are rejected
- the sparsity form selects exactly what the ratio form selects
"""

from __future__ import annotations

from fractions import Fraction

import pytest

from review_features.errors import EmptyVocabularyError
from review_features.features.vocabulary import (
    document_frequencies,
    select_vocabulary,
    sparsity_to_min_df,
    validate_min_df_ratio,
)


REVIEWS = [
    "great great great plot",
    "great acting and a great plot",
    "boring plot",
    "not great not boring",
    "a slow start",
]


def test_document_frequency_counts_documents_not_occurrences():
    df = document_frequencies(REVIEWS)

    assert df["great"] == 3
    assert df["plot"] == 3
    assert df["not"] == 1
    assert list(df.index) == sorted(df.index)


def test_vocabulary_is_sorted_and_thresholded():
    vocab = select_vocabulary(REVIEWS, 0.4)
    # df >= 2 of 5 documents
    assert vocab == ["a", "boring", "great", "plot"]


def test_threshold_boundary_is_inclusive():
    docs = ["bad bad terrible", "awful bad"]
    assert select_vocabulary(docs, 0.5) == ["awful", "bad", "terrible"]


def test_boundary_survives_float_drift():
    """
    0.7 * 10 evaluates to 7.000000000000001; a term in exactly 7 of 10
    documents still meets a 0.7 ratio.
    """
    docs = ["common word"] * 7 + ["rare"] * 3
    vocab = select_vocabulary(docs, 0.7)
    assert vocab == ["common", "word"]


@pytest.mark.parametrize("high,low", [(0.8, 0.4), (0.4, 0.2), (0.6, 0.2), (1.0, 0.2)])
def test_lowering_threshold_never_shrinks_vocabulary(high, low):
    docs = REVIEWS + ["great plot"]
    try:
        strict = set(select_vocabulary(docs, high))
    except EmptyVocabularyError:
        strict = set()
    loose = set(select_vocabulary(docs, low))
    assert strict <= loose


def test_empty_collection_raises():
    with pytest.raises(EmptyVocabularyError) as excinfo:
        select_vocabulary([], 0.1, stage="class_1")

    assert excinfo.value.stage == "class_1"
    assert excinfo.value.n_documents == 0


def test_documents_without_tokens_raise():
    with pytest.raises(EmptyVocabularyError):
        select_vocabulary(["", "123 456", "!!!"], 0.1)


def test_threshold_excluding_every_term_raises():
    with pytest.raises(EmptyVocabularyError) as excinfo:
        select_vocabulary(["alpha", "beta", "gamma"], 0.9, stage="test")

    assert excinfo.value.threshold == pytest.approx(0.9)
    assert excinfo.value.n_documents == 3
    assert "test" in str(excinfo.value)


@pytest.mark.parametrize("bad", [0, 0.0, -0.1, 1.5, "0.1", None, True])
def test_invalid_ratio_rejected(bad):
    with pytest.raises(ValueError):
        validate_min_df_ratio(bad)


def test_sparsity_conversion():
    assert sparsity_to_min_df(0.95) == Fraction(1, 20)
    assert sparsity_to_min_df(0.99) == Fraction(1, 100)
    with pytest.raises(ValueError):
        sparsity_to_min_df(1.0)


def test_sparsity_form_keeps_the_same_boundary_term_as_ratio_form():
    """
    1.0 - 0.95 evaluates to 0.050000000000000044; a term in exactly 1 of
    20 documents still meets a sparsity of 0.95.
    """
    docs = ["rare common"] + ["common"] * 19
    assert select_vocabulary(docs, sparsity_to_min_df(0.95)) == ["common", "rare"]
    assert select_vocabulary(docs, sparsity_to_min_df(0.95)) == select_vocabulary(docs, 0.05)


def test_ratio_accepts_exact_fraction():
    docs = ["rare common"] + ["common"] * 2
    assert select_vocabulary(docs, Fraction(1, 3)) == ["common", "rare"]
    assert select_vocabulary(docs, Fraction(2, 3)) == ["common"]


def test_document_frequencies_of_empty_collection():
    assert document_frequencies([]).empty

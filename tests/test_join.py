"""
Tests for joining term counts with aggregate document features.

These tests validate that:

- identifying columns (text, group, rating) are dropped
- column order is aggregates, terms, then label
- only term columns are zero-filled; a missing aggregate always raises
- id-set mismatches and term/column name collisions are integrity errors
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from review_features.errors import AggregateFeatureMissingError, SchemaIntegrityError
from review_features.features.join import (
    fill_term_columns,
    join_aggregate_features,
    validate_aggregate_features,
)


AGGREGATES = ["word_count", "sentiment_compound"]


def _documents() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "doc_id": ["n1", "p1"],
            "group": ["books", "books"],
            "rating": [1, 5],
            "text": ["bad bad terrible", "great great story"],
            "word_count": [3, 3],
            "sentiment_compound": [-0.8, 0.9],
            "class_label": [0, 1],
        }
    )


def _merged() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "bad": [2, 0],
            "great": [0, 2],
            "class_label": [0, 1],
        },
        index=pd.Index(["n1", "p1"], name="doc_id"),
    )


def test_join_orders_columns_and_drops_identifiers():
    joined = join_aggregate_features(
        _merged(), _documents(), AGGREGATES, label_column="class_label"
    )

    assert list(joined.columns) == [
        "word_count", "sentiment_compound", "bad", "great", "class_label",
    ]
    assert list(joined.index) == ["n1", "p1"]
    assert joined.loc["n1", "sentiment_compound"] == pytest.approx(-0.8)
    assert joined.loc["p1", "great"] == 2


def test_join_without_label_column():
    term_counts = _merged().drop(columns=["class_label"])
    joined = join_aggregate_features(term_counts, _documents(), AGGREGATES)

    assert "class_label" not in joined.columns
    assert list(joined.columns) == ["word_count", "sentiment_compound", "bad", "great"]


def test_term_nan_is_zero_filled():
    term_counts = pd.DataFrame(
        {"bad": [2.0, np.nan], "great": [np.nan, 2.0]},
        index=pd.Index(["n1", "p1"], name="doc_id"),
    )
    joined = join_aggregate_features(term_counts, _documents(), AGGREGATES)

    assert joined.loc["p1", "bad"] == 0
    assert joined.loc["n1", "great"] == 0
    assert str(joined["bad"].dtype) == "int64"


def test_missing_aggregate_value_is_never_zero_filled():
    docs = _documents()
    docs.loc[1, "sentiment_compound"] = np.nan

    with pytest.raises(AggregateFeatureMissingError) as excinfo:
        join_aggregate_features(_merged(), docs, AGGREGATES, label_column="class_label")

    assert excinfo.value.feature == "sentiment_compound"
    assert excinfo.value.doc_id == "p1"


def test_missing_aggregate_column_raises():
    docs = _documents().drop(columns=["word_count"])
    with pytest.raises(AggregateFeatureMissingError) as excinfo:
        join_aggregate_features(_merged(), docs, AGGREGATES)
    assert excinfo.value.feature == "word_count"
    assert excinfo.value.doc_id is None


def test_id_set_mismatch_raises():
    docs = _documents()
    docs.loc[1, "doc_id"] = "p9"

    with pytest.raises(SchemaIntegrityError) as excinfo:
        join_aggregate_features(_merged(), docs, AGGREGATES, stage="train_join")

    assert excinfo.value.stage == "train_join"
    assert set(excinfo.value.doc_ids) == {"p1", "p9"}


def test_duplicate_aggregate_ids_raise():
    docs = pd.concat([_documents(), _documents().iloc[[0]]], ignore_index=True)
    with pytest.raises(SchemaIntegrityError):
        join_aggregate_features(_merged(), docs, AGGREGATES)


def test_term_colliding_with_aggregate_raises():
    term_counts = _merged().rename(columns={"bad": "word_count"})
    with pytest.raises(SchemaIntegrityError):
        join_aggregate_features(term_counts, _documents(), AGGREGATES, label_column="class_label")


def test_fill_passes_are_scoped():
    frame = pd.DataFrame({"term": [np.nan, 1.0], "agg": [np.nan, 2.0]}, index=["a", "b"])

    filled = fill_term_columns(frame, ["term"])
    assert filled["term"].tolist() == [0, 1]
    assert np.isnan(filled.loc["a", "agg"])
    assert np.isnan(frame.loc["a", "term"])

    with pytest.raises(AggregateFeatureMissingError):
        validate_aggregate_features(filled, ["agg"])

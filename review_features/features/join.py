"""
Join term-count matrices with precomputed aggregate document features.

Two columns families end up side by side and follow different missing
value policies:

- vocabulary-term columns: absence means the term was not counted for
  that document, which is a true zero; these are zero-filled.
- aggregate-feature columns: absence is an integrity error; they are
  validated and never filled.

The two policies run as separate passes over disjoint column sets.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

import pandas as pd

from review_features.errors import AggregateFeatureMissingError, SchemaIntegrityError


DEFAULT_DROP_COLUMNS = ("text", "group", "rating")


def validate_aggregate_features(
    frame: pd.DataFrame,
    aggregate_columns: Sequence[str],
    stage: str = "join",
) -> None:
    """
    Check that every aggregate feature column exists and is populated.

    Raises
    ------
    AggregateFeatureMissingError
        On the first absent column, or the first row (in index order)
        with a null value.
    """
    for feature in aggregate_columns:
        if feature not in frame.columns:
            raise AggregateFeatureMissingError(feature, stage=stage)

        missing = frame.index[frame[feature].isna()]
        if len(missing) > 0:
            raise AggregateFeatureMissingError(feature, stage=stage, doc_id=missing[0])


def fill_term_columns(frame: pd.DataFrame, term_columns: Sequence[str]) -> pd.DataFrame:
    """
    Return a copy of ``frame`` with NaNs in ``term_columns`` (only)
    replaced by 0 and those columns cast to int64.
    """
    term_columns = list(term_columns)
    if not term_columns:
        return frame.copy()
    filled = frame[term_columns].fillna(0).astype("int64")
    return frame.assign(**{col: filled[col] for col in term_columns})


def _check_id_sets(term_ids: pd.Index, aggregate_ids: pd.Index, stage: str) -> None:
    for ids, side in ((term_ids, "term-count matrix"), (aggregate_ids, "aggregate table")):
        duplicated = ids[ids.duplicated()].unique()
        if len(duplicated) > 0:
            raise SchemaIntegrityError(
                f"Document ids in the {side} are not unique.",
                stage=stage,
                doc_ids=duplicated,
            )

    only_terms = term_ids.difference(aggregate_ids)
    only_aggregates = aggregate_ids.difference(term_ids)
    if len(only_terms) > 0 or len(only_aggregates) > 0:
        raise SchemaIntegrityError(
            f"Document id sets differ between term counts and aggregates "
            f"({len(only_terms)} only in term counts, "
            f"{len(only_aggregates)} only in aggregates).",
            stage=stage,
            doc_ids=list(only_terms) + list(only_aggregates),
        )


def join_aggregate_features(
    term_counts: pd.DataFrame,
    documents: pd.DataFrame,
    aggregate_columns: Sequence[str],
    drop_columns: Iterable[str] = DEFAULT_DROP_COLUMNS,
    id_column: str = "doc_id",
    label_column: Optional[str] = None,
    stage: str = "join",
) -> pd.DataFrame:
    """
    Combine a term-count matrix with the documents' aggregate features.

    Parameters
    ----------
    term_counts : pd.DataFrame
        Term-count matrix indexed by document id. May carry a label
        column (the merged training matrix does).
    documents : pd.DataFrame
        Document table with ``id_column`` and the aggregate columns.
    aggregate_columns : Sequence[str]
        Ordered aggregate feature names.
    drop_columns : Iterable[str]
        Identifying / non-feature columns removed from ``documents``.
    id_column : str
        Document id column in ``documents``.
    label_column : Optional[str]
        Label column in ``term_counts`` to keep last, if any.
    stage : str
        Stage name reported in errors.

    Returns
    -------
    pd.DataFrame
        Indexed by document id (order of ``term_counts``), columns:
        aggregates, then terms, then the label column if present.

    Raises
    ------
    SchemaIntegrityError
        If id sets differ, ids repeat, or a term collides with a
        non-term column.
    AggregateFeatureMissingError
        If an aggregate feature is absent or null.
    """
    aggregate_columns = list(aggregate_columns)

    has_label = label_column is not None and label_column in term_counts.columns
    term_columns: List[str] = [
        c for c in term_counts.columns if not (has_label and c == label_column)
    ]

    collisions = sorted(set(term_columns) & (set(aggregate_columns) | {label_column}))
    if collisions:
        raise SchemaIntegrityError(
            f"Vocabulary term(s) collide with non-term columns: {collisions}.",
            stage=stage,
        )

    aggregates = documents.set_index(id_column)
    aggregates.index.name = "doc_id"
    _check_id_sets(term_counts.index, aggregates.index, stage)

    # Identifying and label-bearing columns never become features; any
    # other non-aggregate column is ignored.
    dropped = set(drop_columns) | {label_column}
    aggregates = aggregates[
        [c for c in aggregate_columns if c in aggregates.columns and c not in dropped]
    ]

    joined = term_counts.join(aggregates, how="inner")
    if len(joined) != len(term_counts):
        raise SchemaIntegrityError(
            f"Join changed the row count from {len(term_counts)} to {len(joined)}.",
            stage=stage,
        )

    # Pass 1: aggregates are validated, never filled.
    validate_aggregate_features(joined, aggregate_columns, stage=stage)
    # Pass 2: only vocabulary-term cells are zero-filled.
    joined = fill_term_columns(joined, term_columns)

    ordered = aggregate_columns + term_columns + ([label_column] if has_label else [])
    return joined[ordered]

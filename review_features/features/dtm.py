"""
Document-term matrix construction and per-class merging.

A term-count matrix is an integer pandas DataFrame:

- index: document ids (named "doc_id"), unique
- columns: exactly the vocabulary that produced it, sorted
- cells: exact occurrence counts; a term absent from a document is 0

On an imbalanced corpus a single global document-frequency threshold
asks far more of minority-class terms than of majority-class ones, so
the training matrix is built per class (each class's threshold is read
relative to that class's own size) and the two matrices are merged on
the union of both vocabularies.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import pandas as pd

from review_features.errors import EmptyVocabularyError, SchemaIntegrityError
from review_features.features.preprocessing import tokenize_corpus
from review_features.features.vocabulary import fit_vocabulary_counts, validate_min_df_ratio


def _check_unique_ids(ids: pd.Index, stage: str) -> None:
    duplicated = ids[ids.duplicated()].unique()
    if len(duplicated) > 0:
        raise SchemaIntegrityError(
            "Document ids must be unique.", stage=stage, doc_ids=duplicated
        )


def build_term_count_matrix(
    documents: pd.DataFrame,
    min_df_ratio: float,
    preprocessing_cfg: Optional[Dict[str, Any]] = None,
    stage: str = "corpus",
    id_column: str = "doc_id",
    text_column: str = "text",
    n_jobs: int = 1,
) -> pd.DataFrame:
    """
    Build a term-count matrix over ``documents`` using a vocabulary
    selected from those same documents.

    Parameters
    ----------
    documents : pd.DataFrame
        Frame with at least ``id_column`` and ``text_column``.
    min_df_ratio : float
        Minimum document-frequency ratio for vocabulary selection.
    preprocessing_cfg : Optional[Dict[str, Any]]
        Tokenizer configuration.
    stage : str
        Stage name reported in errors.
    id_column, text_column : str
        Column names for the document id and raw text.
    n_jobs : int
        joblib workers used for tokenization.

    Returns
    -------
    pd.DataFrame
        int64 counts indexed by document id (input order), one column
        per vocabulary term.

    Raises
    ------
    EmptyVocabularyError
        If no term reaches the threshold.
    SchemaIntegrityError
        If document ids are duplicated.
    """
    ids = pd.Index(documents[id_column], name="doc_id")
    _check_unique_ids(ids, stage)

    # Tokenize once; the same token lists feed document frequency and counts.
    token_lists = tokenize_corpus(documents[text_column], preprocessing_cfg, n_jobs=n_jobs)
    counts, vocabulary = fit_vocabulary_counts(token_lists, min_df_ratio, stage=stage)

    return pd.DataFrame(
        counts.toarray().astype("int64"),
        index=ids,
        columns=pd.Index(vocabulary),
    )


def build_class_matrix(
    documents: pd.DataFrame,
    label_value: int,
    min_df_ratio: float,
    preprocessing_cfg: Optional[Dict[str, Any]] = None,
    label_column: str = "class_label",
    id_column: str = "doc_id",
    text_column: str = "text",
    n_jobs: int = 1,
) -> pd.DataFrame:
    """
    Build the term-count matrix for the documents of one class.

    The vocabulary is selected from that class's documents only, so
    ``min_df_ratio`` is relative to the class size.

    Raises
    ------
    EmptyVocabularyError
        If the class has no documents or no term reaches the threshold.
    """
    stage = f"class_{label_value}"
    subset = documents[documents[label_column] == label_value]
    if subset.empty:
        raise EmptyVocabularyError(
            stage=stage,
            threshold=float(validate_min_df_ratio(min_df_ratio)),
            n_documents=0,
        )

    return build_term_count_matrix(
        subset,
        min_df_ratio=min_df_ratio,
        preprocessing_cfg=preprocessing_cfg,
        stage=stage,
        id_column=id_column,
        text_column=text_column,
        n_jobs=n_jobs,
    )


def merge_class_matrices(
    negative: pd.DataFrame,
    positive: pd.DataFrame,
    labels: pd.Series,
    label_column: str = "class_label",
) -> pd.DataFrame:
    """
    Merge two per-class term-count matrices into one labeled matrix.

    - rows: the union of both row sets, sorted by document id
    - columns: the sorted union of both vocabularies; a term outside a
      row's own class vocabulary is 0 for that row
    - ``label_column``: looked up from ``labels`` by document id

    Parameters
    ----------
    negative, positive : pd.DataFrame
        Term-count matrices with disjoint document ids.
    labels : pd.Series
        Class label per document, indexed by document id.
    label_column : str
        Name of the label column appended last.

    Raises
    ------
    SchemaIntegrityError
        If the row sets overlap, a label is missing, or the row count
        changes.
    """
    stage = "merge"

    overlap = negative.index.intersection(positive.index)
    if len(overlap) > 0:
        raise SchemaIntegrityError(
            "Per-class matrices share document ids.", stage=stage, doc_ids=overlap
        )

    if label_column in negative.columns or label_column in positive.columns:
        raise SchemaIntegrityError(
            f"Vocabulary term collides with label column '{label_column}'.",
            stage=stage,
        )

    columns = negative.columns.union(positive.columns).sort_values()
    merged = pd.concat(
        [
            negative.reindex(columns=columns, fill_value=0),
            positive.reindex(columns=columns, fill_value=0),
        ],
        axis=0,
    ).sort_index()
    merged.index.name = "doc_id"

    expected_rows = len(negative) + len(positive)
    if len(merged) != expected_rows:
        raise SchemaIntegrityError(
            f"Merged matrix has {len(merged)} rows, expected {expected_rows}.",
            stage=stage,
        )

    # Align labels by id: the class-grouped order of the inputs is gone.
    aligned = labels.reindex(merged.index)
    missing = aligned.index[aligned.isna()]
    if len(missing) > 0:
        raise SchemaIntegrityError(
            "No class label found for merged document(s).",
            stage=stage,
            doc_ids=missing,
        )

    return merged.astype("int64").assign(**{label_column: aligned.astype("int64").values})

"""
Document-frequency vocabulary selection.

A term is retained when the fraction of documents containing it at
least once reaches a minimum ratio ``r``:

    document_frequency(term) / n_documents >= r

The boundary is inclusive. Counting is done with scikit-learn's
CountVectorizer over pre-tokenized documents; the threshold itself is
applied here in integer arithmetic on an exact rational ``r`` rather
than through ``min_df``, whose float product ``min_df * n_documents``
can drift past an integer boundary (e.g. 0.7 * 10 == 7.000000000000001).

Thresholds are held as ``fractions.Fraction`` built from the decimal a
float prints as, so 0.05 is exactly 1/20. The "sparsity" form used in
the glossary is ``s = 1 - r``; :func:`sparsity_to_min_df` subtracts on
exact values, so ``s = 0.95`` and ``r = 0.05`` select the same terms.
"""

from __future__ import annotations

from fractions import Fraction
from numbers import Real
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import sparse
from sklearn.feature_extraction.text import CountVectorizer

from review_features.errors import EmptyVocabularyError
from review_features.features.preprocessing import tokenize_corpus


def _as_fraction(value: Any, name: str) -> Fraction:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValueError(f"{name} must be a number, got {value!r}.")
    if isinstance(value, Fraction):
        return value
    # str() gives the shortest decimal that round-trips, e.g. "0.05".
    return Fraction(str(value))


def sparsity_to_min_df(sparsity: Any) -> Fraction:
    """
    Convert a sparsity threshold ``s`` into a minimum document-frequency
    ratio ``1 - s``, computed exactly.

    Raises
    ------
    ValueError
        If ``s`` is not a number or ``1 - s`` is outside (0, 1].
    """
    return validate_min_df_ratio(1 - _as_fraction(sparsity, "Sparsity"))


def validate_min_df_ratio(min_df_ratio: Any) -> Fraction:
    """
    Check that a document-frequency ratio lies in (0, 1] and return it
    as an exact fraction.

    Raises
    ------
    ValueError
        If the value is not a number in (0, 1].
    """
    ratio = _as_fraction(min_df_ratio, "Document-frequency ratio")
    if not 0 < ratio <= 1:
        raise ValueError(
            f"Document-frequency ratio must be in (0, 1], got {float(ratio)}."
        )
    return ratio


def _identity_analyzer(tokens: Sequence[str]) -> Sequence[str]:
    return tokens


def count_token_lists(
    token_lists: Sequence[Sequence[str]],
) -> Tuple[sparse.csr_matrix, List[str]]:
    """
    Count term occurrences in already-tokenized documents.

    Returns
    -------
    Tuple[sparse.csr_matrix, List[str]]
        (counts of shape (n_documents, n_terms), lexicographically sorted terms)
    """
    vectorizer = CountVectorizer(analyzer=_identity_analyzer, lowercase=False)
    counts = vectorizer.fit_transform(token_lists)
    return counts.tocsr(), [str(t) for t in vectorizer.get_feature_names_out()]


def _document_frequency(counts: sparse.csr_matrix) -> np.ndarray:
    # Number of rows with a non-zero entry per column.
    return np.bincount(counts.indices, minlength=counts.shape[1])


def fit_vocabulary_counts(
    token_lists: Sequence[Sequence[str]],
    min_df_ratio: Real,
    stage: str = "corpus",
) -> Tuple[sparse.csr_matrix, List[str]]:
    """
    Select the vocabulary of a tokenized collection and return the counts
    restricted to it.

    Parameters
    ----------
    token_lists : Sequence[Sequence[str]]
        One token list per document.
    min_df_ratio : float or Fraction
        Minimum document-frequency ratio, in (0, 1].
    stage : str
        Stage name reported in errors.

    Returns
    -------
    Tuple[sparse.csr_matrix, List[str]]
        (counts of shape (n_documents, n_vocabulary), sorted vocabulary)

    Raises
    ------
    EmptyVocabularyError
        If the collection is empty or no term reaches the threshold.
    """
    ratio = validate_min_df_ratio(min_df_ratio)
    n_documents = len(token_lists)

    # CountVectorizer refuses to fit a collection without a single token.
    if n_documents == 0 or not any(len(tokens) for tokens in token_lists):
        raise EmptyVocabularyError(
            stage=stage, threshold=float(ratio), n_documents=n_documents
        )

    counts, terms = count_token_lists(token_lists)
    df = _document_frequency(counts)
    # df / n >= p / q  <=>  df * q >= p * n, on integers.
    meets = df.astype(object) * ratio.denominator >= ratio.numerator * n_documents
    keep = np.flatnonzero(meets.astype(bool))

    if keep.size == 0:
        raise EmptyVocabularyError(
            stage=stage, threshold=float(ratio), n_documents=n_documents
        )

    return counts[:, keep], [terms[i] for i in keep]


def document_frequencies(
    texts: Iterable[str],
    preprocessing_cfg: Optional[Dict[str, Any]] = None,
    n_jobs: int = 1,
) -> pd.Series:
    """
    Compute the document frequency of every term in a collection.

    Returns
    -------
    pd.Series
        Integer counts indexed by term, sorted by term. Empty when the
        collection has no tokens.
    """
    token_lists = tokenize_corpus(texts, preprocessing_cfg, n_jobs=n_jobs)
    if not any(len(tokens) for tokens in token_lists):
        return pd.Series(dtype="int64", name="document_frequency")

    counts, terms = count_token_lists(token_lists)
    return pd.Series(
        _document_frequency(counts).astype("int64"),
        index=pd.Index(terms, name="term"),
        name="document_frequency",
    )


def select_vocabulary(
    texts: Iterable[str],
    min_df_ratio: Real,
    preprocessing_cfg: Optional[Dict[str, Any]] = None,
    stage: str = "corpus",
    n_jobs: int = 1,
) -> List[str]:
    """
    Return the terms whose document-frequency ratio is at least
    ``min_df_ratio``, sorted lexicographically.

    Parameters
    ----------
    texts : Iterable[str]
        Raw document texts.
    min_df_ratio : float or Fraction
        Minimum document-frequency ratio, in (0, 1].
    preprocessing_cfg : Optional[Dict[str, Any]]
        Tokenizer configuration ('preprocessing' section).
    stage : str
        Stage name reported in errors.
    n_jobs : int
        joblib workers used for tokenization.

    Raises
    ------
    EmptyVocabularyError
        If the collection is empty or the threshold excludes every term.
    """
    token_lists = tokenize_corpus(texts, preprocessing_cfg, n_jobs=n_jobs)
    _, vocabulary = fit_vocabulary_counts(token_lists, min_df_ratio, stage=stage)
    return vocabulary

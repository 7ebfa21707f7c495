"""
Text tokenization utilities for the document-term matrix pipeline.

The tokenizer applies, in order:

- lowercasing
- punctuation removal (punctuation is replaced by a space)
- whitespace normalization
- whitespace tokenization
- numeric-token removal
- an optional minimum token length

There is no stemming and no stopword removal: stopwords such as "not"
or "very" carry rating-sentiment signal and are kept as terms.

Configuration is the 'preprocessing' section of config/data.yaml, so
the tokenizer can be tweaked without changing this code.
"""

from __future__ import annotations

import re
import string
from typing import Any, Dict, Iterable, List, Optional

from joblib import Parallel, delayed

from review_features.data.datasets import load_data_config, DEFAULT_DATA_CONFIG_PATH


_PUNCT_TABLE = str.maketrans({ch: " " for ch in string.punctuation})
_NUMERIC_TOKEN = re.compile(r"^\d+$")


# ---------------------------------------------------------------------------
# Basic text cleaning
# ---------------------------------------------------------------------------


def _clean_text_basic(
    text: str,
    lowercase: bool = True,
    remove_punctuation: bool = True,
    strip_whitespace: bool = True,
) -> str:
    """
    Apply basic normalization to a raw text string.

    Parameters
    ----------
    text : str
        Raw input text.
    lowercase : bool
        Convert text to lowercase if True.
    remove_punctuation : bool
        Replace punctuation characters with spaces if True.
    strip_whitespace : bool
        Collapse multiple spaces and strip leading/trailing spaces.

    Returns
    -------
    str
        Cleaned text string.
    """
    if not isinstance(text, str):
        text = str(text)

    if lowercase:
        text = text.lower()

    if remove_punctuation:
        # Replace rather than delete so adjacent words are not joined.
        text = text.translate(_PUNCT_TABLE)

    if strip_whitespace:
        text = re.sub(r"\s+", " ", text).strip()

    return text


# ---------------------------------------------------------------------------
# Tokenization
# ---------------------------------------------------------------------------


def tokenize_text(text: str, method: str = "whitespace") -> List[str]:
    """
    Tokenize a text string using the specified method.

    Currently supported:
    - "whitespace": simple .split() on whitespace.

    Raises
    ------
    ValueError
        If the method is unknown.
    """
    method = (method or "whitespace").lower()
    if method != "whitespace":
        raise ValueError(f"Unsupported tokenization method: {method}")
    if not text:
        return []
    return text.split()


def remove_numeric_tokens(tokens: Iterable[str]) -> List[str]:
    """
    Drop tokens made only of digits.
    """
    return [t for t in tokens if not _NUMERIC_TOKEN.match(t)]


def filter_short_tokens(tokens: Iterable[str], min_length: int = 1) -> List[str]:
    """
    Drop tokens shorter than ``min_length`` characters, keeping order and
    repeats. A ``min_length`` of 1 or less keeps every token.
    """
    if min_length <= 1:
        return list(tokens)
    return [t for t in tokens if len(t) >= min_length]


# ---------------------------------------------------------------------------
# High-level preprocessing functions
# ---------------------------------------------------------------------------


def get_preprocessing_cfg(
    config_path: str = DEFAULT_DATA_CONFIG_PATH,
) -> Dict[str, Any]:
    """
    Retrieve the 'preprocessing' section from the data configuration.
    """
    cfg = load_data_config(config_path)
    return cfg["preprocessing"] or {}


def preprocess_text_to_tokens(
    text: str,
    cfg: Optional[Dict[str, Any]] = None,
) -> List[str]:
    """
    Full tokenization pipeline for one document.

    Parameters
    ----------
    text : str
        Raw input text.
    cfg : Optional[Dict[str, Any]]
        The 'preprocessing' section of config/data.yaml. Missing keys
        fall back to defaults: lowercase, strip punctuation and numeric
        tokens, keep every token length.

    Returns
    -------
    List[str]
        Terms in document order (duplicates kept).
    """
    cfg = cfg or {}

    text_clean = _clean_text_basic(
        text=text,
        lowercase=bool(cfg.get("lowercase", True)),
        remove_punctuation=bool(cfg.get("remove_punctuation", True)),
        strip_whitespace=bool(cfg.get("strip_whitespace", True)),
    )

    tokenize_cfg = cfg.get("tokenize", {}) or {}
    tokens = tokenize_text(text_clean, method=tokenize_cfg.get("method", "whitespace"))

    if bool(cfg.get("remove_numbers", True)):
        tokens = remove_numeric_tokens(tokens)

    return filter_short_tokens(tokens, int(cfg.get("min_token_length", 1)))


def tokenize_corpus(
    texts: Iterable[str],
    cfg: Optional[Dict[str, Any]] = None,
    n_jobs: int = 1,
) -> List[List[str]]:
    """
    Tokenize every document in a collection.

    Documents are independent, so with ``n_jobs != 1`` the work is
    spread over joblib workers. The output order always matches the
    input order.

    Parameters
    ----------
    texts : Iterable[str]
        Raw document texts.
    cfg : Optional[Dict[str, Any]]
        Preprocessing configuration.
    n_jobs : int
        Number of joblib workers (-1 for all cores).

    Returns
    -------
    List[List[str]]
        One token list per document.
    """
    texts = list(texts)
    if n_jobs == 1 or len(texts) < 2:
        return [preprocess_text_to_tokens(t, cfg) for t in texts]

    return Parallel(n_jobs=n_jobs)(
        delayed(preprocess_text_to_tokens)(t, cfg) for t in texts
    )

"""
Dataset loading utilities for the review corpus.

This module is responsible for:
- reading the dataset configuration from config/data.yaml
- loading the raw CSV file into a pandas DataFrame
- normalizing id, group, rating and text columns to standard names
  ("doc_id", "group", "rating", "text")
- validating that every configured aggregate feature column is present
  and that document ids are unique
- deriving the binary class label from the ordinal rating

The aggregate feature columns (sentiment scores, lengths, ...) are
produced upstream and consumed here as-is. The resulting DataFrame is
ready to be split and fed to the document-term matrix pipeline.
"""

from __future__ import annotations

import os
from typing import Any, Dict, List

import pandas as pd
import yaml

from review_features.errors import SchemaIntegrityError


DEFAULT_DATA_CONFIG_PATH = "config/data.yaml"

REQUIRED_SECTIONS = ("dataset", "split", "preprocessing", "features", "vocabulary")

ID_COLUMN = "doc_id"
GROUP_COLUMN = "group"
RATING_COLUMN = "rating"
TEXT_COLUMN = "text"
DEFAULT_LABEL_COLUMN = "class_label"


def _load_yaml(path: str) -> Dict[str, Any]:
    """
    Load a YAML configuration file and return it as a dictionary.

    Raises
    ------
    FileNotFoundError
        If the YAML file does not exist.
    ValueError
        If the YAML file is empty or cannot be parsed.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f)

    if cfg is None:
        raise ValueError(f"Config file is empty or invalid: {path}")

    return cfg


def load_data_config(config_path: str = DEFAULT_DATA_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load and return the full data configuration dictionary.

    Parameters
    ----------
    config_path : str, optional
        Path to the data YAML configuration file.

    Returns
    -------
    Dict[str, Any]
        Dictionary containing the "dataset", "split", "preprocessing",
        "features" and "vocabulary" sections.
    """
    cfg = _load_yaml(config_path)

    for section in REQUIRED_SECTIONS:
        if section not in cfg:
            raise KeyError(f'Missing "{section}" section in data config: {config_path}')

    return cfg


def get_aggregate_columns(data_cfg: Dict[str, Any]) -> List[str]:
    """
    Return the ordered list of aggregate feature column names.
    """
    features_cfg = data_cfg.get("features", {}) or {}
    return list(features_cfg.get("aggregate_columns", []) or [])


def get_label_column(data_cfg: Dict[str, Any]) -> str:
    features_cfg = data_cfg.get("features", {}) or {}
    return str(features_cfg.get("label_column", DEFAULT_LABEL_COLUMN))


# ---------------------------------------------------------------------------
# Labeling rule
# ---------------------------------------------------------------------------


def label_from_rating(rating: Any, positive_min_rating: float = 4) -> int:
    """
    Map an ordinal rating to a binary class label.

    Ratings at or above ``positive_min_rating`` are positive (1), all
    others negative (0).

    Raises
    ------
    ValueError
        If the rating is missing.
    """
    if pd.isna(rating):
        raise ValueError("Cannot derive a class label from a missing rating.")
    return int(float(rating) >= positive_min_rating)


def with_binary_labels(
    df: pd.DataFrame,
    positive_min_rating: float = 4,
    label_column: str = DEFAULT_LABEL_COLUMN,
    rating_column: str = RATING_COLUMN,
) -> pd.DataFrame:
    """
    Return a copy of ``df`` with a binary label column derived from the
    rating column. The input DataFrame is left untouched.

    Parameters
    ----------
    df : pd.DataFrame
        Corpus with an ordinal rating column.
    positive_min_rating : float
        Minimum rating counted as the positive class.
    label_column : str
        Name of the label column to add.
    rating_column : str
        Name of the rating column to read.

    Returns
    -------
    pd.DataFrame
        New DataFrame with ``label_column`` (int) added.
    """
    if rating_column not in df.columns:
        raise KeyError(
            f"Rating column '{rating_column}' not found in DataFrame. "
            f"Available columns: {list(df.columns)}"
        )

    labels = df[rating_column].map(
        lambda r: label_from_rating(r, positive_min_rating=positive_min_rating)
    )
    return df.assign(**{label_column: labels.astype(int)})


# ---------------------------------------------------------------------------
# Corpus loading
# ---------------------------------------------------------------------------


def load_review_dataset(
    config_path: str = DEFAULT_DATA_CONFIG_PATH,
) -> pd.DataFrame:
    """
    Load the review corpus according to the configuration.

    This function:
    - reads the CSV specified in config/data.yaml
    - ensures the id, text, rating and aggregate feature columns exist
    - optionally drops rows whose text is NA
    - normalizes columns to standard names: "doc_id", "group", "rating", "text"
    - checks that document ids are unique

    Parameters
    ----------
    config_path : str, optional
        Path to the data YAML configuration file.

    Returns
    -------
    pd.DataFrame
        DataFrame with columns ["doc_id", "group", "rating", "text", <aggregates>...].

    Raises
    ------
    FileNotFoundError
        If the dataset CSV file cannot be found.
    ValueError
        If required columns are missing.
    SchemaIntegrityError
        If document ids are duplicated.
    """
    cfg = load_data_config(config_path)
    dataset_cfg = cfg["dataset"]

    csv_path = dataset_cfg.get("path", "data/raw/reviews.csv")
    id_column = dataset_cfg.get("id_column", "id")
    group_column = dataset_cfg.get("group_column", "group")
    rating_column = dataset_cfg.get("rating_column", "rating")
    text_column = dataset_cfg.get("text_column", "review")
    drop_na_text = bool(dataset_cfg.get("drop_na_text", True))
    aggregate_columns = get_aggregate_columns(cfg)

    if not os.path.exists(csv_path):
        raise FileNotFoundError(f"Dataset CSV not found at: {csv_path}")

    df = pd.read_csv(csv_path)

    required = [id_column, rating_column, text_column, *aggregate_columns]
    missing_cols = [col for col in required if col not in df.columns]
    if missing_cols:
        raise ValueError(
            f"Missing required column(s) in dataset CSV: {missing_cols}. "
            f"Available columns: {list(df.columns)}"
        )

    if drop_na_text:
        df = df.dropna(subset=[text_column])

    rename_map = {
        id_column: ID_COLUMN,
        rating_column: RATING_COLUMN,
        text_column: TEXT_COLUMN,
    }
    if group_column in df.columns:
        rename_map[group_column] = GROUP_COLUMN
    df = df.rename(columns=rename_map)

    df[TEXT_COLUMN] = df[TEXT_COLUMN].astype(str)

    duplicated = df[ID_COLUMN][df[ID_COLUMN].duplicated()].unique()
    if len(duplicated) > 0:
        raise SchemaIntegrityError(
            "Document ids in the dataset CSV are not unique.",
            stage="load",
            doc_ids=duplicated,
        )

    return df.reset_index(drop=True)

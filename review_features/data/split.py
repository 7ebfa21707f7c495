"""
Train/test splitting utilities for the review corpus.

This module splits the labeled review corpus into training and test sets,
using the configuration defined in config/data.yaml ("split" section).

The split is stratified on the binary class label derived from the star
rating (see ``label_from_rating``), so the positive/negative imbalance of
the corpus is carried into both sides. The training stage builds one
vocabulary per class and therefore needs documents of both classes.

We rely on scikit-learn's train_test_split and support:
- stratified splitting on the class label column
- configurable test_size and random_seed
"""

from __future__ import annotations

from typing import Tuple, Dict, Any

import pandas as pd
from sklearn.model_selection import train_test_split

from review_features.data.datasets import load_data_config, DEFAULT_DATA_CONFIG_PATH


def get_split_config(
    config_path: str = DEFAULT_DATA_CONFIG_PATH,
) -> Dict[str, Any]:
    """
    Retrieve the 'split' section from the data configuration.
    """
    cfg = load_data_config(config_path)
    return cfg["split"]


def _check_class_counts(labels: pd.Series) -> None:
    counts = labels.value_counts().to_dict()
    if len(counts) < 2:
        raise ValueError(
            f"Stratified split needs both classes, got class counts {counts}."
        )
    too_small = {label: n for label, n in counts.items() if n < 2}
    if too_small:
        raise ValueError(
            "Stratified split needs at least 2 documents per class, "
            f"got class counts {counts}."
        )


def train_test_split_df(
    df: pd.DataFrame,
    label_column: str = "class_label",
    config_path: str = DEFAULT_DATA_CONFIG_PATH,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Split the labeled corpus into train and test sets according to
    config/data.yaml.

    With stratification on, each side keeps the corpus ratio of
    positive (rating >= threshold) to negative reviews.

    Parameters
    ----------
    df : pd.DataFrame
        Labeled corpus containing at least the label_column.
    label_column : str
        Name of the binary class label column used for stratification.
    config_path : str
        Path to the data YAML configuration.

    Returns
    -------
    Tuple[pd.DataFrame, pd.DataFrame]
        (train_df, test_df), each with a fresh RangeIndex; documents keep
        their ``doc_id`` column.

    Raises
    ------
    KeyError
        If the label_column is missing.
    ValueError
        If stratified splitting is requested and a class is absent or
        has fewer than 2 documents.
    """
    if label_column not in df.columns:
        raise KeyError(
            f"Label column '{label_column}' not found in DataFrame. "
            f"Available columns: {list(df.columns)}"
        )

    split_cfg = get_split_config(config_path)
    test_size = float(split_cfg.get("test_size", 0.3))
    stratify_enabled = bool(split_cfg.get("stratify", True))
    random_seed = int(split_cfg.get("random_seed", 42))

    stratify_labels = None
    if stratify_enabled:
        _check_class_counts(df[label_column])
        stratify_labels = df[label_column]

    train_df, test_df = train_test_split(
        df,
        test_size=test_size,
        random_state=random_seed,
        stratify=stratify_labels,
        shuffle=True,
    )

    train_df = train_df.reset_index(drop=True)
    test_df = test_df.reset_index(drop=True)

    return train_df, test_df

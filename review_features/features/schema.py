"""
Feature schema capture, persistence and projection.

The training feature matrix fixes the ordered list of non-label columns
(aggregate features first, then vocabulary terms). A test matrix built
from its own, independently selected vocabulary is reshaped onto that
exact list:

- test-only term columns are dropped (a model trained without them
  cannot use them)
- training term columns the test matrix lacks are added as all-zero
- aggregate columns must already be present; they are never padded

Projection is a column reindex keyed on column identity. Row set and
row order are left as they are.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import joblib
import pandas as pd

from review_features.errors import AggregateFeatureMissingError, SchemaIntegrityError
from review_features.utils.pipeline_utils import ensure_dir_exists


DEFAULT_SCHEMA_FILENAME = "feature_schema.joblib"


@dataclass(frozen=True)
class FeatureSchema:
    """
    Ordered non-label column layout of a training feature matrix.
    """

    aggregate_columns: Tuple[str, ...]
    term_columns: Tuple[str, ...]
    label_column: str = "class_label"

    @property
    def columns(self) -> List[str]:
        return list(self.aggregate_columns) + list(self.term_columns)

    @classmethod
    def from_matrix(
        cls,
        matrix: pd.DataFrame,
        aggregate_columns: Sequence[str],
        label_column: str = "class_label",
    ) -> "FeatureSchema":
        """
        Capture the schema of a joined training matrix.

        Every column that is neither an aggregate feature nor the label
        is treated as a vocabulary term, in matrix order.

        Raises
        ------
        SchemaIntegrityError
            If the matrix has duplicated columns.
        AggregateFeatureMissingError
            If an aggregate column is absent from the matrix.
        """
        if matrix.columns.duplicated().any():
            raise SchemaIntegrityError(
                "Training matrix has duplicated columns: "
                f"{sorted(set(matrix.columns[matrix.columns.duplicated()]))}.",
                stage="schema",
            )
        for feature in aggregate_columns:
            if feature not in matrix.columns:
                raise AggregateFeatureMissingError(feature, stage="schema")

        aggregate_set = set(aggregate_columns)
        terms = tuple(
            c for c in matrix.columns if c not in aggregate_set and c != label_column
        )
        return cls(
            aggregate_columns=tuple(aggregate_columns),
            term_columns=terms,
            label_column=label_column,
        )


def project_to_schema(
    matrix: pd.DataFrame,
    schema: FeatureSchema,
    keep_label: bool = False,
) -> pd.DataFrame:
    """
    Reshape ``matrix`` so its columns are exactly ``schema.columns``.

    Parameters
    ----------
    matrix : pd.DataFrame
        Joined feature matrix (typically the test matrix).
    schema : FeatureSchema
        Target schema taken from the training matrix.
    keep_label : bool
        If True and ``matrix`` carries the label column, keep it as the
        last column (e.g. a label withheld for evaluation).

    Returns
    -------
    pd.DataFrame
        New DataFrame with the same index as ``matrix``.

    Raises
    ------
    AggregateFeatureMissingError
        If an aggregate column of the schema is missing from ``matrix``.
    SchemaIntegrityError
        If ``matrix`` has duplicated columns.
    """
    stage = "projection"

    if matrix.columns.duplicated().any():
        raise SchemaIntegrityError("Input matrix has duplicated columns.", stage=stage)

    for feature in schema.aggregate_columns:
        if feature not in matrix.columns:
            raise AggregateFeatureMissingError(feature, stage=stage)

    target = schema.columns
    if keep_label and schema.label_column in matrix.columns:
        target = target + [schema.label_column]

    # Only term columns can be missing at this point; they are true zeros.
    projected = matrix.reindex(columns=target, fill_value=0)
    term_columns = list(schema.term_columns)
    if term_columns:
        projected[term_columns] = projected[term_columns].astype("int64")
    return projected


def projection_report(matrix: pd.DataFrame, schema: FeatureSchema) -> Tuple[List[str], List[str]]:
    """
    Return (dropped, padded) column names for projecting ``matrix``
    onto ``schema``.
    """
    target = set(schema.columns) | {schema.label_column}
    dropped = [c for c in matrix.columns if c not in target]
    padded = [c for c in schema.term_columns if c not in matrix.columns]
    return dropped, padded


def assert_schema_match(
    train: pd.DataFrame,
    test: pd.DataFrame,
    label_column: str = "class_label",
) -> None:
    """
    Check that two feature matrices share the same ordered non-label columns.

    Raises
    ------
    SchemaIntegrityError
        If the ordered column sequences differ.
    """
    train_cols = [c for c in train.columns if c != label_column]
    test_cols = [c for c in test.columns if c != label_column]
    if train_cols != test_cols:
        mismatch = next(
            (
                i
                for i, (a, b) in enumerate(zip(train_cols, test_cols))
                if a != b
            ),
            min(len(train_cols), len(test_cols)),
        )
        raise SchemaIntegrityError(
            f"Feature schemas differ at position {mismatch} "
            f"(train has {len(train_cols)} columns, test has {len(test_cols)}).",
            stage="schema",
        )


def save_feature_schema(
    schema: FeatureSchema,
    output_dir: str,
    filename: str = DEFAULT_SCHEMA_FILENAME,
) -> str:
    """
    Persist a feature schema with joblib and return the file path.
    """
    ensure_dir_exists(output_dir)
    path = os.path.join(output_dir, filename)
    joblib.dump(schema, path)
    return path


def load_feature_schema(
    output_dir: str,
    filename: str = DEFAULT_SCHEMA_FILENAME,
) -> FeatureSchema:
    """
    Load a previously saved feature schema.

    Raises
    ------
    FileNotFoundError
        If the schema file does not exist.
    """
    path = os.path.join(output_dir, filename)
    if not os.path.exists(path):
        raise FileNotFoundError(f"Feature schema not found at: {path}")

    schema: FeatureSchema = joblib.load(path)
    return schema

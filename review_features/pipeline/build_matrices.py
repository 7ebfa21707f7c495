"""
Batch pipeline that turns the labeled review corpus into a training and
a test feature matrix with identical, ordered feature columns.

Training:
    corpus -> {negative subset, positive subset}
           -> {negative matrix, positive matrix}   (per-class vocabularies)
           -> merged matrix                        (union of vocabularies)
           -> joined training matrix               (+ aggregate features)

Test:
    corpus -> test matrix                          (one looser threshold,
                                                    no class split)
           -> joined test matrix
           -> projected test matrix                (training schema)

The test vocabulary is selected on the combined test corpus because test
labels are the prediction target; its minority-term coverage therefore
differs from training, which is accepted.

Nothing is written unless both matrices are built and their schemas
match. This module is callable both as a library function and as a
standalone script (via `python -m review_features.pipeline.build_matrices`).
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from fractions import Fraction
from typing import Any, Dict, Optional, Tuple

import pandas as pd

from review_features.data.datasets import (
    DEFAULT_DATA_CONFIG_PATH,
    ID_COLUMN,
    TEXT_COLUMN,
    get_aggregate_columns,
    get_label_column,
    load_data_config,
    load_review_dataset,
    with_binary_labels,
)
from review_features.data.split import train_test_split_df
from review_features.errors import SchemaIntegrityError
from review_features.features.dtm import (
    build_class_matrix,
    build_term_count_matrix,
    merge_class_matrices,
)
from review_features.features.join import DEFAULT_DROP_COLUMNS, join_aggregate_features
from review_features.features.schema import (
    DEFAULT_SCHEMA_FILENAME,
    FeatureSchema,
    assert_schema_match,
    project_to_schema,
    projection_report,
    save_feature_schema,
)
from review_features.features.vocabulary import sparsity_to_min_df, validate_min_df_ratio
from review_features.utils.pipeline_utils import (
    DEFAULT_PIPELINE_CONFIG_PATH,
    ensure_dir_exists,
    get_logger,
    load_pipeline_config,
    seed_everything,
)


TRAIN_FEATURES_FILENAME = "train_features.csv"
TEST_FEATURES_FILENAME = "test_features.csv"
TEST_LABELS_FILENAME = "test_labels.csv"


@dataclass(frozen=True)
class FeatureMatrices:
    """
    Output of one pipeline run.
    """

    train: pd.DataFrame
    test: pd.DataFrame
    schema: FeatureSchema
    test_labels: Optional[pd.Series] = None


# ---------------------------------------------------------------------------
# Config helpers
# ---------------------------------------------------------------------------


def _resolve_threshold(vocab_cfg: Dict[str, Any], prefix: str) -> Fraction:
    """
    Read ``<prefix>_frequency_threshold`` or, failing that,
    ``<prefix>_sparsity`` from the vocabulary config section.
    """
    ratio_key = f"{prefix}_frequency_threshold"
    sparsity_key = f"{prefix}_sparsity"

    if vocab_cfg.get(ratio_key) is not None:
        return validate_min_df_ratio(vocab_cfg[ratio_key])
    if vocab_cfg.get(sparsity_key) is not None:
        return sparsity_to_min_df(vocab_cfg[sparsity_key])
    raise KeyError(
        f'Vocabulary config needs "{ratio_key}" or "{sparsity_key}".'
    )


def get_vocabulary_thresholds(data_cfg: Dict[str, Any]) -> Dict[str, Fraction]:
    """
    Return the negative, positive and test document-frequency ratios.
    """
    vocab_cfg = data_cfg.get("vocabulary", {}) or {}
    return {
        "negative": _resolve_threshold(vocab_cfg, "negative_class"),
        "positive": _resolve_threshold(vocab_cfg, "positive_class"),
        "test": _resolve_threshold(vocab_cfg, "test"),
    }


def _drop_columns(data_cfg: Dict[str, Any]) -> Tuple[str, ...]:
    features_cfg = data_cfg.get("features", {}) or {}
    return tuple(features_cfg.get("drop_columns", DEFAULT_DROP_COLUMNS) or ())


def _n_jobs(data_cfg: Dict[str, Any]) -> int:
    preprocessing_cfg = data_cfg.get("preprocessing", {}) or {}
    return int(preprocessing_cfg.get("n_jobs", 1))


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


def build_training_matrix(
    train_df: pd.DataFrame,
    data_cfg: Dict[str, Any],
    logger: Optional[logging.Logger] = None,
) -> Tuple[pd.DataFrame, FeatureSchema]:
    """
    Build the joined training feature matrix and capture its schema.

    Parameters
    ----------
    train_df : pd.DataFrame
        Labeled training documents (doc_id, text, aggregates, label).
    data_cfg : Dict[str, Any]
        Full data configuration.
    logger : Optional[logging.Logger]
        Logger for stage transitions.

    Returns
    -------
    Tuple[pd.DataFrame, FeatureSchema]
        (training matrix indexed by doc_id, its feature schema)
    """
    logger = logger or logging.getLogger(__name__)

    label_column = get_label_column(data_cfg)
    aggregate_columns = get_aggregate_columns(data_cfg)
    thresholds = get_vocabulary_thresholds(data_cfg)
    preprocessing_cfg = data_cfg.get("preprocessing", {}) or {}
    n_jobs = _n_jobs(data_cfg)

    matrices = {}
    for label_value, name in ((0, "negative"), (1, "positive")):
        matrix = build_class_matrix(
            train_df,
            label_value=label_value,
            min_df_ratio=thresholds[name],
            preprocessing_cfg=preprocessing_cfg,
            label_column=label_column,
            id_column=ID_COLUMN,
            text_column=TEXT_COLUMN,
            n_jobs=n_jobs,
        )
        logger.info(
            "%s class: %d documents, %d terms at document-frequency >= %.4f",
            name.capitalize(),
            matrix.shape[0],
            matrix.shape[1],
            float(thresholds[name]),
        )
        matrices[name] = matrix

    labels = train_df.set_index(ID_COLUMN)[label_column]
    merged = merge_class_matrices(
        matrices["negative"],
        matrices["positive"],
        labels=labels,
        label_column=label_column,
    )
    shared = matrices["negative"].columns.intersection(matrices["positive"].columns)
    logger.info(
        "Merged matrix: %d rows, %d terms (%d shared by both classes)",
        merged.shape[0],
        merged.shape[1] - 1,
        len(shared),
    )

    joined = join_aggregate_features(
        merged,
        train_df,
        aggregate_columns=aggregate_columns,
        drop_columns=_drop_columns(data_cfg),
        id_column=ID_COLUMN,
        label_column=label_column,
        stage="train_join",
    )
    logger.info("Joined training matrix shape: %s", joined.shape)

    schema = FeatureSchema.from_matrix(joined, aggregate_columns, label_column)
    return joined, schema


def build_test_matrix(
    test_df: pd.DataFrame,
    schema: FeatureSchema,
    data_cfg: Dict[str, Any],
    logger: Optional[logging.Logger] = None,
) -> pd.DataFrame:
    """
    Build the test feature matrix and project it onto ``schema``.

    The test vocabulary is selected once over all test documents at the
    test threshold. Labels in ``test_df``, if any, are not included.
    """
    logger = logger or logging.getLogger(__name__)

    threshold = get_vocabulary_thresholds(data_cfg)["test"]
    term_counts = build_term_count_matrix(
        test_df,
        min_df_ratio=threshold,
        preprocessing_cfg=data_cfg.get("preprocessing", {}) or {},
        stage="test",
        id_column=ID_COLUMN,
        text_column=TEXT_COLUMN,
        n_jobs=_n_jobs(data_cfg),
    )
    logger.info(
        "Test matrix: %d documents, %d terms at document-frequency >= %.4f",
        term_counts.shape[0],
        term_counts.shape[1],
        float(threshold),
    )

    joined = join_aggregate_features(
        term_counts,
        test_df,
        aggregate_columns=schema.aggregate_columns,
        drop_columns=_drop_columns(data_cfg),
        id_column=ID_COLUMN,
        stage="test_join",
    )

    dropped, padded = projection_report(joined, schema)
    logger.info(
        "Projecting test matrix: dropping %d test-only columns, padding %d training columns",
        len(dropped),
        len(padded),
    )
    projected = project_to_schema(joined, schema)

    if not projected.index.equals(joined.index):
        raise SchemaIntegrityError("Projection changed the row set.", stage="projection")

    return projected


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def save_feature_matrices(
    result: FeatureMatrices,
    output_dir: str,
    overwrite: bool = False,
    logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Write both matrices, the withheld test labels and the schema.

    Either every file is written or none is: if any target file exists
    and ``overwrite`` is False, nothing is written. Files are first
    written to a staging directory inside ``output_dir`` and only moved
    into place once all of them were written, so a failed write leaves
    the previous outputs untouched. On overwrite, a ``test_labels.csv``
    from an earlier run is removed when ``result`` has no test labels.

    Returns
    -------
    bool
        True if the files were written.
    """
    logger = logger or logging.getLogger(__name__)

    targets = {
        "train": os.path.join(output_dir, TRAIN_FEATURES_FILENAME),
        "test": os.path.join(output_dir, TEST_FEATURES_FILENAME),
        "labels": os.path.join(output_dir, TEST_LABELS_FILENAME),
        "schema": os.path.join(output_dir, DEFAULT_SCHEMA_FILENAME),
    }
    existing = [p for p in targets.values() if os.path.exists(p)]
    if existing and not overwrite:
        logger.warning(
            "Output files already exist and overwrite_existing is False: %s",
            existing,
        )
        return False

    ensure_dir_exists(output_dir)
    # Same filesystem as the targets, so os.replace is a rename.
    staging_dir = tempfile.mkdtemp(prefix=".staging-", dir=output_dir)
    try:
        staged = {
            key: os.path.join(staging_dir, os.path.basename(path))
            for key, path in targets.items()
        }
        result.train.to_csv(staged["train"], index_label=ID_COLUMN)
        result.test.to_csv(staged["test"], index_label=ID_COLUMN)
        if result.test_labels is not None:
            result.test_labels.to_csv(staged["labels"], index_label=ID_COLUMN)
        save_feature_schema(result.schema, staging_dir)

        for key, path in targets.items():
            if os.path.exists(staged[key]):
                os.replace(staged[key], path)
            elif os.path.exists(path):
                # Labels of an earlier run do not describe this test matrix.
                os.remove(path)
                logger.info("Removed stale %s", path)
    finally:
        shutil.rmtree(staging_dir, ignore_errors=True)

    logger.info("Saved training matrix to %s", targets["train"])
    logger.info("Saved test matrix to %s", targets["test"])
    logger.info("Saved feature schema to %s", targets["schema"])
    return True


# ---------------------------------------------------------------------------
# End-to-end
# ---------------------------------------------------------------------------


def build_feature_matrices(
    data_config_path: str = DEFAULT_DATA_CONFIG_PATH,
    pipeline_config_path: str = DEFAULT_PIPELINE_CONFIG_PATH,
) -> FeatureMatrices:
    """
    End-to-end pipeline: load, label, split, build both matrices, check
    schema equality and (optionally) save.

    Parameters
    ----------
    data_config_path : str
        Path to config/data.yaml.
    pipeline_config_path : str
        Path to config/pipeline.yaml.

    Returns
    -------
    FeatureMatrices
        Training matrix (with label), projected test matrix (without
        label), the withheld test labels and the feature schema.
    """
    pipeline_cfg = load_pipeline_config(pipeline_config_path)
    data_cfg = load_data_config(data_config_path)

    general_cfg = pipeline_cfg.get("general", {}) or {}
    seed_everything(seed=int(general_cfg.get("random_seed", 42)))

    logger = get_logger(
        name="build_matrices",
        config=pipeline_cfg,
        log_file_suffix="features",
    )

    label_column = get_label_column(data_cfg)
    positive_min_rating = float(data_cfg["dataset"].get("positive_min_rating", 4))

    corpus = load_review_dataset(config_path=data_config_path)
    labeled = with_binary_labels(
        corpus,
        positive_min_rating=positive_min_rating,
        label_column=label_column,
    )
    logger.info("Loaded corpus with %d documents.", len(labeled))
    logger.info("Class counts: %s", labeled[label_column].value_counts().to_dict())

    train_df, test_df = train_test_split_df(
        labeled,
        label_column=label_column,
        config_path=data_config_path,
    )
    logger.info("Train size: %d, Test size: %d", len(train_df), len(test_df))

    train_matrix, schema = build_training_matrix(train_df, data_cfg, logger=logger)
    test_matrix = build_test_matrix(test_df, schema, data_cfg, logger=logger)
    assert_schema_match(train_matrix, test_matrix, label_column=label_column)

    test_labels = test_df.set_index(ID_COLUMN)[label_column].reindex(test_matrix.index)

    result = FeatureMatrices(
        train=train_matrix,
        test=test_matrix,
        schema=schema,
        test_labels=test_labels,
    )
    logger.info(
        "Feature matrices ready: train=%s, test=%s (%d feature columns)",
        train_matrix.shape,
        test_matrix.shape,
        len(schema.columns),
    )

    save_cfg = pipeline_cfg.get("save", {}) or {}
    if bool(save_cfg.get("save_outputs", True)):
        paths_cfg = pipeline_cfg.get("paths", {}) or {}
        save_feature_matrices(
            result,
            output_dir=paths_cfg.get("output_dir", "outputs/features"),
            overwrite=bool(save_cfg.get("overwrite_existing", False)),
            logger=logger,
        )

    return result


def main() -> None:
    """
    Main entry point when running this module as a script.
    """
    _ = build_feature_matrices()


if __name__ == "__main__":
    main()

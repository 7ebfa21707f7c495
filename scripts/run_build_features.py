"""
Build the training and test feature matrices.

This script is a convenience wrapper around
`review_features.pipeline.build_matrices.build_feature_matrices`, which:

- loads the configured review corpus and derives binary class labels
- performs a stratified train/test split
- builds per-class document-term matrices and merges them
- joins the aggregate document features
- projects the test matrix onto the training feature schema
- writes both matrices and the schema under outputs/features/

Usage (from project root):

    python -m scripts.run_build_features
    # or
    python scripts/run_build_features.py
"""

from __future__ import annotations

import argparse
import sys

from review_features.errors import FeaturePipelineError
from review_features.pipeline.build_matrices import build_feature_matrices
from review_features.utils.pipeline_utils import load_pipeline_config, get_logger


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Build class-balanced document-term feature matrices."
    )
    parser.add_argument(
        "--data-config",
        type=str,
        default="config/data.yaml",
        help="Path to data config YAML (default: config/data.yaml).",
    )
    parser.add_argument(
        "--pipeline-config",
        type=str,
        default="config/pipeline.yaml",
        help="Path to pipeline config YAML (default: config/pipeline.yaml).",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()

    pipeline_cfg = load_pipeline_config(args.pipeline_config)
    logger = get_logger(
        name="run_build_features",
        config=pipeline_cfg,
        log_file_suffix="run",
    )

    logger.info("=" * 80)
    logger.info("Starting feature matrix build.")
    logger.info("Configs: data=%s, pipeline=%s", args.data_config, args.pipeline_config)

    try:
        result = build_feature_matrices(
            data_config_path=args.data_config,
            pipeline_config_path=args.pipeline_config,
        )
    except FeaturePipelineError as exc:
        logger.error("Feature pipeline aborted: %s", exc)
        sys.exit(1)

    logger.info("Training matrix: %s", result.train.shape)
    logger.info("Test matrix: %s", result.test.shape)
    logger.info("Feature matrix build completed.")


if __name__ == "__main__":
    main()

"""
Top-level package for the class-balanced review feature pipeline.

This package contains modules for:
- loading the review corpus and deriving binary class labels
- stratified train/test splitting
- tokenization and document-frequency vocabulary selection
- per-class document-term matrices, merging and feature joining
- projecting the test matrix onto the training feature schema
- shared helper functions (config, logging, seeding)

The end-to-end batch job lives in review_features.pipeline.build_matrices.
"""

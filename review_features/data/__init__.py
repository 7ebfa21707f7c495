"""
Data loading and splitting utilities.

This subpackage provides:
- functions to load the review corpus with its aggregate features
- the rating-to-class labeling rule
- train/test splitting with stratification.
"""

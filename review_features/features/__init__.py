"""
Text preprocessing and document-term feature construction.

This subpackage includes:
- tokenization (lowercasing, punctuation and numeric-token removal)
- document-frequency vocabulary selection
- per-class term-count matrices and their merge
- joining term counts with aggregate features
- projecting a matrix onto a fixed feature schema.
"""

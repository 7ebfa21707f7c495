"""
Shared utility functions.

This subpackage includes:
- pipeline config loading
- seeding and reproducibility helpers
- directory management
- logging helpers used across the project.
"""

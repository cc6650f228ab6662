"""Centralized, importable test fixtures package.

Fixtures are re-exported from the root `tests/conftest.py`.
"""

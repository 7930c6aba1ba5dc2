# basis/__init__.py
"""Tests for the basis submodule."""

# utils/__init__.py
"""Tests for the utils submodule."""

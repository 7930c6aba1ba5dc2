# estimate/__init__.py
"""Tests for the estimate submodule."""

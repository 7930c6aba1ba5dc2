# roms/__init__.py
"""Reduced-order model classes."""

from ._prom import *

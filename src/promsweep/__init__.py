# __init__.py
"""Projection-based reduced-order models for adaptive frequency sweeps.

Maintainer: promsweep developers
"""

__version__ = "0.1.0"

from . import (
    errors,
    utils,
    basis,
    operators,
    estimate,
    nep,
    roms,
)

from .roms import *

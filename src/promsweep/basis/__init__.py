# basis/__init__.py
r"""Incrementally grown orthonormal bases.

.. currentmodule:: promsweep.basis

A reduced-order model for a frequency sweep is built one full-order
solution :math:`\u(\omega_s)\in\CC^{n}` at a time. Two bases absorb each new
solution: a real basis that reduces the system operators, and a complex
snapshot basis, stored as a QR factorization, that feeds the error estimator.
Both are grown with one of three Gram-Schmidt variants and perform their
global inner products through an injected communicator.

**Classes**

.. autosummary::
    :toctree: _autosummaries

    IncrementalBasisTemplate
    ReducedBasis
    SnapshotBasis

**Functions**

.. autosummary::
    :toctree: _autosummaries

    append_column
    global_dot
    global_norm
    orthogonalize_column
"""

from ._orthogonalize import *
from ._base import *
from ._reduced import *
from ._snapshot import *

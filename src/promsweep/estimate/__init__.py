# estimate/__init__.py
r"""Error surrogate driving adaptive frequency sampling.

.. currentmodule:: promsweep.estimate

After each sample the snapshots define a minimal rational interpolant of the
solution curve. The magnitude of its denominator :math:`Q(z)` is a cheap,
communication-free indicator of where the reduced-order model is least
trustworthy.

**Classes**

.. autosummary::
    :toctree: _autosummaries

    MRIErrorEstimator

**Functions**

.. autosummary::
    :toctree: _autosummaries

    compute_mri
"""

from ._mri import *

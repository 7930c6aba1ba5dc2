# operators/__init__.py
r"""Full-order operators and their incremental projection.

.. currentmodule:: promsweep.operators

The high-dimensional model is consumed only through
:class:`HDMOperatorTemplate`: fixed operators :math:`\K, \C, \M`, a
frequency-dependent port operator :math:`\A_2(\omega)`, and excitation
vectors. :class:`ProjectionEngine` keeps their projections onto the reduced
basis current as the basis grows.

**Classes**

.. autosummary::
    :toctree: _autosummaries

    HDMOperatorTemplate
    MatrixHDMOperator
    ProjectionEngine

**Functions**

.. autosummary::
    :toctree: _autosummaries

    project_matrix
    project_vector
"""

from ._base import *
from ._projection import *

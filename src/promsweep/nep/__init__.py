# nep/__init__.py
r"""Nonlinear eigenvalue problems in the reduced space.

.. currentmodule:: promsweep.nep

Resonances of the reduced-order model solve
:math:`\T(\lambda)\x = (\K_r + \lambda\C_r + \lambda^2\M_r
+ \A_{2,r}(\Im\lambda))\x = \0` with :math:`\lambda = i\omega`. Because the
port term depends on the eigenvalue, the problem is solved by successive
linearization, one eigenpair at a time, with already found pairs removed by
a projective deflation that keeps the operator dimension fixed.

**Classes**

.. autosummary::
    :toctree: _autosummaries

    DeflatedOperator
    NEPResult
    NonlinearOperatorTemplate
    PolynomialOperator

**Functions**

.. autosummary::
    :toctree: _autosummaries

    mslp
    rii
    solve_nep
"""

from ._base import *
from ._deflation import *
from ._solvers import *

# nep/test_base.py
"""Tests for nep._base."""

import pytest
import numpy as np

import promsweep

from . import _linear_operator, _quadratic_operator


class TestPolynomialOperator:
    """Test nep._base.PolynomialOperator."""

    Operator = promsweep.nep.PolynomialOperator

    def test_init(self, n=3):
        with pytest.raises(ValueError) as ex:
            self.Operator([None, None])
        assert ex.value.args[0] == "at least one coefficient matrix required"

        with pytest.raises(promsweep.errors.DimensionalityError) as ex:
            self.Operator([np.eye(n), np.eye(n + 1)])
        assert ex.value.args[0] == (
            "coefficient matrices must all be square and of equal size"
        )

        op = self.Operator([np.eye(n), None, 2 * np.eye(n)])
        assert op.size == n
        assert op.degree == 2
        assert op.coefficients[1] is None
        assert str(op) == f"PolynomialOperator of size {n}"
        assert repr(op).startswith("<PolynomialOperator object at ")

    def test_evaluate(self, n=4, lam=0.3 + 1.7j):
        rng = np.random.default_rng(5)
        A0, A1, A2 = rng.standard_normal((3, n, n))
        op = self.Operator([A0, A1, A2])

        T, dT = op.evaluate(lam)
        assert np.allclose(T, A0 + lam * A1 + lam**2 * A2)
        assert np.allclose(dT, A1 + 2 * lam * A2)

        T2, dT2 = op.evaluate(lam, jacobian=False)
        assert dT2 is None
        assert np.allclose(T2, T)

    def test_residual(self):
        op = _quadratic_operator([4.0, 9.0])
        x = np.array([1.0, 0.0])
        assert op.residual(2j, x) == 0
        assert op.residual(3j, x) > 0

        T = op.evaluate(2.5j, jacobian=False)[0]
        expected = np.linalg.norm(T @ x) / np.linalg.norm(T)
        assert np.isclose(op.residual(2.5j, x), expected)
        assert np.isclose(op.residual(2.5j, 3 * x, T), expected)

        # Zero operator.
        zero = self.Operator([np.zeros((2, 2))])
        assert zero.residual(1j, x) == 0


class TestNEPResult:
    """Test nep._base.NEPResult."""

    Result = promsweep.nep.NEPResult

    def test_result(self):
        lambdas = [2j, -1 + 3j]
        X = np.eye(2)
        result = self.Result(
            lambdas, X, [True, False], [3, 100], [1e-12, 1e-4]
        )
        assert len(result) == 2
        assert np.allclose(result.frequencies, [2, 3 + 1j])
        assert not result.all_converged
        assert result.iterations.dtype == int

        pairs = list(result)
        assert pairs[0][0] == 2j
        assert np.all(pairs[1][1] == [0, 1])

        lines = str(result).split("\n  ")
        assert lines[0] == "NEPResult with 2 eigenpairs"
        assert lines[1].startswith("lambda[0] = 0.000000e+00+2.000000e+00i")
        assert lines[2].endswith("(not converged)")
        assert repr(result).startswith("<NEPResult object at ")

        result = self.Result([1j], np.ones((2, 1)), [True], [1], [0.0])
        assert result.all_converged


def test_linear_operator():
    op = _linear_operator([1j, 3j])
    T = op.evaluate(1j, jacobian=False)[0]
    assert np.allclose(T, np.diag([0, -2j]))


if __name__ == "__main__":
    pytest.main([__file__])

# roms/test_prom.py
"""Tests for roms._prom."""

import os
import pytest
import numpy as np
import scipy.linalg as la

import promsweep

from . import _get_hdm, _hdm_solve


def _scalar_hdm(**kwargs):
    """One-dimensional model (4 - omega^2) u = i omega."""
    return promsweep.operators.MatrixHDMOperator(
        np.array([[4.0]]), np.array([[1.0]]), RHS1=np.array([1.0]), **kwargs
    )


class TestReducedNonlinearOperator:
    """Test roms._prom.ReducedNonlinearOperator."""

    Operator = promsweep.roms.ReducedNonlinearOperator

    def test_evaluate(self, n=6, omega=1.3):
        hdm = _get_hdm(n)
        prom = promsweep.FrequencyPROM(hdm, 3)
        for w in (0.8, 1.6):
            prom.extend(_hdm_solve(hdm, w), w)
        op = self.Operator(prom)
        assert op.size == prom.dim_V

        lam = 0.05 + 1j * omega
        T, dT = op.evaluate(lam)
        assert np.allclose(T, prom.Kr + lam * prom.Cr + lam**2 * prom.Mr)
        assert np.allclose(dT, prom.Cr + 2 * lam * prom.Mr)

        # Reduced and full operators agree on the basis.
        V = prom.basis.entries
        hdm_T = (
            hdm.stiffness_matrix()
            + lam * hdm.damping_matrix()
            + lam**2 * hdm.mass_matrix()
        )
        assert np.allclose(T, V.T @ hdm_T @ V)

    def test_port_derivative(self, omega=1.7):
        """The finite-difference derivative of the port term."""
        D = np.diag([0.5])
        hdm = _scalar_hdm(A2=lambda w: w**2 * D)
        prom = promsweep.FrequencyPROM(hdm, 1)
        prom.extend(np.array([1j]), 1.0)
        op = self.Operator(prom)

        for lam in (1j * omega, -1j * omega):
            T, dT = op.evaluate(lam)
            assert np.isclose(T[0, 0], 4 + lam**2 + 0.5 * omega**2)
            # d/dlambda of omega^2 with omega = |Im lambda|.
            sign = np.sign(lam.imag)
            expected = 2 * lam + 0.5 * 2 * omega * (-1j * sign)
            assert np.isclose(dT[0, 0], expected, rtol=1e-6)

        # Zero frequency uses an absolute step.
        _, dT = op.evaluate(0j)
        assert np.all(np.isfinite(dT))


class TestFrequencyPROM:
    """Test roms._prom.FrequencyPROM."""

    PROM = promsweep.FrequencyPROM

    def test_init(self, n=6, max_size=4):
        hdm = _get_hdm(n)
        prom = self.PROM(hdm, max_size, orthog_type="cgs")
        assert prom.hdm is hdm
        assert prom.max_size == max_size
        assert prom.orthog_type == "cgs"
        assert prom.basis.capacity == 2 * max_size
        assert prom.snapshots.capacity == max_size
        assert prom.dim_V == prom.dim_Q == 0
        assert prom.sample_points.shape == (0,)
        assert prom.Kr.shape == prom.Mr.shape == prom.Cr.shape == (0, 0)
        assert prom.RHS1r.shape == (0,)
        assert isinstance(prom.engine, promsweep.operators.ProjectionEngine)
        assert isinstance(
            prom.estimator, promsweep.estimate.MRIErrorEstimator
        )

        lines = str(prom).split("\n  ")
        assert lines[0] == "FrequencyPROM"
        assert lines[1] == f"Full state dimension {n}"
        assert lines[2] == (
            f"Reduced basis dimension 0 (capacity {2 * max_size})"
        )
        assert lines[3] == f"Snapshots 0 (capacity {max_size})"
        assert lines[4] == "Orthogonalization: CGS"
        assert repr(prom).startswith("<FrequencyPROM object at ")

        with pytest.raises(ValueError):
            self.PROM(hdm, 0)

    def test_empty(self):
        prom = self.PROM(_scalar_hdm(), 2)

        with pytest.raises(promsweep.errors.EmptyModelError) as ex:
            prom.solve(1.0)
        assert ex.value.args[0] == (
            "reduced solve requires a nonempty reduced basis"
        )

        with pytest.raises(promsweep.errors.EmptyModelError) as ex:
            prom.find_max_error(0.5, 0.1, 10)
        assert ex.value.args[0] == (
            "error estimate requires at least one snapshot"
        )

        with pytest.raises(promsweep.errors.EmptyModelError) as ex:
            prom.compute_eigenvalue_estimates(1.0)
        assert ex.value.args[0] == (
            "eigenvalue estimates require a nonempty reduced basis"
        )

    def test_scalar(self, omega=1.2):
        """Reduced solve and resonance of (4 - omega^2) u = i omega."""
        prom = self.PROM(_scalar_hdm(), 1)
        u = np.array([1j * omega / (4 - omega**2)])
        assert prom.extend(u, omega) is prom
        assert prom.dim_V == 1
        assert prom.dim_Q == 1
        assert np.all(prom.sample_points == [omega])

        for w in (0.3, 1.0, 2.5, 7.0):
            assert np.allclose(prom.solve(w), 1j * w / (4 - w**2))
            assert prom.solve_reduced(w).shape == (1,)

        result = prom.compute_eigenvalue_estimates(1.5, rng=0)
        assert len(result) == prom.dim_V
        assert result.all_converged
        assert abs(result.eigenvalues[0] - 2j) < 1e-8
        assert np.isclose(result.frequencies[0], 2)

        # Capacity is checked before anything is modified.
        with pytest.raises(promsweep.errors.CapacityError) as ex:
            prom.extend(np.array([0.3j]), 0.5)
        assert ex.value.args[0] == (
            "unable to increase basis storage size (1 + 1 > 1), "
            "increase the maximum number of vectors"
        )
        assert prom.dim_V == 1
        assert prom.dim_Q == 1
        assert np.all(prom.sample_points == [omega])

    @pytest.mark.parametrize("orthog_type", ["mgs", "cgs", "cgs2"])
    def test_extend(self, orthog_type, n=10, max_size=4):
        """Projected operators stay exact and the basis orthonormal."""
        hdm = _get_hdm(n)
        prom = self.PROM(hdm, max_size, orthog_type)
        omegas = [0.5, 1.9, 1.1, 1.5]
        K, M = hdm.stiffness_matrix(), hdm.mass_matrix()
        C = hdm.damping_matrix()
        b1 = hdm.excitation_vector1()

        for j, omega in enumerate(omegas):
            u = _hdm_solve(hdm, omega)
            prom.extend(u, omega)
            V = prom.basis.entries
            assert prom.dim_V == 2 * (j + 1)
            assert prom.dim_Q == j + 1
            assert prom.basis.orthogonality_error() < 1e-10
            assert prom.snapshots.orthogonality_error() < 1e-10
            assert np.allclose(prom.Kr, V.T @ K @ V)
            assert np.allclose(prom.Mr, V.T @ M @ V)
            assert np.allclose(prom.Cr, V.T @ C @ V)
            assert np.allclose(prom.RHS1r, V.T @ b1)

        # Sampled solutions are reproduced.
        for omega in omegas:
            assert np.allclose(prom.solve(omega), _hdm_solve(hdm, omega))

        # The next sample is away from the existing samples.
        omega_star = prom.find_max_error(0.4, 0.01, 171)
        assert 0.4 <= omega_star <= 2.1
        assert omega_star not in omegas

    def test_extend_dependent(self, n=4):
        """Solutions whose parts are already in the basis keep it
        orthonormal and the projected operators exact.
        """
        hdm = _get_hdm(n)
        K = hdm.stiffness_matrix()
        prom = self.PROM(hdm, 3)
        u = _hdm_solve(hdm, 1.0)
        prom.extend(u, 1.0)
        assert prom.dim_V == 2

        prom.extend(u.conj(), 1.2)
        assert prom.dim_V == 2
        assert prom.dim_Q == 2
        assert prom.basis.orthogonality_error() < 1e-10
        assert prom.snapshots.orthogonality_error() < 1e-10
        V = prom.basis.entries
        assert np.allclose(prom.Kr, V.T @ K @ V)

        # A new imaginary part with a dependent real part adds one vector.
        e = np.eye(n)
        prom = self.PROM(hdm, 3)
        prom.extend(e[0], 1.0)
        prom.extend(e[1] + 1j * e[0], 1.5)
        assert prom.dim_V == 2
        assert prom.dim_Q == 2
        assert prom.Kr.shape == (2, 2)
        assert prom.basis.orthogonality_error() < 1e-10
        prom.extend(e[2], 2.0)
        assert prom.dim_V == 3
        assert np.allclose(prom.Kr, K[:3, :3])

    def test_extend_failure(self, monkeypatch, n=4):
        """A failed update leaves the model as it was."""
        hdm = _get_hdm(n)
        K = hdm.stiffness_matrix()
        e = np.eye(n)
        prom = self.PROM(hdm, 3)
        prom.extend(e[0], 1.0)

        # The snapshot repeats an existing one exactly.
        with pytest.raises(ValueError) as ex:
            prom.extend(e[0], 1.5)
        assert ex.value.args[0] == "cannot normalize a vector with zero norm"
        assert prom.dim_V == prom.dim_Q == 1
        assert np.all(prom.sample_points == [1.0])

        # Failure after the bases and operators have grown.
        def fail(*args, **kwargs):
            raise RuntimeError("estimator failure")

        monkeypatch.setattr(prom.estimator, "fit", fail)
        with pytest.raises(RuntimeError) as ex:
            prom.extend(e[1] + 1j * e[2], 2.0)
        assert ex.value.args[0] == "estimator failure"
        assert prom.dim_V == prom.dim_Q == 1
        assert prom.Kr.shape == prom.Mr.shape == prom.Cr.shape == (1, 1)
        assert prom.RHS1r.shape == (1,)
        assert prom.snapshots.factor.shape == (1, 1)
        assert np.all(prom.sample_points == [1.0])
        monkeypatch.undo()

        # The model keeps growing normally.
        prom.extend(e[1] + 1j * e[2], 2.0)
        assert prom.dim_V == 3
        assert prom.dim_Q == 2
        assert np.all(prom.sample_points == [1.0, 2.0])
        assert np.allclose(prom.Kr, K[:3, :3])
        assert prom.basis.orthogonality_error() < 1e-10
        assert prom.snapshots.orthogonality_error() < 1e-10
        assert np.isclose(abs(prom.snapshots.factor[1, 1]), np.sqrt(2))

    def test_frequency_terms(self, n=8):
        """Port operator and frequency-dependent excitation."""
        D = np.diag(np.linspace(0.1, 1, n))
        b2 = np.ones(n)
        hdm = _get_hdm(
            n,
            damping=False,
            A2=lambda w: 1j * w * D,
            RHS2=lambda w: np.exp(-w) * b2,
        )
        prom = self.PROM(hdm, 3)
        for omega in (0.7, 1.4, 2.1):
            prom.extend(_hdm_solve(hdm, omega), omega)
        assert prom.Cr is None
        assert prom.engine.has_A2 and prom.engine.has_RHS2
        for omega in (0.7, 1.4, 2.1):
            assert np.allclose(prom.solve(omega), _hdm_solve(hdm, omega))

    def test_port_resonance(self):
        """Resonance of 4 - omega^2 + omega / 10 = 0."""
        hdm = _scalar_hdm(A2=lambda w: np.array([[0.1 * w]]))
        prom = self.PROM(hdm, 1)
        prom.extend(np.array([1j]), 1.0)
        result = prom.compute_eigenvalue_estimates(2.0, rng=1)
        exact = (0.1 + np.sqrt(0.01 + 16)) / 2
        assert result.all_converged
        assert abs(result.frequencies[0] - exact) < 1e-7

    def test_eigenvalue_estimates(self, n=4):
        """With a complete basis the reduced resonances are exact."""
        Q = la.qr(np.random.default_rng(8).standard_normal((n, n)))[0]
        resonances = np.arange(1.0, n + 1)
        hdm = promsweep.operators.MatrixHDMOperator(
            Q @ np.diag(resonances**2) @ Q.T,
            np.eye(n),
            RHS1=Q @ np.ones(n),
        )
        prom = self.PROM(hdm, n)
        for omega in resonances - 0.5:
            prom.extend(_hdm_solve(hdm, omega), omega)
        assert prom.dim_V == n
        exact = np.concatenate([1j * resonances, -1j * resonances])

        for method in ("mslp", "rii"):
            result = prom.compute_eigenvalue_estimates(
                1.05, num_eig=2, method=method, rng=2
            )
            assert len(result) == 2
            assert result.all_converged
            assert abs(result.eigenvalues[0] - 1j) < 1e-6
            assert np.min(np.abs(exact - result.eigenvalues[1])) < 1e-6
            assert abs(result.eigenvalues[1] - 1j) > 0.5

    @pytest.mark.parametrize("size", [1, 2, 4])
    def test_distributed(self, size, n=12):
        """Models on 1, 2, and 4 simulated ranks agree."""
        d = np.linspace(1, 9, n) + 0.05
        omegas = [1.3, 2.7, 2.0]
        rows = np.array_split(np.arange(n), size)

        def build(comm, rows):
            hdm = promsweep.operators.MatrixHDMOperator(
                np.diag(d[rows]),
                np.eye(len(rows)),
                RHS1=np.ones(len(rows)),
                comm=comm,
            )
            prom = promsweep.FrequencyPROM(hdm, 4)
            for omega in omegas:
                prom.extend(1j * omega / (d[rows] - omega**2), omega)
            return (
                prom.find_max_error(1.0, 0.01, 200),
                prom.solve(1.7),
                prom.Kr.copy(),
            )

        serial = build(promsweep.utils.SerialCommunicator(), np.arange(n))
        group = promsweep.utils.ThreadCommunicator(size)
        results = group.run(lambda comm: build(comm, rows[comm.rank]))

        for omega_star, _, Kr in results:
            assert omega_star == results[0][0]
            assert np.all(Kr == results[0][2])
        assert results[0][0] == serial[0]
        assert np.allclose(np.concatenate([r[1] for r in results]), serial[1])
        assert np.allclose(results[0][2], serial[2])

    def test_saveload(self, n=6, target="_promsaveloadtest.h5"):
        if os.path.isfile(target):  # pragma: no cover
            os.remove(target)

        hdm = _get_hdm(n)
        prom = self.PROM(hdm, 3, orthog_type="cgs2")
        for omega in (0.6, 1.8):
            prom.extend(_hdm_solve(hdm, omega), omega)
        prom.save(target)
        assert os.path.isfile(target)

        with pytest.raises(FileExistsError) as ex:
            prom.save(target, overwrite=False)
        assert ex.value.args[0] == f"{target} (overwrite=True to ignore)"
        prom.save(target, overwrite=True)

        prom2 = self.PROM.load(target, hdm)
        assert prom2.max_size == prom.max_size
        assert prom2.orthog_type == "cgs2"
        assert prom2.dim_V == prom.dim_V
        assert prom2.dim_Q == prom.dim_Q
        assert np.all(prom2.basis.entries == prom.basis.entries)
        assert np.all(prom2.snapshots.entries == prom.snapshots.entries)
        assert np.all(prom2.snapshots.factor == prom.snapshots.factor)
        assert np.all(prom2.sample_points == prom.sample_points)
        for attr in "Kr", "Cr", "Mr", "RHS1r":
            assert np.all(getattr(prom2, attr) == getattr(prom, attr))
        assert np.allclose(prom2.solve(1.2), prom.solve(1.2))
        assert prom2.find_max_error(0.5, 0.01, 150) == prom.find_max_error(
            0.5, 0.01, 150
        )

        # The loaded model can keep growing.
        prom2.extend(_hdm_solve(hdm, 1.2), 1.2)
        assert prom2.dim_Q == 3

        # Mismatched full-order model.
        with pytest.raises(promsweep.errors.LoadfileFormatError) as ex:
            self.PROM.load(target, _get_hdm(n + 1))
        assert ex.value.args[0] == (
            f"saved full state dimension {n} does not match "
            f"HDM dimension {n + 1}"
        )

        # Saved damping but the model has none.
        with pytest.raises(promsweep.errors.LoadfileFormatError) as ex:
            self.PROM.load(target, _get_hdm(n, damping=False))
        assert ex.value.args[0] == (
            "saved damping operator does not match the HDM"
        )

        os.remove(target)


if __name__ == "__main__":
    pytest.main([__file__])

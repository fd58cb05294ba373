import logging

import numpy as np
import pytest
from scipy.optimize import brentq
from scipy.stats import chi2, ncx2

from cwsens.config import SolverConfig
from cwsens.errors import (
    ConvergenceFailure,
    InvalidHistogramShape,
    NegativeDomainError,
    UnboundedMassError,
    UnknownStatisticFamily,
)
from cwsens.hist.histogram import create_delta_hist, create_hist
from cwsens.sensitivity.fdp import resolve_fdp
from cwsens.sensitivity.snr import geometric_factor_nodes, sensitivity_snr


def _reference_rhosqr(pd, Ns, paNt, x, w):
    sa = chi2.isf(paNt, 4 * Ns)

    def f(r):
        return np.sum(w * ncx2.cdf(sa, 4 * Ns, Ns * r * x)) - pd

    return brentq(f, 0.0, 1e4, xtol=1e-12, rtol=1e-12)


def test_scalar_geometric_factor_matches_reference():
    pd = np.array([0.05, 0.1, 0.2])
    rho, pd_rho = sensitivity_snr(pd, 20, 1.0, "ChiSqr", paNt=1e-10, cfg=SolverConfig(seed=1))
    assert rho.shape == (3,)
    assert np.all(np.abs(pd_rho - pd) / pd < 1e-3)
    for k in range(3):
        ref = _reference_rhosqr(pd[k], 20, 1e-10, np.array([1.0]), np.array([1.0]))
        assert rho[k] ** 2 == pytest.approx(ref, rel=1e-6)


def test_histogram_geometric_factor_matches_reference():
    rng = np.random.default_rng(7)
    rsqr = create_hist(rng.uniform(0.2, 2.0, 20000), 0.05)
    view = rsqr.probability_view(0)
    x, w = view.centre[1:-1], view.prob[1:-1]

    rho, pd_rho = sensitivity_snr(0.1, 10, rsqr, "ChiSqr", paNt=1e-6, cfg=SolverConfig(seed=2))
    assert abs(float(pd_rho) - 0.1) / 0.1 < 1e-3
    assert float(rho) ** 2 == pytest.approx(_reference_rhosqr(0.1, 10, 1e-6, x, w), rel=1e-6)


def test_smaller_false_dismissal_needs_larger_snr():
    pd = np.array([0.3, 0.2, 0.1, 0.05, 0.01])
    rho, _ = sensitivity_snr(pd, 20, 1.0, paNt=1e-10, cfg=SolverConfig(seed=3))
    assert np.all(np.diff(rho) > 0)


def test_output_shape_follows_broadcast_inputs():
    pd = np.array([[0.05], [0.1], [0.2]])
    Ns = np.array([[10, 40]])
    rho, pd_rho = sensitivity_snr(pd, Ns, 1.0, paNt=1e-8, cfg=SolverConfig(seed=4))
    assert rho.shape == (3, 2)
    assert pd_rho.shape == (3, 2)
    assert np.all(np.isfinite(rho))
    # more segments need less SNR per segment
    assert np.all(rho[:, 1] < rho[:, 0])


def test_same_seed_gives_same_answer():
    a, _ = sensitivity_snr([0.1, 0.2], 20, 1.0, paNt=1e-10, cfg=SolverConfig(seed=11))
    b, _ = sensitivity_snr([0.1, 0.2], 20, 1.0, paNt=1e-10, rng=np.random.default_rng(11))
    assert np.array_equal(a, b)


def test_mismatch_scales_geometric_factor():
    cfg = SolverConfig(seed=5)
    with_delta, _ = sensitivity_snr(0.1, 20, 1.0, mismatch=create_delta_hist(0.1), paNt=1e-10, cfg=cfg)
    with_scalar, _ = sensitivity_snr(0.1, 20, 0.9, paNt=1e-10, cfg=cfg)
    assert float(with_delta) == pytest.approx(float(with_scalar), rel=1e-6)


def test_geometric_factor_nodes_form_product_distribution():
    rsqr = create_hist([0.5, 1.5], 1.0)
    x, w = geometric_factor_nodes(rsqr, 0.2)
    assert np.allclose(x, [0.4, 1.2])
    assert np.allclose(w, [0.5, 0.5])
    with pytest.raises(ValueError):
        geometric_factor_nodes(rsqr, 1.5)


def test_rows_below_target_at_zero_snr_are_nan():
    rho, pd_rho = sensitivity_snr([0.1, 0.7], 20, 1.0, paNt=0.5, cfg=SolverConfig(seed=6))
    assert np.isfinite(rho[0]) and np.isfinite(pd_rho[0])
    assert np.isnan(rho[1]) and np.isnan(pd_rho[1])


def test_hough_family_converges():
    rho, pd_rho = sensitivity_snr(0.1, 20, 1.0, "HoughFstat", paNt=1e-3, cfg=SolverConfig(seed=7))
    assert abs(float(pd_rho) - 0.1) / 0.1 < 1e-3

    setup = resolve_fdp("HoughFstat", 0.1, 20, paNt=1e-3)

    def f(r):
        return float(setup.fdp(setup.pd, setup.Ns, np.asarray(r), setup.aux)) - 0.1

    assert float(rho) ** 2 == pytest.approx(brentq(f, 0.0, 1e3, xtol=1e-12, rtol=1e-12), rel=1e-6)


def test_invalid_geometric_factor():
    with pytest.raises(InvalidHistogramShape):
        sensitivity_snr(0.1, 20, create_hist([[0.5, 0.5]], 0.1), paNt=1e-3)
    with pytest.raises(NegativeDomainError):
        sensitivity_snr(0.1, 20, create_hist([-0.5, 0.5], 0.25), paNt=1e-3)
    with pytest.raises(UnboundedMassError):
        sensitivity_snr(0.1, 20, create_hist([0.5, 1.0, np.inf], 0.25), paNt=1e-3)
    with pytest.raises(NegativeDomainError):
        sensitivity_snr(0.1, 20, -1.0, paNt=1e-3)


def test_invalid_arguments():
    with pytest.raises(ValueError):
        sensitivity_snr(1.0, 20, 1.0, paNt=1e-3)
    with pytest.raises(ValueError):
        sensitivity_snr(0.1, 0, 1.0, paNt=1e-3)
    with pytest.raises(UnknownStatisticFamily):
        sensitivity_snr(0.1, 20, 1.0, "Fstat", paNt=1e-3)


def test_iteration_caps_raise_convergence_failure():
    with pytest.raises(ConvergenceFailure):
        sensitivity_snr(0.1, 20, 1.0, paNt=1e-10, cfg=SolverConfig(max_iterations=2, seed=8))
    # zero geometric factor: the false dismissal probability never drops
    with pytest.raises(ConvergenceFailure) as excinfo:
        sensitivity_snr([0.1, 0.2], 20, 0.0, paNt=1e-10, cfg=SolverConfig(max_bracket_steps=8))
    assert excinfo.value.rows == (0, 1)


def test_progress_callback_failures_are_ignored():
    stages = []

    def record(stage, n):
        stages.append(stage)
        raise RuntimeError("display went away")

    rho, _ = sensitivity_snr(0.1, 20, 1.0, paNt=1e-10, cfg=SolverConfig(seed=9), progress=record)
    assert np.isfinite(rho)
    assert stages[0] == "starting"
    assert "finding rhosqr_max" in stages
    assert "bisection search" in stages
    assert stages[-1] == "done"


def test_progress_is_logged(caplog):
    caplog.set_level(logging.INFO, logger="cwsens")
    sensitivity_snr(0.1, 20, 1.0, paNt=1e-10, cfg=SolverConfig(seed=10), progress=True)
    assert "sensitivity_snr: starting" in caplog.text
    assert "sensitivity_snr: done" in caplog.text


def test_mismatch_histogram_built_from_samples_is_accepted():
    rng = np.random.default_rng(12)
    mis = create_hist(np.append(rng.uniform(0.0, 1.0, 1000), 1.0), 0.03)
    assert mis.range(0)[1] > 1.0
    rho, pd_rho = sensitivity_snr(0.1, 20, 1.0, mismatch=mis, paNt=1e-3, cfg=SolverConfig(seed=13))
    assert np.isfinite(rho)
    assert abs(float(pd_rho) - 0.1) / 0.1 < 1e-3

    # a sample at exactly 1 opens a bin starting at 1; its node is clipped to 1
    edge = create_hist([0.2, 1.0], 0.25)
    assert np.array_equal(edge.finite_edges(0), [0.0, 0.25, 0.5, 0.75, 1.0, 1.25])
    x, w = geometric_factor_nodes(1.0, edge)
    assert np.allclose(np.sort(x), [0.0, 0.875])
    assert np.allclose(w, [0.5, 0.5])


def test_mismatch_histogram_with_mass_above_one():
    with pytest.raises(ValueError):
        geometric_factor_nodes(1.0, create_hist([0.5, 1.5], 0.25))


def test_mass_at_minus_infinity_is_rejected():
    with pytest.raises(UnboundedMassError):
        sensitivity_snr(0.1, 20, create_hist([-np.inf, 0.5, 1.0], 0.25), paNt=1e-3)


def test_non_finite_false_dismissal_raises_convergence_failure():
    with pytest.raises(ConvergenceFailure) as excinfo:
        sensitivity_snr([0.1, 0.2], 20, 1.0, sa=[100.0, np.nan], cfg=SolverConfig(seed=14))
    assert excinfo.value.rows == (1,)

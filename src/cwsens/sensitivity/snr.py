"""Solve for the detectable SNR at a target false-dismissal probability.

The solver treats the distribution of the SNR geometric factor ``R^2`` as a
set of quadrature nodes and weights, and finds for every input row the
per-segment squared SNR ``rhosqr`` at which the weighted false-dismissal
probability

``sum_j w_j * FDP(pd, Ns, rhosqr * x_j)``

equals the target ``pd``. All rows are solved together with boolean masks
selecting the rows that are still active:

1. Evaluate the false-dismissal probability at ``rhosqr = 0``. Rows already
   below target are left as NaN.
2. Double an upper bound on ``rhosqr`` until the false-dismissal probability
   drops below target.
3. Refine the bracket with randomized bisection: each round draws one
   uniform point per row inside its bracket and replaces the endpoint on the
   same side of the target. A row converges once the relative error in
   ``pd`` and the relative bracket width are both below tolerance.

See Also:
    cwsens.sensitivity.fdp: Statistic families.
    cwsens.config.SolverConfig: Tolerances and iteration caps.
"""

from __future__ import annotations
from typing import Callable

import numpy as np

from cwsens.config import SolverConfig
from cwsens.errors import (
    ConvergenceFailure,
    InvalidHistogramShape,
    NegativeDomainError,
    UnboundedMassError,
)
from cwsens.hist.histogram import Histogram
from cwsens.sensitivity.fdp import StatisticFamily, resolve_fdp
from cwsens.utils.logging import info, warn

ProgressCallback = Callable[[str, int], None]


def _hist_nodes(
    hgrm: Histogram,
    name: str,
    upper: float | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Return finite bin centres and probabilities of a 1-D distribution histogram."""
    if hgrm.dim != 1:
        raise InvalidHistogramShape(f"{name} must be a 1D histogram, got {hgrm.dim} dimensions.")
    if hgrm.total <= 0:
        raise ValueError(f"{name} histogram is empty.")
    if np.isnan(hgrm.range(0)[0]):
        raise UnboundedMassError(f"{name} histogram has no finite bins.")
    view = hgrm.probability_view(0)
    if view.prob[0] > 0 or view.prob[-1] > 0:
        raise UnboundedMassError(
            f"{name} histogram contains non-zero probability in infinite bins "
            f"({view.prob[0]:.3g} at -inf, {view.prob[-1]:.3g} at +inf)."
        )
    lower = hgrm.bins(0, "lower")[1:-1]
    x = view.centre[1:-1]
    w = (view.density * view.width)[1:-1]
    keep = w > 0
    lower, x, w = lower[keep], x[keep], w[keep]
    # only bins carrying mass are checked; the top edge may overshoot the samples
    if np.any(lower < 0):
        raise NegativeDomainError(
            f"{name} histogram bins must be positive; lowest occupied edge is {lower.min():g}."
        )
    if upper is not None:
        if np.any(lower > upper):
            raise ValueError(
                f"{name} histogram bins must not exceed {upper:g}; highest occupied bin starts at {lower.max():g}."
            )
        x = np.minimum(x, upper)
    return x, w


def _scalar_nodes(val, name: str, upper: float | None = None) -> tuple[np.ndarray, np.ndarray]:
    if np.ndim(val) != 0:
        raise InvalidHistogramShape(f"{name} must be a Histogram or a scalar.")
    x = float(val)
    if not np.isfinite(x):
        raise ValueError(f"{name} must be finite, got {x}.")
    if x < 0:
        raise NegativeDomainError(f"{name} must be non-negative, got {x:g}.")
    if upper is not None and x > upper:
        raise ValueError(f"{name} must not exceed {upper:g}, got {x:g}.")
    return np.array([x]), np.array([1.0])


def geometric_factor_nodes(rsqr, mismatch=None) -> tuple[np.ndarray, np.ndarray]:
    """Return quadrature nodes and weights for the effective geometric factor.

    Args:
        rsqr (Histogram | float): Distribution of ``R^2``, or its single value.
        mismatch (Histogram | float | None): Distribution of template
            mismatch in ``[0, 1]``, or its single value.

    Returns:
        tuple[numpy.ndarray, numpy.ndarray]: Nodes ``R^2 * (1 - mismatch)``
        and weights over the product distribution.

    Raises:
        InvalidHistogramShape: If a histogram is not 1-D.
        NegativeDomainError: If ``R^2`` or mismatch has negative support.
        UnboundedMassError: If a histogram has mass in an infinite bin.
    """
    if isinstance(rsqr, Histogram):
        x, w = _hist_nodes(rsqr, "R^2")
    else:
        x, w = _scalar_nodes(rsqr, "R^2")
    if mismatch is None:
        return x, w
    if isinstance(mismatch, Histogram):
        m, wm = _hist_nodes(mismatch, "mismatch", upper=1.0)
    else:
        m, wm = _scalar_nodes(mismatch, "mismatch", upper=1.0)
    x = (x[:, None] * (1.0 - m)[None, :]).ravel()
    w = (w[:, None] * wm[None, :]).ravel()
    return x, w


def _progress_reporter(progress: bool | ProgressCallback) -> Callable[[str, int], None]:
    if not progress:
        return lambda stage, n: None
    if callable(progress):
        sink = progress
    else:
        def sink(stage: str, n: int) -> None:
            if stage in ("starting", "done"):
                info(f"sensitivity_snr: {stage}")
            else:
                info(f"sensitivity_snr: {stage} ({n} left)")
    last: dict[str, int] = {}

    def report(stage: str, n: int) -> None:
        if last.get(stage) == n:
            return
        last[stage] = n
        try:
            sink(stage, n)
        except Exception:
            pass

    return report


def sensitivity_snr(
    pd,
    Ns,
    rsqr,
    family: str | StatisticFamily = StatisticFamily.CHI_SQR,
    *,
    mismatch=None,
    cfg: SolverConfig | None = None,
    rng: np.random.Generator | None = None,
    progress: bool | ProgressCallback = False,
    **fdp_opts,
) -> tuple[np.ndarray, np.ndarray]:
    """Compute the detectable r.m.s. SNR per segment.

    Args:
        pd (array_like): Target false-dismissal probabilities in (0, 1).
        Ns (array_like): Number of segments, positive.
        rsqr (Histogram | float): Histogram of the SNR geometric factor
            ``R^2``, or a single non-negative value.
        family (str | StatisticFamily): Detection statistic, ``"ChiSqr"`` or
            ``"HoughFstat"``.
        mismatch (Histogram | float | None): Optional template mismatch
            distribution; the geometric factor becomes ``R^2 * (1 - mismatch)``.
        cfg (SolverConfig | None): Tolerances and iteration caps.
        rng (numpy.random.Generator | None): Source of the bisection draws;
            defaults to ``default_rng(cfg.seed)``.
        progress (bool | callable): If True, log progress via
            :mod:`cwsens.utils.logging`; a callable receives
            ``(stage, n_active)`` instead. Failures while reporting are
            ignored.
        **fdp_opts: Options for the statistic family, see
            :func:`cwsens.sensitivity.fdp.resolve_fdp`.

    Returns:
        tuple[numpy.ndarray, numpy.ndarray]: ``(rho, pd_rho)``, the detectable
        SNR and the achieved false-dismissal probability, both shaped like the
        broadcast inputs. Rows whose false-dismissal probability at zero SNR
        is already below target are NaN in both.

    Raises:
        ValueError: If ``pd`` or ``Ns`` are out of range, or family options
            are invalid.
        UnknownStatisticFamily: If ``family`` is not recognized.
        InvalidHistogramShape: If ``rsqr`` is not a 1-D histogram or scalar.
        NegativeDomainError: If ``rsqr`` has negative support.
        UnboundedMassError: If ``rsqr`` has mass in its infinite bins.
        ConvergenceFailure: If bracketing or bisection exceeds its cap.

    Examples:
        >>> rho, pd_rho = sensitivity_snr(0.1, 20, 1.0, "ChiSqr", paNt=1e-10, cfg=SolverConfig(seed=1))
        >>> bool(abs(pd_rho - 0.1) < 1e-4)
        True
    """
    cfg = cfg or SolverConfig()
    pd = np.asarray(pd, dtype=float)
    Ns = np.asarray(Ns, dtype=float)
    if np.any(~((pd > 0) & (pd < 1))):
        raise ValueError("False dismissal probabilities 'pd' must lie in (0, 1).")
    if np.any(~(Ns > 0)):
        raise ValueError("Number of segments 'Ns' must be positive.")

    setup = resolve_fdp(family, pd, Ns, **fdp_opts)
    shape = setup.shape
    pd_c = setup.pd.reshape(-1)
    Ns_c = setup.Ns.reshape(-1)
    aux = {k: v.reshape(-1) for k, v in setup.aux.items()}
    x, w = geometric_factor_nodes(rsqr, mismatch)
    rng = rng if rng is not None else np.random.default_rng(cfg.seed)
    report = _progress_reporter(progress)
    n = pd_c.size

    def call_fdp(rhosqr: np.ndarray, ii: np.ndarray) -> np.ndarray:
        pr = setup.fdp(
            pd_c[ii, None],
            Ns_c[ii, None],
            rhosqr[ii, None] * x[None, :],
            {k: v[ii, None] for k, v in aux.items()},
        )
        out = np.sum(pr * w[None, :], axis=1)
        if not np.all(np.isfinite(out)):
            rows = tuple(int(r) for r in np.flatnonzero(ii)[~np.isfinite(out)])
            raise ConvergenceFailure(
                f"{setup.family.value}: non-finite false dismissal probability for rows {rows[:10]}.",
                rows,
            )
        return out

    report("starting", n)
    rhosqr = np.full(n, np.nan)
    pd_rho = np.full(n, np.nan)
    rhosqr_min = np.zeros(n)
    pd_rho_max = np.zeros(n)

    # only rows not already below target at zero SNR need a search
    pd_rho_min = call_fdp(rhosqr_min, np.ones(n, dtype=bool))
    ii0 = pd_rho_min >= pd_c
    if not np.all(ii0):
        warn(
            f"sensitivity_snr: {int(np.count_nonzero(~ii0))} rows already meet the target "
            "false dismissal probability at zero SNR; returning NaN for them."
        )

    rhosqr_max = np.full(n, float(cfg.rhosqr_max_start))
    ii = ii0.copy()
    steps = 0
    while np.any(ii):
        report("finding rhosqr_max", int(np.count_nonzero(ii)))
        if steps >= cfg.max_bracket_steps:
            rows = tuple(int(r) for r in np.flatnonzero(ii))
            raise ConvergenceFailure(
                f"Could not bracket rhosqr after {steps} doublings for rows {rows[:10]}; "
                "is the false dismissal probability decreasing in SNR?",
                rows,
            )
        rhosqr_max[ii] *= 2.0
        pd_rho_max[ii] = call_fdp(rhosqr_max, ii)
        ii = ii0 & (pd_rho_max >= pd_c)
        steps += 1

    err1 = np.full(n, np.inf)
    err2 = np.full(n, np.inf)
    ii = ii0.copy()
    iterations = 0
    while np.any(ii):
        report("bisection search", int(np.count_nonzero(ii)))
        if iterations >= cfg.max_iterations:
            rows = tuple(int(r) for r in np.flatnonzero(ii))
            raise ConvergenceFailure(
                f"Bisection search did not converge after {iterations} iterations for rows {rows[:10]}.",
                rows,
            )

        # one draw per row per round, shared across the batch
        u = rng.random(n)
        rhosqr[ii] = rhosqr_min[ii] * u[ii] + rhosqr_max[ii] * (1.0 - u[ii])
        pd_rho[ii] = call_fdp(rhosqr, ii)

        iimin = ii & (pd_rho >= pd_c)
        iimax = ii & (pd_rho < pd_c)
        rhosqr_min[iimin] = rhosqr[iimin]
        pd_rho_min[iimin] = pd_rho[iimin]
        rhosqr_max[iimax] = rhosqr[iimax]
        pd_rho_max[iimax] = pd_rho[iimax]

        err1[ii] = np.abs(pd_rho[ii] - pd_c[ii]) / pd_c[ii]
        with np.errstate(divide="ignore", invalid="ignore"):
            err2[ii] = (rhosqr_max[ii] - rhosqr_min[ii]) / rhosqr[ii]

        ii = ii0 & ~((err1 < cfg.pd_rtol) & (err2 < cfg.rhosqr_rtol))
        iterations += 1

    report("done", 0)
    rho = np.sqrt(rhosqr).reshape(shape)
    return rho, pd_rho.reshape(shape)

"""Estimate StackSlide sensitivity depth.

The sensitivity depth is defined as

``depth = sqrt(Sdata) / h0``,

where ``Sdata`` is the noise power spectral density averaged (harmonically)
over all data used, and ``h0`` is the smallest gravitational-wave amplitude
detectable at the given false-alarm and false-dismissal probabilities. With
``rho`` the detectable r.m.s. SNR per segment, ``depth = (2/5) sqrt(Tdata) /
(sqrt(Nseg) rho)``, where ``Tdata`` is the total amount of data from all
detectors.

See Also:
    cwsens.sensitivity.snr.sensitivity_snr: Computes ``rho``.
"""

from __future__ import annotations

import numpy as np

from cwsens.config import SolverConfig
from cwsens.sensitivity.fdp import StatisticFamily
from cwsens.sensitivity.snr import sensitivity_snr


def sensitivity_depth(rho, Nseg, Tdata):
    """Convert detectable SNR per segment into sensitivity depth."""
    rho_total = np.sqrt(np.asarray(Nseg, dtype=float)) * np.asarray(rho, dtype=float)
    return 2.0 / 5.0 * np.sqrt(float(Tdata)) / rho_total


def sensitivity_depth_stackslide(
    Nseg,
    Tdata: float,
    rsqr,
    *,
    pFD=0.1,
    pFA=None,
    avg2Fth=None,
    mismatch=None,
    dof: int = 4,
    cfg: SolverConfig | None = None,
    rng: np.random.Generator | None = None,
    progress: bool = False,
) -> np.ndarray:
    """Estimate the sensitivity depth of a StackSlide F-statistic search.

    Args:
        Nseg (array_like): Number of StackSlide segments.
        Tdata (float): Total amount of data used, in seconds, summed over
            detectors.
        rsqr (Histogram | float): Distribution of the SNR geometric factor
            ``R^2`` for the sky region and detector network of interest.
        pFD (array_like): False-dismissal probability (1 - confidence).
        pFA (array_like | None): False-alarm probability per template.
        avg2Fth (array_like | None): Alternative to ``pFA``: threshold on the
            segment-averaged 2F.
        mismatch (Histogram | float | None): Template mismatch distribution.
        dof (int): Degrees of freedom per segment.
        cfg (SolverConfig | None): Solver tolerances.
        rng (numpy.random.Generator | None): Source of bisection draws.
        progress (bool): Log solver progress.

    Returns:
        numpy.ndarray: Sensitivity depth, shaped like the broadcast inputs.

    Raises:
        ValueError: If neither or both of ``pFA`` and ``avg2Fth`` are given,
            or ``Tdata`` is not a positive scalar.

    Examples:
        >>> depth = sensitivity_depth_stackslide(20, 4.32e6, 1.0, pFA=1e-10, cfg=SolverConfig(seed=3))
        >>> bool(depth > 0)
        True
    """
    if pFA is None and avg2Fth is None:
        raise ValueError("Need at least one of 'pFA' or 'avg2Fth' to determine false-alarm probability.")
    if pFA is not None and avg2Fth is not None:
        raise ValueError("Must specify exactly one of 'pFA' or 'avg2Fth' to determine false-alarm probability.")
    if np.ndim(Tdata) != 0:
        raise ValueError("Calculation for multiple Tdata not supported.")
    if not float(Tdata) > 0:
        raise ValueError(f"Tdata must be positive, got {Tdata}.")

    if pFA is not None:
        fa_opts = {"paNt": pFA}
    else:
        fa_opts = {"sa": np.asarray(Nseg, dtype=float) * np.asarray(avg2Fth, dtype=float)}

    rho, _ = sensitivity_snr(
        pFD,
        Nseg,
        rsqr,
        StatisticFamily.CHI_SQR,
        mismatch=mismatch,
        cfg=cfg,
        rng=rng,
        progress=progress,
        dof=dof,
        **fa_opts,
    )
    return sensitivity_depth(rho, Nseg, Tdata)

"""Provide diagnostics helpers for histograms and sensitivity results.

Summaries are returned as pandas DataFrames or printed through
:mod:`cwsens.utils.logging`. No plotting is done here.

See Also:
    cwsens.hist.histogram.Histogram: Source of the bin tables.
    cwsens.sensitivity.snr.sensitivity_snr: Produces the solver outputs.
"""

from __future__ import annotations
import numpy as np
import pandas as pd

from cwsens.errors import InfiniteMassError
from cwsens.hist.histogram import Histogram
from cwsens.hist.moments import mean_of_hist, stdv_of_hist
from cwsens.utils.logging import info, warn


def hist_bin_table(hgrm: Histogram, dim: int = 0) -> pd.DataFrame:
    """Return one row per bin of ``dim`` with marginal probabilities.

    Args:
        hgrm (Histogram): Histogram to tabulate.
        dim (int): Dimension to tabulate; other dimensions are summed over.

    Returns:
        pandas.DataFrame: Columns ``lower``, ``upper``, ``centre``,
        ``width``, ``count``, ``prob`` and ``density``. The first and last
        rows are the infinite bins.

    Examples:
        >>> from cwsens.hist.histogram import create_hist
        >>> hist_bin_table(create_hist([0.5, 1.5], 1.0))["count"].tolist()
        [0.0, 1.0, 1.0, 0.0]
    """
    lower, upper, centre, width = hgrm.bins(dim, "lower", "upper", "centre", "width")
    view = hgrm.probability_view(dim)
    others = tuple(i for i in range(hgrm.dim) if i != dim)
    count = np.sum(hgrm.counts, axis=others) if others else np.array(hgrm.counts)
    return pd.DataFrame(
        {
            "lower": lower,
            "upper": upper,
            "centre": centre,
            "width": width,
            "count": count,
            "prob": view.prob,
            "density": view.density,
        }
    )


def sensitivity_table(pd_target, Ns, rho, pd_rho) -> pd.DataFrame:
    """Return one row per solved problem with the relative error in ``pd``.

    Args:
        pd_target (array_like): Target false-dismissal probabilities.
        Ns (array_like): Segment counts.
        rho (array_like): Detectable SNR returned by the solver.
        pd_rho (array_like): Achieved false-dismissal probabilities.

    Returns:
        pandas.DataFrame: Columns ``pd``, ``Ns``, ``rho``, ``pd_rho`` and
        ``pd_rel_err``; unsolved rows carry NaN.
    """
    pd_t, ns, r, p = (np.ravel(a) for a in np.broadcast_arrays(
        np.asarray(pd_target, dtype=float),
        np.asarray(Ns, dtype=float),
        np.asarray(rho, dtype=float),
        np.asarray(pd_rho, dtype=float),
    ))
    return pd.DataFrame(
        {
            "pd": pd_t,
            "Ns": ns,
            "rho": r,
            "pd_rho": p,
            "pd_rel_err": np.abs(p - pd_t) / pd_t,
        }
    )


def summarize_hist(hgrm: Histogram) -> None:
    """Print range, total weight and moments of every dimension.

    Notes:
        Dimensions with mass in their infinite bins have no moments; a
        warning is printed for them instead.

    Examples:
        >>> from cwsens.hist.histogram import create_hist
        >>> summarize_hist(create_hist([[0.5, 1.0], [1.5, 2.0]], 0.5))
    """
    info(f"Dimensions: {hgrm.dim}")
    info(f"Total weight: {hgrm.total:g}")
    for k in range(hgrm.dim):
        lo, hi = hgrm.range(k)
        nbins = max(hgrm.shape[k] - 2, 0)
        info(f"dim {k}: {nbins} finite bins, range [{lo:g}, {hi:g}]")
        if hgrm.total <= 0:
            continue
        try:
            info(f"dim {k}: mean {mean_of_hist(hgrm, k):g}, stdv {stdv_of_hist(hgrm, k):g}")
        except InfiniteMassError as exc:
            warn(f"dim {k}: {exc}")

"""Compute marginal moments of histogram dimensions.

Moments are taken over the finite bins of one dimension after marginalizing
all others, assuming uniform density within each bin. They are undefined if
any probability sits in the ``+-inf`` bins of that dimension, in which case
:class:`cwsens.errors.InfiniteMassError` is raised rather than silently
ignoring the unbounded mass.
"""

from __future__ import annotations

import numpy as np

from cwsens.errors import InfiniteMassError
from cwsens.hist.histogram import Histogram


def _finite_marginal(hgrm: Histogram, dim: int) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    if hgrm.total <= 0:
        raise ValueError("Moments of an empty histogram are undefined.")
    view = hgrm.probability_view(dim)
    if view.prob[0] > 0 or view.prob[-1] > 0:
        raise InfiniteMassError(
            f"Dimension {dim} has probability {view.prob[0]:.3g} at -inf and "
            f"{view.prob[-1]:.3g} at +inf; moments are undefined."
        )
    lower, upper = hgrm.bins(dim, "lower", "upper")
    return view.prob[1:-1], view.centre[1:-1], lower[1:-1], upper[1:-1]


def mean_of_hist(hgrm: Histogram, dim: int = 0) -> float:
    """Return the mean of dimension ``dim``.

    Args:
        hgrm (Histogram): Input histogram.
        dim (int): Dimension to take the mean over.

    Returns:
        float: ``sum(centre * prob)`` over finite bins.

    Raises:
        InfiniteMassError: If the ``+-inf`` bins of ``dim`` hold probability.
        ValueError: If the histogram is empty.

    Examples:
        >>> from cwsens.hist.histogram import create_hist
        >>> round(mean_of_hist(create_hist([0.05, 0.15], 0.1)), 6)
        0.1
    """
    p, c, _, _ = _finite_marginal(hgrm, dim)
    return float(np.sum(p * c))


def variance_of_hist(hgrm: Histogram, dim: int = 0) -> float:
    """Return the variance of dimension ``dim``.

    Each bin contributes its exact second moment under uniform density,
    ``(centre - mean)**2 + width**2 / 12``, so a single-bin histogram reports
    the variance of a uniform distribution over that bin.
    """
    p, c, lo, hi = _finite_marginal(hgrm, dim)
    mean = np.sum(p * c)
    w = hi - lo
    return float(np.sum(p * ((c - mean) ** 2 + w * w / 12.0)))


def stdv_of_hist(hgrm: Histogram, dim: int = 0) -> float:
    """Return the standard deviation of dimension ``dim``."""
    return float(np.sqrt(variance_of_hist(hgrm, dim)))

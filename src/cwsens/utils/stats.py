"""Provide chi-square false-alarm helpers.

These helpers convert between false-alarm probabilities and thresholds on a
central chi-square statistic, as used to set detection thresholds on summed
F-statistics.
"""

from __future__ import annotations
import numpy as np
from scipy.stats import chi2


def false_alarm_chi2(sa, dof) -> np.ndarray:
    """Return the false-alarm probability of threshold ``sa``.

    Args:
        sa: Threshold(s) on a central chi-square statistic.
        dof: Degrees of freedom.

    Returns:
        Array of probabilities ``P(chi2_dof > sa)``.

    Examples:
        >>> float(false_alarm_chi2(0.0, 4))
        1.0
    """
    return chi2.sf(np.asarray(sa, dtype=float), np.asarray(dof, dtype=float))


def inv_false_alarm_chi2(pa, dof) -> np.ndarray:
    """Return the threshold on a central chi-square statistic with false-alarm ``pa``.

    Args:
        pa: False-alarm probabilities in (0, 1).
        dof: Degrees of freedom.

    Returns:
        Array of thresholds ``sa`` with ``P(chi2_dof > sa) = pa``.

    Notes:
        Uses the inverse survival function directly, which stays accurate
        for the very small false-alarm probabilities of template-bank
        searches (``pa`` of order 1e-14 and below).

    Examples:
        >>> round(float(inv_false_alarm_chi2(0.5, 2)), 6)
        1.386294
    """
    pa = np.asarray(pa, dtype=float)
    if np.any(~((pa > 0) & (pa < 1))):
        raise ValueError("False-alarm probabilities must lie in (0, 1).")
    return chi2.isf(pa, np.asarray(dof, dtype=float))

"""Provide sensitivity estimates for continuous-wave searches.

This subpackage solves for the detectable SNR at a target false-dismissal
probability, averaging over a distribution of the SNR geometric factor, and
converts it into sensitivity depth.

See Also:
    cwsens.sensitivity.fdp: Detection-statistic families.
    cwsens.sensitivity.snr: Bracketing and randomized bisection solver.
    cwsens.sensitivity.depth: StackSlide sensitivity depth.
"""

from cwsens.sensitivity.depth import sensitivity_depth, sensitivity_depth_stackslide
from cwsens.sensitivity.fdp import FDPSetup, StatisticFamily, resolve_fdp
from cwsens.sensitivity.snr import geometric_factor_nodes, sensitivity_snr

__all__ = [
    "sensitivity_snr",
    "geometric_factor_nodes",
    "sensitivity_depth",
    "sensitivity_depth_stackslide",
    "StatisticFamily",
    "FDPSetup",
    "resolve_fdp",
]

"""Weighted histograms with dynamic rebinning and moment calculations."""

from cwsens.hist.histogram import Histogram, ProbabilityView, create_delta_hist, create_hist
from cwsens.hist.moments import mean_of_hist, stdv_of_hist, variance_of_hist
from cwsens.hist.resample import resample_hist

__all__ = [
    "Histogram",
    "ProbabilityView",
    "create_hist",
    "create_delta_hist",
    "mean_of_hist",
    "variance_of_hist",
    "stdv_of_hist",
    "resample_hist",
]

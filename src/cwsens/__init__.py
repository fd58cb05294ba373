"""Provide weighted histograms and sensitivity estimates for continuous-wave searches.

cwsens estimates how weak a continuous gravitational-wave signal a search can
detect. Its core is a pair of tightly coupled pieces: a weighted histogram of
arbitrary dimension, which can be rebinned while conserving probability, and
a root finder that treats such a histogram as a discretized distribution of
the SNR geometric factor and solves for the SNR reaching a target
false-dismissal probability.

Key capabilities include:
    - Accumulating weighted samples into histograms that grow as needed.
    - Resampling histograms onto new bin edges.
    - Marginal means, variances and standard deviations.
    - Detectable SNR for chi-square and Hough-on-F-statistic searches.
    - StackSlide sensitivity depth.

Most users should start with :func:`cwsens.hist.create_hist` and
:func:`cwsens.sensitivity.sensitivity_snr`.

See Also:
    cwsens.sensitivity.depth.sensitivity_depth_stackslide: Sensitivity depth.
    cwsens.errors: Error taxonomy.
"""

__all__ = []

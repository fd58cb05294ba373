"""Define configuration objects for histograms and sensitivity solves.

This module centralizes tuning knobs used by the histogram resampler and the
sensitivity solver. Defaults reproduce the convergence criteria of the
classic bracketing/bisection search. Prefer constructing explicit config
objects rather than scattering literals across modules.

All configuration classes are frozen dataclasses, making them hashable and
safe to share across solves.

See Also:
    cwsens.sensitivity.snr.sensitivity_snr: Consumes :class:`SolverConfig`.
    cwsens.sensitivity.fdp.resolve_fdp: Consumes the family configs.
"""

from __future__ import annotations
from dataclasses import dataclass

@dataclass(frozen=True)
class SolverConfig:
    """Configure the bracketing and randomized bisection search.

    Attributes:
        pd_rtol (float): Required relative error between achieved and target
            false-dismissal probability.
        rhosqr_rtol (float): Required relative width of the rhosqr bracket.
        rhosqr_max_start (float): Initial upper bracket; doubled before the
            first evaluation.
        max_bracket_steps (int): Maximum number of bracket doublings.
        max_iterations (int): Maximum number of bisection rounds.
        seed (int | None): Seed for the bisection random draws when no
            generator is passed explicitly.

    Notes:
        A row converges only once both tolerances are met. The iteration
        caps turn a non-monotonic false-dismissal function into a
        :class:`cwsens.errors.ConvergenceFailure` instead of an endless loop.

    Examples:
        >>> SolverConfig(pd_rtol=1e-4, seed=42)
    """
    pd_rtol: float = 1e-3
    rhosqr_rtol: float = 1e-8
    rhosqr_max_start: float = 1.0
    max_bracket_steps: int = 256     # 2**256 is far beyond any physical SNR^2
    max_iterations: int = 10000
    seed: int | None = None

@dataclass(frozen=True)
class ChiSqrConfig:
    """Configure the chi-square statistic family.

    Attributes:
        dof (int): Degrees of freedom per segment (4 for the F-statistic).
        gaussian (bool): If True, use the Gaussian approximation to the
            noncentral chi-square distribution.

    Examples:
        >>> ChiSqrConfig(dof=2)
    """
    dof: int = 4
    gaussian: bool = False

@dataclass(frozen=True)
class HoughFstatConfig:
    """Configure the Hough-on-F-statistic family.

    Attributes:
        Fth (float): Per-segment threshold on the F-statistic (the threshold
            on 2F is ``2 * Fth``).
    """
    Fth: float = 2.6

@dataclass(frozen=True)
class HistConfig:
    """Configure histogram resampling.

    Attributes:
        edge_rtol (float): New edges closer than ``edge_rtol`` times the
            smallest old bin width to an old edge are snapped onto it.
    """
    edge_rtol: float = 1e-10

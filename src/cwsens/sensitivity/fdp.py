"""Define false-dismissal probability functions for detection statistics.

A false-dismissal probability (FDP) function maps parallel arrays of target
false-dismissal probability ``pd``, segment count ``Ns``, per-segment squared
SNR ``rhosqr`` and family-specific auxiliary arrays to the achieved
false-dismissal probability. Every implementation must be monotonically
decreasing in ``rhosqr``; the sensitivity solver relies on it.

The set of families is closed and selected through :class:`StatisticFamily`:

- ``ChiSqr``: a chi-square statistic summed over segments, such as the
  F-statistic (4 degrees of freedom per segment).
- ``HoughFstat``: a Hough number count over per-segment F-statistic
  threshold crossings, in the Gaussian approximation.

See Also:
    cwsens.sensitivity.snr.sensitivity_snr: Solver that calls these functions.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

import numpy as np
from scipy.special import erfcinv
from scipy.stats import chi2, ncx2, norm

from cwsens.config import ChiSqrConfig, HoughFstatConfig
from cwsens.errors import UnknownStatisticFamily
from cwsens.utils.stats import inv_false_alarm_chi2


class StatisticFamily(str, Enum):
    """Closed set of detection-statistic families."""

    CHI_SQR = "ChiSqr"
    HOUGH_FSTAT = "HoughFstat"

    @classmethod
    def parse(cls, name: "str | StatisticFamily") -> "StatisticFamily":
        """Resolve a selector string, raising :class:`UnknownStatisticFamily`."""
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name))
        except ValueError:
            known = ", ".join(f"'{f.value}'" for f in cls)
            raise UnknownStatisticFamily(
                f"Invalid detection statistic '{name}'; expected one of {known}."
            ) from None


class FalseDismissalProbability(Protocol):
    """Callable returning the achieved false-dismissal probability."""

    def __call__(
        self,
        pd: np.ndarray,
        Ns: np.ndarray,
        rhosqr: np.ndarray,
        aux: dict[str, np.ndarray],
    ) -> np.ndarray: ...


@dataclass(frozen=True)
class ChiSqrFDP:
    """False-dismissal probability of a summed chi-square statistic.

    The statistic has ``dof * Ns`` degrees of freedom and noncentrality
    ``Ns * rhosqr``. The threshold ``sa`` is passed in ``aux``.
    """
    dof: int = 4
    gaussian: bool = False

    def __call__(self, pd, Ns, rhosqr, aux):
        sa = aux["sa"]
        k = self.dof * Ns
        lam = Ns * rhosqr
        if self.gaussian:
            return norm.cdf(sa, loc=k + lam, scale=np.sqrt(2.0 * (k + 2.0 * lam)))
        return ncx2.cdf(sa, k, lam)


@dataclass(frozen=True)
class HoughFstatFDP:
    """False-dismissal probability of a Hough number count on the F-statistic.

    Each segment contributes one count if ``2F`` exceeds ``2 * Fth``. With a
    signal, a segment crosses with probability ``eta``; the number count is
    approximated as Gaussian with mean ``Ns * eta`` and variance
    ``Ns * eta * (1 - eta)``. The count threshold ``nth`` is passed in ``aux``.
    """
    Fth: float = 2.6

    def __call__(self, pd, Ns, rhosqr, aux):
        nth = aux["nth"]
        eta = ncx2.sf(2.0 * self.Fth, 4, rhosqr)
        sd = np.sqrt(Ns * eta * (1.0 - eta))
        with np.errstate(divide="ignore", invalid="ignore"):
            out = norm.cdf(nth, loc=Ns * eta, scale=sd)
        # eta == 1: every segment crosses, the count is exactly Ns
        return np.where(sd > 0, out, (nth >= Ns * eta).astype(float))


@dataclass(frozen=True, eq=False)
class FDPSetup:
    """A resolved family with its inputs broadcast to a common shape.

    Attributes:
        family (StatisticFamily): Selected family.
        fdp (FalseDismissalProbability): Callable for the family.
        pd (numpy.ndarray): Target false-dismissal probabilities.
        Ns (numpy.ndarray): Segment counts.
        aux (dict[str, numpy.ndarray]): Per-row auxiliary arrays.
    """
    family: StatisticFamily
    fdp: FalseDismissalProbability
    pd: np.ndarray
    Ns: np.ndarray
    aux: dict[str, np.ndarray] = field(default_factory=dict)

    @property
    def shape(self) -> tuple[int, ...]:
        return self.pd.shape


def _exactly_one(name_a: str, a, name_b: str, b, family: StatisticFamily) -> None:
    if (a is None) == (b is None):
        raise ValueError(f"{family.value}: specify exactly one of '{name_a}' or '{name_b}'.")


def _setup_chisqr(pd, Ns, *, paNt=None, sa=None, dof=None, gaussian=None, cfg=None) -> FDPSetup:
    cfg = cfg or ChiSqrConfig()
    dof = cfg.dof if dof is None else int(dof)
    use_gaussian = cfg.gaussian if gaussian is None else bool(gaussian)
    if dof <= 0:
        raise ValueError(f"ChiSqr: 'dof' must be positive, got {dof}.")
    _exactly_one("paNt", paNt, "sa", sa, StatisticFamily.CHI_SQR)
    if sa is None:
        pd, Ns, paNt = np.broadcast_arrays(pd, Ns, np.asarray(paNt, dtype=float))
        sa = inv_false_alarm_chi2(paNt, dof * Ns)
    pd, Ns, sa = np.broadcast_arrays(pd, Ns, np.asarray(sa, dtype=float))
    return FDPSetup(
        family=StatisticFamily.CHI_SQR,
        fdp=ChiSqrFDP(dof=dof, gaussian=use_gaussian),
        pd=pd,
        Ns=Ns,
        aux={"sa": np.array(sa, dtype=float)},
    )


def _setup_hough_fstat(pd, Ns, *, paNt=None, nth=None, Fth=None, cfg=None) -> FDPSetup:
    cfg = cfg or HoughFstatConfig()
    Fth = cfg.Fth if Fth is None else float(Fth)
    if not Fth > 0:
        raise ValueError(f"HoughFstat: 'Fth' must be positive, got {Fth}.")
    _exactly_one("paNt", paNt, "nth", nth, StatisticFamily.HOUGH_FSTAT)
    if nth is None:
        pd, Ns, paNt = np.broadcast_arrays(pd, Ns, np.asarray(paNt, dtype=float))
        if np.any(~((paNt > 0) & (paNt < 1))):
            raise ValueError("HoughFstat: 'paNt' must lie in (0, 1).")
        alpha = chi2.sf(2.0 * Fth, 4)
        nth = Ns * alpha + np.sqrt(2.0 * Ns * alpha * (1.0 - alpha)) * erfcinv(2.0 * paNt)
    pd, Ns, nth = np.broadcast_arrays(pd, Ns, np.asarray(nth, dtype=float))
    return FDPSetup(
        family=StatisticFamily.HOUGH_FSTAT,
        fdp=HoughFstatFDP(Fth=Fth),
        pd=pd,
        Ns=Ns,
        aux={"nth": np.array(nth, dtype=float)},
    )


_FAMILY_OPTIONS = {
    StatisticFamily.CHI_SQR: {"paNt", "sa", "dof", "gaussian", "cfg"},
    StatisticFamily.HOUGH_FSTAT: {"paNt", "nth", "Fth", "cfg"},
}


def resolve_fdp(family: "str | StatisticFamily", pd, Ns, **opts) -> FDPSetup:
    """Select a statistic family and broadcast its inputs.

    Args:
        family (str | StatisticFamily): ``"ChiSqr"`` or ``"HoughFstat"``.
        pd (array_like): Target false-dismissal probabilities.
        Ns (array_like): Segment counts.
        **opts: Family options. ChiSqr takes exactly one of ``paNt`` or
            ``sa``, plus ``dof``, ``gaussian`` and ``cfg`` (a
            :class:`cwsens.config.ChiSqrConfig`). HoughFstat takes exactly one
            of ``paNt`` or ``nth``, plus ``Fth`` and ``cfg`` (a
            :class:`cwsens.config.HoughFstatConfig`).

    Returns:
        FDPSetup: Callable plus ``pd``, ``Ns`` and auxiliary arrays, all
        broadcast to one shape.

    Raises:
        UnknownStatisticFamily: If ``family`` is not a known selector.
        ValueError: For missing, conflicting or out-of-range options.

    Examples:
        >>> setup = resolve_fdp("ChiSqr", 0.1, [10, 20], paNt=1e-10)
        >>> setup.shape
        (2,)
    """
    fam = StatisticFamily.parse(family)
    unknown = sorted(set(opts) - _FAMILY_OPTIONS[fam])
    if unknown:
        raise ValueError(f"{fam.value}: unknown options {unknown}.")
    pd = np.asarray(pd, dtype=float)
    Ns = np.asarray(Ns, dtype=float)
    if fam is StatisticFamily.CHI_SQR:
        return _setup_chisqr(pd, Ns, **opts)
    return _setup_hough_fstat(pd, Ns, **opts)

"""Define the error taxonomy raised by cwsens.

Every error is unrecoverable at the point of detection and aborts the
enclosing call. Errors that describe malformed input also derive from
:class:`ValueError`, so generic callers keep working.

See Also:
    cwsens.hist.histogram.Histogram: Raises :class:`DimensionMismatch`.
    cwsens.sensitivity.snr.sensitivity_snr: Raises most of the others.
"""

from __future__ import annotations


class CWSensError(Exception):
    """Base exception for all errors raised by cwsens."""


class DimensionMismatch(CWSensError, ValueError):
    """Raised when sample or array width differs from a histogram's dimension count."""


class InvalidHistogramShape(CWSensError, ValueError):
    """Raised when an operation needing a 1-D histogram gets a higher-dimensional one."""


class NegativeDomainError(CWSensError, ValueError):
    """Raised when a geometric-factor histogram has bins below zero."""


class UnboundedMassError(CWSensError, ValueError):
    """Raised when a histogram carries probability in its infinite bins where none is allowed."""


class RangeCoverageError(CWSensError, ValueError):
    """Raised when resampling edges do not span the existing finite bin range."""


class InfiniteMassError(CWSensError, ValueError):
    """Raised when a moment is requested along a dimension with mass at +-infinity."""


class UnknownStatisticFamily(CWSensError, ValueError):
    """Raised when a detection-statistic selector names no known family."""


class ConvergenceFailure(CWSensError, RuntimeError):
    """Raised when a root search exceeds its iteration cap.

    Attributes:
        rows (tuple[int, ...]): Flat indices of the rows still unconverged.
    """

    def __init__(self, msg: str, rows: tuple[int, ...] = ()) -> None:
        super().__init__(msg)
        self.rows = rows

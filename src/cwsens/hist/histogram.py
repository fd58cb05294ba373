"""Represent weighted histograms of arbitrary dimension.

A :class:`Histogram` stores, per dimension, a strictly increasing edge vector
bracketed by ``-inf`` and ``+inf`` sentinels, plus a co-indexed array of
accumulated weights. The two outermost bins along every dimension have
infinite width and hold the mass that falls outside the finite range.

Histograms are immutable: :meth:`Histogram.add_data` and the resampler return
new objects and never modify arrays in place.

See Also:
    cwsens.hist.moments: Means and variances of histogram dimensions.
    cwsens.hist.resample.resample_hist: Rebin onto new edges.
"""

from __future__ import annotations
from dataclasses import dataclass

import numpy as np

from cwsens.errors import DimensionMismatch
from cwsens.utils.logging import warn

_BIN_QUANTITIES = ("lower", "upper", "centre", "width")


def _readonly(a: np.ndarray) -> np.ndarray:
    a = np.array(a, dtype=float)
    a.setflags(write=False)
    return a


@dataclass(frozen=True, eq=False)
class ProbabilityView:
    """Per-bin quantities of one histogram dimension, derived on demand.

    Attributes:
        centre (numpy.ndarray): Bin centres (``-inf``/``+inf`` for the
            sentinel bins).
        width (numpy.ndarray): Bin widths (``inf`` for the sentinel bins).
        prob (numpy.ndarray): Marginal probability mass per bin.
        density (numpy.ndarray): ``prob / width`` (zero in sentinel bins).
    """
    centre: np.ndarray
    width: np.ndarray
    prob: np.ndarray
    density: np.ndarray


@dataclass(frozen=True, eq=False)
class Histogram:
    """Weighted histogram over a fixed number of dimensions.

    Attributes:
        edges (tuple[numpy.ndarray, ...]): One edge vector per dimension, each
            starting with ``-inf`` and ending with ``+inf``.
        counts (numpy.ndarray): Accumulated weight per hyper-bin, of shape
            ``tuple(len(e) - 1 for e in edges)``.

    Examples:
        >>> h = Histogram.empty(1).add_data([0.05, 0.15, 0.17], 0.1)
        >>> h.counts.tolist()
        [0.0, 1.0, 2.0, 0.0]
    """
    edges: tuple[np.ndarray, ...]
    counts: np.ndarray

    def __post_init__(self) -> None:
        edges = tuple(_readonly(np.ravel(e)) for e in self.edges)
        if not edges:
            raise ValueError("Histogram needs at least one dimension.")
        for k, e in enumerate(edges):
            if e.size < 2 or e[0] != -np.inf or e[-1] != np.inf:
                raise ValueError(f"Edges of dimension {k} must be bracketed by -inf and +inf.")
            if not np.all(np.isfinite(e[1:-1])):
                raise ValueError(f"Inner edges of dimension {k} must be finite.")
            if np.any(np.diff(e) <= 0):
                raise ValueError(f"Edges of dimension {k} must be strictly increasing.")
        counts = _readonly(self.counts)
        shape = tuple(e.size - 1 for e in edges)
        if counts.shape != shape:
            raise DimensionMismatch(f"Counts shape {counts.shape} does not match edges shape {shape}.")
        if np.any(~(counts >= 0)):
            raise ValueError("Counts must be non-negative.")
        object.__setattr__(self, "edges", edges)
        object.__setattr__(self, "counts", counts)

    @classmethod
    def empty(cls, dim: int) -> "Histogram":
        """Create a histogram with ``dim`` dimensions and no finite bins."""
        dim = int(dim)
        if dim < 1:
            raise ValueError(f"Histogram dimension must be >= 1, got {dim}.")
        return cls(edges=tuple(np.array([-np.inf, np.inf]) for _ in range(dim)), counts=np.zeros((1,) * dim))

    @property
    def dim(self) -> int:
        return len(self.edges)

    @property
    def shape(self) -> tuple[int, ...]:
        return self.counts.shape

    @property
    def total(self) -> float:
        return float(np.sum(self.counts))

    def _check_dim(self, dim: int) -> int:
        dim = int(dim)
        if not 0 <= dim < self.dim:
            raise DimensionMismatch(f"Dimension {dim} out of range for {self.dim}-D histogram.")
        return dim

    def finite_edges(self, dim: int) -> np.ndarray:
        """Return the finite bin edges of dimension ``dim`` (possibly empty)."""
        return self.edges[self._check_dim(dim)][1:-1]

    def range(self, dim: int) -> np.ndarray:
        """Return ``[min, max]`` of the finite edges of ``dim``; NaNs if there are none."""
        e = self.finite_edges(dim)
        if e.size == 0:
            return np.array([np.nan, np.nan])
        return np.array([e[0], e[-1]])

    def add_data(
        self,
        data,
        dx,
        weights=None,
        *,
        drop_nan: bool = False,
    ) -> "Histogram":
        """Return a new histogram with ``data`` accumulated.

        Args:
            data (array_like): Samples of shape ``(N, dim)``; a 1-D array is
                accepted for 1-D histograms.
            dx (float | array_like): Width of newly created bins, scalar or
                one value per dimension.
            weights (array_like | None): Per-sample weights (default: 1).
            drop_nan (bool): If True, drop samples containing NaN with a
                warning instead of raising.

        Returns:
            Histogram: Histogram whose finite range covers all finite samples.

        Raises:
            DimensionMismatch: If the sample width, ``dx`` or ``weights`` do
                not match the histogram.
            ValueError: If ``dx`` is not positive, weights are negative, or
                samples contain NaN and ``drop_nan`` is False.

        Notes:
            When a dimension has no finite bins yet, new bins are aligned to
            integer multiples of ``dx``. Otherwise the existing edges are
            kept and extended outwards in steps of ``dx``, so existing counts
            are carried over exactly. Samples at ``+-inf`` are accumulated
            into the sentinel bins.
        """
        x = np.asarray(data, dtype=float)
        if x.ndim == 1 and self.dim == 1:
            x = x[:, None]
        if x.ndim != 2 or x.shape[1] != self.dim:
            raise DimensionMismatch(f"Samples of shape {x.shape} do not match {self.dim}-D histogram.")

        dxs = np.ravel(np.asarray(dx, dtype=float))
        if dxs.size == 1:
            dxs = np.full(self.dim, dxs[0])
        elif dxs.size != self.dim:
            raise DimensionMismatch(f"Got {dxs.size} bin widths for {self.dim}-D histogram.")
        if np.any(~(dxs > 0)) or not np.all(np.isfinite(dxs)):
            raise ValueError(f"Bin widths must be positive and finite, got {dxs.tolist()}.")

        if weights is None:
            w = np.ones(x.shape[0])
        else:
            w = np.ravel(np.asarray(weights, dtype=float))
            if w.size != x.shape[0]:
                raise DimensionMismatch(f"Got {w.size} weights for {x.shape[0]} samples.")
            if np.any(~(w >= 0)):
                raise ValueError("Weights must be non-negative.")

        bad = np.any(np.isnan(x), axis=1)
        if np.any(bad):
            if not drop_nan:
                raise ValueError(f"{int(np.count_nonzero(bad))} samples contain NaN.")
            warn(f"Dropping {int(np.count_nonzero(bad))} samples containing NaN.")
            x = x[~bad]
            w = w[~bad]

        hgrm = self
        for k in range(self.dim):
            xk = x[:, k]
            xk = xk[np.isfinite(xk)]
            if xk.size:
                hgrm = hgrm._extend(k, float(np.min(xk)), float(np.max(xk)), float(dxs[k]))

        if x.shape[0] == 0:
            return hgrm

        idx = []
        for k, e in enumerate(hgrm.edges):
            i = np.searchsorted(e, x[:, k], side="right") - 1
            idx.append(np.clip(i, 0, e.size - 2))
        flat = np.ravel_multi_index(tuple(idx), hgrm.shape)
        added = np.bincount(flat, weights=w, minlength=int(np.prod(hgrm.shape)))
        return Histogram(edges=hgrm.edges, counts=hgrm.counts + added.reshape(hgrm.shape))

    def _extend(self, k: int, lo: float, hi: float, dx: float) -> "Histogram":
        old = self.finite_edges(k)
        if old.size == 0:
            i0 = np.floor(lo / dx)
            if i0 * dx > lo:
                i0 -= 1
            i1 = np.floor(hi / dx) + 1
            if i1 * dx <= hi:
                i1 += 1
            finite = dx * np.arange(i0, i1 + 1)
            if np.any(self.counts > 0):
                raise ValueError(
                    f"Dimension {k} holds mass in its unbounded bin, which cannot be split into finite bins."
                )
            shape = list(self.shape)
            shape[k] = finite.size + 1
            return Histogram(
                edges=self.edges[:k] + (np.concatenate(([-np.inf], finite, [np.inf])),) + self.edges[k + 1:],
                counts=np.zeros(shape),
            )

        n_lo = 0
        if lo < old[0]:
            n_lo = int(np.ceil((old[0] - lo) / dx))
            if old[0] - n_lo * dx > lo:
                n_lo += 1
        n_hi = 0
        if hi >= old[-1]:
            n_hi = int(np.floor((hi - old[-1]) / dx)) + 1
            if old[-1] + n_hi * dx <= hi:
                n_hi += 1
        if n_lo == 0 and n_hi == 0:
            return self

        below = old[0] - dx * np.arange(n_lo, 0, -1)
        above = old[-1] + dx * np.arange(1, n_hi + 1)
        # pad the finite block only; sentinel bins stay outermost
        counts = np.moveaxis(self.counts, k, 0)
        inner = np.pad(counts[1:-1], [(n_lo, n_hi)] + [(0, 0)] * (self.dim - 1))
        counts = np.concatenate((counts[:1], inner, counts[-1:]), axis=0)
        return Histogram(
            edges=self.edges[:k] + (np.concatenate(([-np.inf], below, old, above, [np.inf])),) + self.edges[k + 1:],
            counts=np.moveaxis(counts, 0, k),
        )

    def bins(self, dim: int, *what: str):
        """Return derived bin quantities along ``dim``.

        Args:
            dim (int): Dimension index.
            *what (str): Any of ``lower``, ``upper``, ``centre``, ``width``.

        Returns:
            numpy.ndarray | tuple[numpy.ndarray, ...]: One array per requested
            quantity, each with one entry per bin (sentinel bins included).

        Examples:
            >>> h = create_hist([[0.05]], 0.1)
            >>> c, w = h.bins(0, "centre", "width")
            >>> c.tolist(), w.tolist()
            ([-inf, 0.05, inf], [inf, 0.1, inf])
        """
        e = self.edges[self._check_dim(dim)]
        lower, upper = e[:-1], e[1:]
        out = []
        for q in what:
            if q == "lower":
                out.append(lower.copy())
            elif q == "upper":
                out.append(upper.copy())
            elif q == "centre":
                with np.errstate(invalid="ignore"):
                    c = 0.5 * (lower + upper)
                c[np.isneginf(lower) & np.isfinite(upper)] = -np.inf
                c[np.isposinf(upper) & np.isfinite(lower)] = np.inf
                out.append(c)
            elif q == "width":
                out.append(upper - lower)
            else:
                raise ValueError(f"Unknown bin quantity '{q}'; expected one of {_BIN_QUANTITIES}.")
        if len(out) == 1:
            return out[0]
        return tuple(out)

    def probabilities(self) -> np.ndarray:
        """Return ``counts / total``; all zeros for an empty histogram."""
        total = self.total
        if total <= 0:
            return np.zeros(self.shape)
        return self.counts / total

    def densities(self) -> np.ndarray:
        """Return probability per unit hyper-volume; zero in infinite bins."""
        d = self.probabilities()
        for k in range(self.dim):
            w = self.bins(k, "width")
            d = d / w.reshape((-1,) + (1,) * (self.dim - 1 - k))
        return d

    def probability_view(self, dim: int = 0) -> ProbabilityView:
        """Return centres, widths and marginal probabilities along ``dim``."""
        dim = self._check_dim(dim)
        centre, width = self.bins(dim, "centre", "width")
        others = tuple(i for i in range(self.dim) if i != dim)
        prob = np.sum(self.probabilities(), axis=others) if others else self.probabilities()
        return ProbabilityView(centre=centre, width=width, prob=prob, density=prob / width)


def create_hist(data, dx, weights=None) -> Histogram:
    """Create a histogram sized to ``data`` and accumulate it.

    Args:
        data (array_like): Samples of shape ``(N, dim)`` or ``(N,)``.
        dx (float | array_like): Bin width(s) for the new bins.
        weights (array_like | None): Optional per-sample weights.

    Returns:
        Histogram: New histogram containing ``data``.
    """
    x = np.asarray(data, dtype=float)
    dim = 1 if x.ndim == 1 else x.shape[-1]
    return Histogram.empty(dim).add_data(x, dx, weights)


def create_delta_hist(x0: float) -> Histogram:
    """Create a 1-D histogram with unit mass in one narrow bin starting at ``x0``."""
    x0 = float(x0)
    if not np.isfinite(x0):
        raise ValueError(f"Delta position must be finite, got {x0}.")
    width = 1e-12 * max(1.0, abs(x0))
    return Histogram(
        edges=(np.array([-np.inf, x0, x0 + width, np.inf]),),
        counts=np.array([0.0, 1.0, 0.0]),
    )

"""Rebin histograms onto new bin edges.

Resampling one dimension works on the finite block of bins only; the counts
in the ``-inf`` and ``+inf`` bins are carried over untouched. Three cases are
distinguished:

1. The dimension has no finite bins: the new edges are adopted and all finite
   bins start empty.
2. The new edges contain every old finite edge: old counts are kept as-is and
   empty bins are added outside the old range.
3. Otherwise the cumulative mass is linearly interpolated at each new edge,
   assuming uniform density within every old bin, and differenced into new
   bin counts. Total mass is conserved up to rounding.

See Also:
    cwsens.hist.histogram.Histogram: The data structure being resampled.
"""

from __future__ import annotations

import numpy as np

from cwsens.config import HistConfig
from cwsens.errors import DimensionMismatch, RangeCoverageError
from cwsens.hist.histogram import Histogram


def _snap_edges(old: np.ndarray, new: np.ndarray, rtol: float) -> np.ndarray:
    """Move new edges lying within ``rtol`` bin widths of an old edge onto it."""
    if old.size < 2 or new.size == 0:
        return new
    tol = rtol * float(np.min(np.diff(old)))
    j = np.clip(np.searchsorted(old, new), 1, old.size - 1)
    nearest = np.where(np.abs(new - old[j - 1]) <= np.abs(old[j] - new), old[j - 1], old[j])
    snapped = np.where(np.abs(new - nearest) <= tol, nearest, new)
    return np.unique(snapped)


def _resample_dim(hgrm: Histogram, dim: int, new_edges, cfg: HistConfig) -> Histogram:
    new = np.ravel(np.asarray(new_edges, dtype=float))
    new = np.unique(new[np.isfinite(new)])
    old = hgrm.finite_edges(dim)
    edges = hgrm.edges[:dim] + (np.concatenate(([-np.inf], new, [np.inf])),) + hgrm.edges[dim + 1:]

    if old.size == 0:
        if np.any(hgrm.counts > 0):
            raise ValueError(
                f"Dimension {dim} holds mass in its unbounded bin, which cannot be split into finite bins."
            )
        return Histogram(edges=edges, counts=np.zeros(tuple(e.size - 1 for e in edges)))

    new = _snap_edges(old, new, cfg.edge_rtol)
    if new.size == 0 or not (new[0] <= old[0] and new[-1] >= old[-1]):
        lo, hi = (new[0], new[-1]) if new.size else (np.nan, np.nan)
        raise RangeCoverageError(
            f"Range of new bins ({lo:g} to {hi:g}) does not include old bins "
            f"({old[0]:g} to {old[-1]:g}) in dimension {dim}."
        )
    edges = hgrm.edges[:dim] + (np.concatenate(([-np.inf], new, [np.inf])),) + hgrm.edges[dim + 1:]

    # move dim to the front and flatten the others
    counts = np.moveaxis(hgrm.counts, dim, 0)
    rest = counts.shape[1:]
    counts = counts.reshape(counts.shape[0], -1)
    minf, pinf, inner = counts[:1], counts[-1:], counts[1:-1]

    inside = new[(new >= old[0]) & (new <= old[-1])]
    if inside.size == old.size and np.array_equal(inside, old):
        n_lo = int(np.count_nonzero(new < old[0]))
        n_hi = int(np.count_nonzero(new > old[-1]))
        newinner = np.pad(inner, [(n_lo, n_hi), (0, 0)])
    else:
        # fraction of each old bin lying below each new edge
        frac = np.clip((new[:, None] - old[None, :-1]) / np.diff(old)[None, :], 0.0, 1.0)
        cumprob = frac @ inner
        newinner = np.clip(np.diff(cumprob, axis=0), 0.0, None)

    newcounts = np.concatenate((minf, newinner, pinf), axis=0)
    newcounts = np.moveaxis(newcounts.reshape((newcounts.shape[0],) + rest), 0, dim)
    return Histogram(edges=edges, counts=newcounts)


def resample_hist(
    hgrm: Histogram,
    new_edges,
    *,
    dim: int | None = None,
    cfg: HistConfig | None = None,
) -> Histogram:
    """Resample a histogram onto new bin edges.

    Args:
        hgrm (Histogram): Histogram to resample.
        new_edges (array_like | sequence of array_like): New finite edges for
            dimension ``dim``, or, if ``dim`` is None, one edge vector per
            dimension.
        dim (int | None): Dimension to resample. A 1-D histogram also
            accepts a single flat edge vector without ``dim``.
        cfg (HistConfig | None): Resampling tolerances.

    Returns:
        Histogram: New histogram; ``hgrm`` is left unchanged.

    Raises:
        DimensionMismatch: If ``dim`` is out of range, or the number of edge
            vectors differs from the histogram dimension.
        RangeCoverageError: If new edges do not cover the old finite range.

    Notes:
        Non-finite values in ``new_edges`` are discarded, and the rest are
        sorted and de-duplicated. Supplying one edge vector per dimension is
        equivalent to resampling each dimension in turn.

    Examples:
        >>> from cwsens.hist.histogram import create_hist
        >>> h = create_hist([0.5, 1.5], 1.0)
        >>> resample_hist(h, [-1.0, 0.0, 1.0, 2.0, 3.0], dim=0).counts.tolist()
        [0.0, 0.0, 1.0, 1.0, 0.0, 0.0]
    """
    cfg = cfg or HistConfig()
    if dim is None and hgrm.dim == 1 and np.ndim(new_edges) == 1:
        dim = 0
    if dim is not None:
        return _resample_dim(hgrm, hgrm._check_dim(dim), new_edges, cfg)

    edge_list = list(new_edges)
    if len(edge_list) != hgrm.dim:
        raise DimensionMismatch(
            f"Number of new bin vectors ({len(edge_list)}) must match number of dimensions ({hgrm.dim})."
        )
    for k, e in enumerate(edge_list):
        hgrm = _resample_dim(hgrm, k, e, cfg)
    return hgrm

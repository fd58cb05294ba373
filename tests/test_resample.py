import numpy as np
import pytest

from cwsens.errors import DimensionMismatch, RangeCoverageError
from cwsens.hist.histogram import Histogram, create_hist
from cwsens.hist.resample import resample_hist


def _hist_1d():
    # finite edges 0.0, 0.25, ..., 1.25; one sample at -inf, two at +inf
    return create_hist([0.1, 0.3, 0.35, 0.9, 1.2, -np.inf, np.inf, np.inf], 0.25)


def test_superset_edges_keep_counts_exactly():
    h = _hist_1d()
    assert h.counts.tolist() == [1, 1, 2, 0, 1, 1, 2]
    out = resample_hist(h, 0.25 * np.arange(-2, 7), dim=0)
    assert np.array_equal(out.finite_edges(0), 0.25 * np.arange(-2, 7))
    assert out.counts.tolist() == [1, 0, 0, 1, 2, 0, 1, 1, 0, 2]


def test_nearly_equal_edges_take_the_exact_path():
    h = _hist_1d()
    out = resample_hist(h, 0.25 * np.arange(0, 6) + 1e-13, dim=0)
    assert np.array_equal(out.counts, h.counts)
    assert np.array_equal(out.edges[0], h.edges[0])


def test_interpolation_conserves_mass_and_infinite_bins():
    h = _hist_1d()
    out = resample_hist(h, np.linspace(-0.3, 1.7, 17), dim=0)
    assert out.total == pytest.approx(h.total)
    assert out.counts[1:-1].sum() == pytest.approx(h.counts[1:-1].sum())
    assert out.counts[0] == 1.0
    assert out.counts[-1] == 2.0
    assert np.all(out.counts >= 0)


def test_interpolation_assumes_uniform_density():
    h = create_hist([0.5], 1.0)
    out = resample_hist(h, [0.0, 0.25, 0.5, 1.0], dim=0)
    assert np.allclose(out.counts, [0.0, 0.25, 0.25, 0.5, 0.0])


def test_aligned_coarser_edges_merge_bins():
    h = _hist_1d()
    out = resample_hist(h, [1.25, np.nan, 0.0, 0.5, 0.5, np.inf, 1.0], dim=0)
    assert np.array_equal(out.finite_edges(0), [0.0, 0.5, 1.0, 1.25])
    assert np.allclose(out.counts, [1.0, 3.0, 1.0, 1.0, 2.0])


def test_new_edges_must_cover_old_range():
    h = _hist_1d()
    with pytest.raises(RangeCoverageError):
        resample_hist(h, [0.1, 1.25], dim=0)
    with pytest.raises(RangeCoverageError):
        resample_hist(h, [0.0, 1.0], dim=0)
    with pytest.raises(RangeCoverageError):
        resample_hist(h, [np.nan], dim=0)


def test_dimension_without_finite_bins_adopts_edges():
    out = resample_hist(Histogram.empty(1), [2.0, 0.0, 1.0], dim=0)
    assert np.array_equal(out.edges[0], [-np.inf, 0.0, 1.0, 2.0, np.inf])
    assert np.array_equal(out.counts, np.zeros(4))


def test_multi_dimensional_resample_matches_one_dimension_at_a_time():
    rng = np.random.default_rng(1)
    data = np.column_stack((rng.normal(0.0, 1.0, 1000), rng.uniform(0.0, 2.0, 1000)))
    h = create_hist(data, [0.1, 0.2])
    e0 = np.linspace(-6.0, 6.0, 25)
    e1 = np.linspace(-1.0, 3.0, 13)

    both = resample_hist(h, [e0, e1])
    seq = resample_hist(resample_hist(h, e0, dim=0), e1, dim=1)
    assert both.shape == (26, 14)
    assert np.allclose(both.counts, seq.counts)
    assert both.total == pytest.approx(h.total)

    # resampling dim 1 leaves the marginal along dim 0 untouched
    only1 = resample_hist(h, e1, dim=1)
    assert np.allclose(only1.counts.sum(axis=1), h.counts.sum(axis=1))


def test_wrong_number_of_edge_vectors():
    h = create_hist([[0.5, 0.5]], 1.0)
    with pytest.raises(DimensionMismatch):
        resample_hist(h, [[0.0, 1.0]])
    with pytest.raises(DimensionMismatch):
        resample_hist(h, [0.0, 1.0], dim=2)


def test_one_dimensional_histogram_takes_flat_edge_vector():
    h = create_hist([0.5, 1.5], 1.0)
    out = resample_hist(h, [0.0, 0.5, 1.0, 1.5, 2.0])
    assert np.array_equal(out.finite_edges(0), [0.0, 0.5, 1.0, 1.5, 2.0])
    assert np.allclose(out.counts, [0.0, 0.5, 0.5, 0.5, 0.5, 0.0])
    assert np.array_equal(resample_hist(h, [[0.0, 1.0, 2.0]]).counts, h.counts)

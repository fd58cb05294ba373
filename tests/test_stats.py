import numpy as np
import pytest

from cwsens.utils.stats import false_alarm_chi2, inv_false_alarm_chi2


def test_threshold_reproduces_small_false_alarm():
    sa = inv_false_alarm_chi2(1e-14, 80)
    assert float(false_alarm_chi2(sa, 80)) == pytest.approx(1e-14, rel=1e-6)


def test_threshold_grows_as_false_alarm_shrinks():
    sa = inv_false_alarm_chi2(np.array([1e-10, 1e-12, 1e-14]), 80)
    assert np.all(np.diff(sa) > 0)


def test_false_alarm_outside_unit_interval():
    with pytest.raises(ValueError):
        inv_false_alarm_chi2(0.0, 4)
    with pytest.raises(ValueError):
        inv_false_alarm_chi2([0.5, 1.0], 4)

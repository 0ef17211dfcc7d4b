import math

import numpy as np
import pytest

from trigboot.evaluation.efficiency import EfficiencyCurve
from trigboot.evaluation.histogram import Binning
from trigboot.evaluation.running_stats import CurveKind, EfficiencyAccumulator, RunningStats


def stats_of(values):
    s = RunningStats()
    for v in values:
        s.add(v)
    return s


def curve(values, defined):
    return EfficiencyCurve(
        values=np.asarray(values, dtype=np.float64),
        defined=np.asarray(defined, dtype=bool),
    )


# ================================================================
# RunningStats
# ================================================================
def test_mean_and_sample_variance():
    values = [0.61, 0.72, 0.55, 0.80, 0.67, 0.70]
    s = stats_of(values)
    assert s.n == 6
    assert s.mean == pytest.approx(np.mean(values))
    assert s.variance() == pytest.approx(np.var(values, ddof=1))
    assert s.stddev() == pytest.approx(np.std(values, ddof=1))


def test_single_sample_has_zero_variance():
    s = stats_of([0.4])
    assert s.mean == 0.4
    assert s.variance() == 0.0
    assert s.stddev() == 0.0


def test_empty_stats():
    s = RunningStats()
    assert s.n == 0
    assert s.variance() == 0.0


def test_stable_with_large_offset():
    values = 1e9 + np.array([4.0, 7.0, 13.0, 16.0])
    s = stats_of(values)
    assert s.variance() == pytest.approx(30.0)


def test_merge_matches_sequential_in_any_order():
    rng = np.random.default_rng(0)
    values = rng.uniform(size=50)
    full = stats_of(values)

    parts = [stats_of(values[:7]), stats_of(values[7:30]), stats_of(values[30:])]
    for order in ([0, 1, 2], [2, 0, 1], [1, 2, 0]):
        merged = RunningStats()
        for i in order:
            merged.merge(parts[i])
        assert merged.n == full.n
        assert merged.mean == pytest.approx(full.mean)
        assert merged.variance() == pytest.approx(full.variance())


def test_merge_with_empty():
    s = stats_of([1.0, 2.0])
    s.merge(RunningStats())
    assert (s.n, s.mean) == (2, 1.5)
    e = RunningStats()
    e.merge(s)
    assert (e.n, e.mean, e.m2) == (s.n, s.mean, s.m2)


# ================================================================
# EfficiencyAccumulator
# ================================================================
def test_undefined_bins_add_no_sample():
    acc = EfficiencyAccumulator(3)
    acc.add_curves(curve([0.5, 0.0, 0.2], [True, False, True]),
                   curve([0.4, 0.0, 0.3], [True, False, True]))
    acc.add_curves(curve([0.7, 0.9, 0.0], [True, True, False]),
                   curve([0.6, 0.8, 0.0], [True, True, False]))
    acc.add_curves(curve([0.6, 0.0, 0.0], [True, False, False]),
                   curve([0.5, 0.0, 0.0], [True, False, False]))

    assert acc.n_subsets == 3
    assert acc.counts(CurveKind.REAL).tolist() == [3, 1, 1]
    assert acc.counts(CurveKind.EMULATED).tolist() == [3, 1, 1]
    np.testing.assert_allclose(acc.means(CurveKind.REAL), [0.6, 0.9, 0.2])
    assert acc.stats(CurveKind.REAL, 0).stddev() == pytest.approx(0.1)
    assert acc.stats("emulated", 1).stddev() == 0.0


def test_accumulator_merge():
    curves = [
        (curve([0.1, 0.2], [True, True]), curve([0.2, 0.1], [True, True])),
        (curve([0.3, 0.0], [True, False]), curve([0.4, 0.0], [True, False])),
        (curve([0.5, 0.6], [True, True]), curve([0.6, 0.5], [True, True])),
    ]
    whole = EfficiencyAccumulator(2)
    for real, emu in curves:
        whole.add_curves(real, emu)

    left, right = EfficiencyAccumulator(2), EfficiencyAccumulator(2)
    left.add_curves(*curves[0])
    right.add_curves(*curves[1])
    right.add_curves(*curves[2])
    right.merge(left)

    assert right.n_subsets == 3
    for kind in CurveKind:
        assert right.counts(kind).tolist() == whole.counts(kind).tolist()
        np.testing.assert_allclose(right.means(kind), whole.means(kind))
        np.testing.assert_allclose(right.stddevs(kind), whole.stddevs(kind))


def test_bin_count_mismatch():
    acc = EfficiencyAccumulator(3)
    with pytest.raises(ValueError):
        acc.add_curve(CurveKind.REAL, curve([0.1], [True]))
    with pytest.raises(ValueError):
        acc.merge(EfficiencyAccumulator(2))


def test_summary_drops_empty_bins():
    acc = EfficiencyAccumulator(4)
    acc.add_curves(curve([0.5, 0.0, 0.25, 0.0], [True, False, True, False]),
                   curve([0.4, 0.0, 0.35, 0.0], [True, False, True, False]))
    acc.add_curves(curve([0.7, 0.0, 0.75, 0.0], [True, False, True, False]),
                   curve([0.6, 0.0, 0.45, 0.0], [True, False, True, False]))

    summary = acc.summary(Binning(4, 0.0, 20.0))
    assert summary["bin"].tolist() == [0, 2]
    assert summary["low"].tolist() == [0.0, 10.0]
    assert summary["high"].tolist() == [5.0, 15.0]
    assert summary["center"].tolist() == [2.5, 12.5]
    np.testing.assert_allclose(summary["real_mean"], [0.6, 0.5])
    np.testing.assert_allclose(summary["real_sd"], [math.sqrt(0.02), math.sqrt(0.125)])
    assert summary["emulated_n"].tolist() == [2, 2]

"""
Streaming mean and standard deviation of per-bin efficiencies.

RunningStats is Welford's online update; merge() is the pairwise combine
of Chan et al., so partial accumulators built on separate workers reduce
to the same result in any order.

EfficiencyAccumulator keeps one RunningStats per (curve kind, bin) and is
fed once per subset. Undefined bins add no sample, so a bin's n is the
number of subsets in which it had a non-zero denominator.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List

import numpy as np
import pandas as pd

from trigboot.evaluation.efficiency import EfficiencyCurve
from trigboot.evaluation.histogram import Binning


@dataclass
class RunningStats:
    """Online (n, mean, M2) accumulator."""

    n: int = 0
    mean: float = 0.0
    m2: float = 0.0

    def add(self, x: float) -> None:
        self.n += 1
        delta = x - self.mean
        self.mean += delta / self.n
        delta2 = x - self.mean
        self.m2 += delta * delta2

    def variance(self) -> float:
        """Sample (Bessel-corrected) variance; 0 for fewer than two samples."""
        return self.m2 / (self.n - 1) if self.n > 1 else 0.0

    def stddev(self) -> float:
        return math.sqrt(self.variance())

    def merge(self, other: RunningStats) -> None:
        """Fold another accumulator into this one."""
        if other.n == 0:
            return
        if self.n == 0:
            self.n, self.mean, self.m2 = other.n, other.mean, other.m2
            return
        n = self.n + other.n
        delta = other.mean - self.mean
        self.mean += delta * other.n / n
        self.m2 += other.m2 + delta * delta * self.n * other.n / n
        self.n = n


class CurveKind(str, Enum):
    REAL = "real"
    EMULATED = "emulated"


class EfficiencyAccumulator:
    """Per-bin RunningStats for the real and emulated efficiency curves."""

    def __init__(self, num_bins: int):
        self.num_bins = num_bins
        self.n_subsets = 0
        self._stats: Dict[CurveKind, List[RunningStats]] = {
            kind: [RunningStats() for _ in range(num_bins)] for kind in CurveKind
        }

    def stats(self, kind: CurveKind, b: int) -> RunningStats:
        return self._stats[CurveKind(kind)][b]

    def add_curve(self, kind: CurveKind, curve: EfficiencyCurve) -> None:
        """Add one sample to every bin where the curve is defined."""
        if len(curve.values) != self.num_bins:
            raise ValueError(
                f"Curve has {len(curve.values)} bins, accumulator has {self.num_bins}"
            )
        stats = self._stats[CurveKind(kind)]
        for b in np.flatnonzero(curve.defined):
            stats[b].add(float(curve.values[b]))

    def add_curves(self, real: EfficiencyCurve, emulated: EfficiencyCurve) -> None:
        """Add one subset's real and emulated curves."""
        self.add_curve(CurveKind.REAL, real)
        self.add_curve(CurveKind.EMULATED, emulated)
        self.n_subsets += 1

    def merge(self, other: EfficiencyAccumulator) -> None:
        if other.num_bins != self.num_bins:
            raise ValueError(
                f"Cannot merge accumulators with {self.num_bins} and {other.num_bins} bins"
            )
        for kind in CurveKind:
            for mine, theirs in zip(self._stats[kind], other._stats[kind]):
                mine.merge(theirs)
        self.n_subsets += other.n_subsets

    def counts(self, kind: CurveKind) -> np.ndarray:
        return np.array([s.n for s in self._stats[CurveKind(kind)]], dtype=np.int64)

    def means(self, kind: CurveKind) -> np.ndarray:
        return np.array([s.mean for s in self._stats[CurveKind(kind)]])

    def stddevs(self, kind: CurveKind) -> np.ndarray:
        return np.array([s.stddev() for s in self._stats[CurveKind(kind)]])

    def summary(self, binning: Binning) -> pd.DataFrame:
        """Per-bin mean and standard deviation of both curves.

        Bins with no sample in either curve are left out.
        """
        if binning.num_bins != self.num_bins:
            raise ValueError(
                f"Binning has {binning.num_bins} bins, accumulator has {self.num_bins}"
            )
        low = binning.low_edges
        frame = pd.DataFrame({
            "bin": np.arange(self.num_bins),
            "low": low,
            "high": low + binning.width,
            "center": binning.centers,
        })
        for kind in CurveKind:
            frame[f"{kind.value}_n"] = self.counts(kind)
            frame[f"{kind.value}_mean"] = self.means(kind)
            frame[f"{kind.value}_sd"] = self.stddevs(kind)

        keep = (frame["real_n"] > 0) | (frame["emulated_n"] > 0)
        return frame[keep].reset_index(drop=True)

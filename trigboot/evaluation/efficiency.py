"""
Per-subset efficiency curves from one test stream.

Three histograms are filled over the same feature in a single pass:
- denominator: every record, weight 1
- real numerator: weighted by the real trigger response
- emulated numerator: weighted by the emulated response (0/1 or a score)

Efficiency per bin is numerator / denominator. Bins with a zero
denominator are undefined: their value stays 0.0 and they are flagged so
that they never feed the cross-subset statistics.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np
import pandas as pd

from trigboot.evaluation.histogram import Binning, Histogram


@dataclass(frozen=True)
class EfficiencyColumns:
    """Column names of the feature and the two response values."""

    feature: str = "d0_pt"
    real: str = "d0_l0_hadron_tos"
    emulated: str = "d0_l0_hadron_tos_emu_xgb"

    def as_list(self) -> list:
        return [self.feature, self.real, self.emulated]


@dataclass
class EfficiencyHistograms:
    """Denominator and the two numerator histograms of one subset."""

    denominator: Histogram
    real_numerator: Histogram
    emulated_numerator: Histogram


@dataclass
class EfficiencyCurve:
    """Per-bin efficiency; `values` is 0.0 wherever `defined` is False."""

    values: np.ndarray
    defined: np.ndarray

    @property
    def n_defined(self) -> int:
        return int(self.defined.sum())


def fill_histograms(
    frame: pd.DataFrame,
    binning: Binning,
    columns: EfficiencyColumns,
) -> EfficiencyHistograms:
    """Fill the denominator and numerator histograms from a test stream.

    Args:
        frame: Records of one test stream.
        binning: Binning of the feature column.
        columns: Feature and response column names.

    Returns:
        EfficiencyHistograms for this stream.
    """
    missing = [c for c in columns.as_list() if c not in frame.columns]
    if missing:
        raise KeyError(f"Test stream is missing columns {missing}")

    feature = frame[columns.feature].to_numpy(dtype=np.float64)
    real = frame[columns.real].to_numpy(dtype=np.float64)
    emulated = frame[columns.emulated].to_numpy(dtype=np.float64)

    hists = EfficiencyHistograms(
        denominator=Histogram(binning),
        real_numerator=Histogram(binning),
        emulated_numerator=Histogram(binning),
    )
    hists.denominator.fill(feature)
    hists.real_numerator.fill(feature, real)
    hists.emulated_numerator.fill(feature, emulated)
    return hists


def efficiency_curve(numerator: Histogram, denominator: Histogram) -> EfficiencyCurve:
    """Divide bin by bin, leaving bins with denominator <= 0 undefined."""
    if numerator.binning != denominator.binning:
        raise ValueError("numerator and denominator use different binnings")

    defined = denominator.counts > 0.0
    values = np.zeros_like(denominator.counts)
    values[defined] = numerator.counts[defined] / denominator.counts[defined]
    return EfficiencyCurve(values=values, defined=defined)


def compute_efficiencies(
    hists: EfficiencyHistograms,
) -> Tuple[EfficiencyCurve, EfficiencyCurve]:
    """Return the (real, emulated) efficiency curves of one subset."""
    real = efficiency_curve(hists.real_numerator, hists.denominator)
    emulated = efficiency_curve(hists.emulated_numerator, hists.denominator)
    return real, emulated

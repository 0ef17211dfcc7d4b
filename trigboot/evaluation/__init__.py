"""Efficiency curves and their cross-subset statistics."""

from trigboot.config import EfficiencyConfig, HistogramConfig
from trigboot.evaluation.aggregation import (
    AggregationResult,
    SubsetEfficiency,
    aggregate_efficiencies,
    list_test_outputs,
    subset_number_from_filename,
)
from trigboot.evaluation.efficiency import (
    EfficiencyColumns,
    EfficiencyCurve,
    EfficiencyHistograms,
    compute_efficiencies,
    efficiency_curve,
    fill_histograms,
)
from trigboot.evaluation.histogram import Binning, Histogram
from trigboot.evaluation.running_stats import CurveKind, EfficiencyAccumulator, RunningStats

__all__ = [
    "EfficiencyConfig",
    "HistogramConfig",
    "Binning",
    "Histogram",
    "EfficiencyColumns",
    "EfficiencyCurve",
    "EfficiencyHistograms",
    "fill_histograms",
    "efficiency_curve",
    "compute_efficiencies",
    "RunningStats",
    "CurveKind",
    "EfficiencyAccumulator",
    "AggregationResult",
    "SubsetEfficiency",
    "aggregate_efficiencies",
    "list_test_outputs",
    "subset_number_from_filename",
]

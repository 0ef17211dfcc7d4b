"""Rendering of per-subset and combined efficiency charts."""

from trigboot.reporting.plots import SummaryReporter, save_combined_plot, save_subset_plot

__all__ = [
    "SummaryReporter",
    "save_subset_plot",
    "save_combined_plot",
]

"""
Efficiency charts for single subsets and for the combined ensemble.

Real response is drawn in black, the emulation in red, on a fixed
[0, 1.05] efficiency axis.
"""

from __future__ import annotations

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402

from trigboot.evaluation.aggregation import SubsetEfficiency  # noqa: E402
from trigboot.evaluation.efficiency import EfficiencyCurve  # noqa: E402
from trigboot.evaluation.histogram import Binning  # noqa: E402

REAL_COLOR = "black"
EMULATED_COLOR = "firebrick"
Y_LIMITS = (0.0, 1.05)


def _style_axes(ax, title: str, x_label: str, binning: Binning) -> None:
    ax.set_title(title)
    ax.set_xlabel(x_label)
    ax.set_ylabel("Efficiency")
    ax.set_xlim(binning.x_min, binning.x_max)
    ax.set_ylim(*Y_LIMITS)
    ax.grid(True, alpha=0.4)
    ax.legend(loc="lower right", frameon=False)


def save_subset_plot(
    path: str | Path,
    binning: Binning,
    real: EfficiencyCurve,
    emulated: EfficiencyCurve,
    title: str = "Efficiency",
    x_label: str = "",
) -> Path:
    """Step plot of one subset's real and emulated efficiency curves."""
    path = Path(path)
    fig, ax = plt.subplots(figsize=(9, 6))
    ax.stairs(real.values, binning.edges, color=REAL_COLOR, linewidth=2,
              label="Real response")
    ax.stairs(emulated.values, binning.edges, color=EMULATED_COLOR, linewidth=2,
              label="Emulated")
    _style_axes(ax, title, x_label, binning)
    fig.savefig(path)
    plt.close(fig)
    return path


def save_combined_plot(
    path: str | Path,
    binning: Binning,
    summary: pd.DataFrame,
    title: str = "Efficiency",
    x_label: str = "",
) -> Path:
    """Per-bin mean +/- standard deviation across subsets for both curves.

    Args:
        path: Output image path.
        binning: Binning used to build the summary.
        summary: Output of EfficiencyAccumulator.summary().
        title: Chart title.
        x_label: Feature axis label.
    """
    path = Path(path)
    fig, ax = plt.subplots(figsize=(9, 6))
    ax.errorbar(summary["center"], summary["real_mean"], yerr=summary["real_sd"],
                fmt="o", color=REAL_COLOR, linewidth=2, capsize=3,
                label="Real response")
    ax.errorbar(summary["center"], summary["emulated_mean"],
                yerr=summary["emulated_sd"], fmt="s", color=EMULATED_COLOR,
                linewidth=2, capsize=3, label="Emulated")
    _style_axes(ax, title, x_label, binning)
    fig.savefig(path)
    plt.close(fig)
    return path


class SummaryReporter:
    """Writes per-subset charts, the combined chart and the per-bin table."""

    def __init__(
        self,
        plot_dir: str | Path,
        binning: Binning,
        title: str = "Efficiency",
        x_label: str = "",
    ):
        self.plot_dir = Path(plot_dir)
        self.binning = binning
        self.title = title
        self.x_label = x_label

    def subset_plot(self, subset: SubsetEfficiency) -> Path:
        out = self.plot_dir / f"{subset.path.stem}_eff.png"
        return save_subset_plot(
            out, self.binning, subset.real, subset.emulated, self.title, self.x_label
        )

    def combined_plot(self, summary: pd.DataFrame) -> Path:
        out = self.plot_dir / "efficiency_plot_combined.png"
        return save_combined_plot(out, self.binning, summary, self.title, self.x_label)

    def summary_table(self, summary: pd.DataFrame) -> Path:
        out = self.plot_dir / "efficiency_summary.csv"
        summary.to_csv(out, index=False)
        return out

"""
Efficiency aggregation run over per-subset test outputs.

Discovers `<file_prefix><k><file_suffix><file_extension>` files, builds each
subset's real and emulated efficiency curves, saves one chart per subset,
and finally the combined mean +/- sd chart and per-bin table.
"""

from __future__ import annotations

from functools import partial
from pathlib import Path
from typing import Callable, Optional

import pandas as pd

from trigboot.config import EfficiencyConfig
from trigboot.data.csv_backend import read_csv_frame
from trigboot.data.root_backend import read_tree_frame
from trigboot.errors import ConfigurationError, NoAggregationInputsError
from trigboot.evaluation.aggregation import (
    AggregationResult,
    aggregate_efficiencies,
    list_test_outputs,
)
from trigboot.evaluation.efficiency import EfficiencyColumns
from trigboot.evaluation.histogram import Binning
from trigboot.reporting.plots import SummaryReporter


def binning_from_config(cfg: EfficiencyConfig) -> Binning:
    h = cfg.histogram
    return Binning(num_bins=h.num_bins, x_min=h.x_min, x_max=h.x_max)


def columns_from_config(cfg: EfficiencyConfig) -> EfficiencyColumns:
    return EfficiencyColumns(
        feature=cfg.feature_col, real=cfg.real_col, emulated=cfg.emulated_col
    )


def make_reader(cfg: EfficiencyConfig) -> Callable[[Path], pd.DataFrame]:
    """Reader for the configured output format, loading only the needed columns."""
    columns = columns_from_config(cfg).as_list()
    if cfg.file_extension == ".csv":
        return partial(read_csv_frame, columns=columns)
    return partial(read_tree_frame, tree_path=cfg.tree_name, columns=columns)


def run_efficiency(
    cfg: EfficiencyConfig,
    show_progress: bool = True,
    save_plots: bool = True,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> AggregationResult:
    """Aggregate every discovered test output and write the charts.

    Args:
        cfg: Efficiency configuration.
        show_progress: Whether to show a progress bar.
        save_plots: Whether to render per-subset and combined charts.
        should_cancel: Cooperative cancellation hook, checked between subsets.

    Returns:
        AggregationResult for all discovered subsets.

    Raises:
        NoAggregationInputsError: If no matching test outputs exist.
    """
    binning = binning_from_config(cfg)

    plot_dir = Path(cfg.plot_dir)
    try:
        plot_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(f"Cannot create plot directory {plot_dir}: {e}") from e

    files = list_test_outputs(
        cfg.input_dir, cfg.file_prefix, cfg.file_suffix, cfg.file_extension
    )
    if not files:
        raise NoAggregationInputsError(
            f"No {cfg.file_prefix}<k>{cfg.file_suffix}{cfg.file_extension} "
            f"files in {cfg.input_dir}"
        )

    reporter = SummaryReporter(plot_dir, binning, cfg.title, cfg.x_label)
    result = aggregate_efficiencies(
        files,
        reader=make_reader(cfg),
        binning=binning,
        columns=columns_from_config(cfg),
        on_subset=reporter.subset_plot if save_plots else None,
        show_progress=show_progress,
        should_cancel=should_cancel,
        prefix=cfg.file_prefix,
        suffix=cfg.file_suffix,
    )

    summary = result.summary()
    reporter.summary_table(summary)
    if save_plots:
        reporter.combined_plot(summary)
    return result

#!/usr/bin/env python
"""
Efficiency plots for the trigger emulation ensemble.

Reads every test_subset_<k>_output file produced by the trained models,
saves a real-vs-emulated efficiency chart per subset, then the combined
chart with the per-bin mean and standard deviation across subsets.

Usage:
    python scripts/generate_plots.py
    python scripts/generate_plots.py --input-dir gen --plot-dir plots --num-bins 40

Defaults come from configs/efficiency.yaml; CLI options override them.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import numpy as np
from pydantic import ValidationError

from trigboot.config import EfficiencyConfig, HistogramConfig
from trigboot.errors import ConfigurationError, NoAggregationInputsError, RunCancelled
from trigboot.experiments.efficiency_runner import run_efficiency


def convert_numpy(obj):
    """Convert numpy types to Python types for JSON serialization."""
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, dict):
        return {k: convert_numpy(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [convert_numpy(i) for i in obj]
    return obj


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Aggregate per-subset efficiency curves and plot them"
    )
    parser.add_argument("--config", type=str, help="Path to efficiency YAML config")
    parser.add_argument("--input-dir", type=str, help="Directory of test outputs")
    parser.add_argument("--plot-dir", type=str, help="Directory for charts")
    parser.add_argument("--num-bins", type=int, help="Number of histogram bins")
    parser.add_argument("--x-min", type=float, help="Lower edge of the feature range")
    parser.add_argument("--x-max", type=float, help="Upper edge of the feature range")
    parser.add_argument(
        "--no-plots", action="store_true", help="Only write the summary table"
    )
    parser.add_argument(
        "--no-progress", action="store_true", help="Disable progress bar"
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> EfficiencyConfig:
    """Load the YAML config and apply CLI overrides."""
    cfg = EfficiencyConfig.from_yaml(args.config)

    hist = {
        "num_bins": args.num_bins,
        "x_min": args.x_min,
        "x_max": args.x_max,
    }
    hist = {k: v for k, v in hist.items() if v is not None}
    histogram = HistogramConfig(**{**cfg.histogram.model_dump(), **hist})

    overrides = {"input_dir": args.input_dir, "plot_dir": args.plot_dir}
    overrides = {k: v for k, v in overrides.items() if v is not None}
    return EfficiencyConfig(
        **{**cfg.model_dump(), **overrides, "histogram": histogram.model_dump()}
    )


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        cfg = build_config(args)
    except (ValidationError, OSError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    h = cfg.histogram
    print("=" * 70)
    print("Efficiency aggregation")
    print("=" * 70)
    print(f"  Inputs: {cfg.input_dir}/{cfg.file_prefix}<k>{cfg.file_suffix}{cfg.file_extension}")
    print(f"  Plots: {cfg.plot_dir}")
    print(f"  Feature: {cfg.feature_col} ({h.num_bins} bins over [{h.x_min}, {h.x_max}))")
    print(f"  Real: {cfg.real_col}, emulated: {cfg.emulated_col}")
    print("=" * 70)

    try:
        result = run_efficiency(
            cfg, show_progress=not args.no_progress, save_plots=not args.no_plots
        )
    except (ConfigurationError, NoAggregationInputsError, FileNotFoundError,
            KeyError, RunCancelled) as e:
        print(f"Efficiency aggregation failed: {e}", file=sys.stderr)
        return 1

    summary = result.summary()
    summary_path = Path(cfg.plot_dir) / "summary.json"
    with open(summary_path, "w") as f:
        json.dump(
            convert_numpy({
                "n_subsets": result.accumulator.n_subsets,
                "files": [str(s.path) for s in result.subsets],
                "config": cfg.model_dump(),
                "bins": summary.to_dict(orient="records"),
            }),
            f,
            indent=2,
        )

    print(f"\n  Subsets aggregated: {result.accumulator.n_subsets}")
    print("\n" + summary.to_string(index=False, float_format=lambda x: f"{x:.4f}"))
    print(f"\n{'=' * 70}")
    print(f"Plots saved to: {cfg.plot_dir}")
    print(f"{'=' * 70}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

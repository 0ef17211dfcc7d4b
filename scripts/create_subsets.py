#!/usr/bin/env python
"""
Create train/test subsets for the trigger emulation ensemble.

Partitions the input ntuple into num_subsets subsets (disjoint partition,
bootstrap resample or interleave) and writes train_subset_<k> and
test_subset_<k> for each one.

Usage:
    python scripts/create_subsets.py
    python scripts/create_subsets.py path/to/ntuple.root --num-subsets 20 --resample
    python scripts/create_subsets.py data.csv --output-format csv --split random

Defaults come from configs/subsets.yaml; CLI options override them.
The partition plan and run config are saved next to the outputs.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from pydantic import ValidationError

from trigboot.config import SubsetConfig
from trigboot.errors import ConfigurationError, MaterializationError, RunCancelled
from trigboot.experiments.subset_runner import run_subsets


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Create train/test subsets for ensemble training"
    )
    parser.add_argument(
        "input_path", nargs="?", help="Input ROOT or CSV file (overrides config)"
    )
    parser.add_argument("--config", type=str, help="Path to subsets YAML config")
    parser.add_argument("--output-dir", type=str, help="Output directory")
    parser.add_argument(
        "--output-format", choices=["root", "csv"], help="Output file format"
    )
    parser.add_argument("--num-subsets", type=int, help="Number of subsets")
    parser.add_argument("--train-frac", type=float, help="Train fraction per subset")
    parser.add_argument(
        "--policy", choices=["partition", "resample", "interleave"],
        help="Subset membership policy",
    )
    parser.add_argument(
        "--resample", action="store_true",
        help="Bootstrap resample with replacement (same as --policy resample)",
    )
    parser.add_argument(
        "--split", choices=["prefix", "random"], help="Train/test split strategy"
    )
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument(
        "--no-progress", action="store_true", help="Disable progress bar"
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> SubsetConfig:
    """Load the YAML config and apply CLI overrides."""
    cfg = SubsetConfig.from_yaml(args.config)

    overrides = {
        "input_path": args.input_path,
        "output_dir": args.output_dir,
        "output_format": args.output_format,
        "num_subsets": args.num_subsets,
        "train_frac": args.train_frac,
        "policy": "resample" if args.resample else args.policy,
        "split": args.split,
        "random_seed": args.seed,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    return SubsetConfig(**{**cfg.model_dump(), **overrides})


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        cfg = build_config(args)
    except (ValidationError, OSError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    print("=" * 70)
    print("Subset generation")
    print("=" * 70)
    print(f"  Input: {cfg.input_path}")
    print(f"  Output: {cfg.output_dir} ({cfg.output_format})")
    print(f"  num_subsets: {cfg.num_subsets}")
    print(f"  train_frac: {cfg.train_frac}")
    print(f"  policy: {cfg.policy}, split: {cfg.split}")
    print(f"  seed: {cfg.random_seed}")
    print("=" * 70)

    try:
        run = run_subsets(cfg, show_progress=not args.no_progress)
    except (ConfigurationError, MaterializationError, FileNotFoundError,
            KeyError, RunCancelled) as e:
        print(f"Subset generation failed: {e}", file=sys.stderr)
        return 1

    with open(run.output_dir / "partition_plan.json", "w") as f:
        json.dump(run.plan.to_dict(), f)
    with open(run.output_dir / "run_config.json", "w") as f:
        json.dump(cfg.model_dump(), f, indent=2)

    print("\n" + run.plan.summary().to_string(index=False))
    print(f"\n{'=' * 70}")
    print(f"Subsets saved to: {run.output_dir}")
    print(f"{'=' * 70}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Subset generation run.

Steps:
- open the source (ROOT tree with branch filtering, or a CSV table)
- build the partition plan with a sampler seeded from the config
- write train_subset_<k>/test_subset_<k> for every subset

The output directory is created before anything is drawn, so a bad
directory fails the run before any output exists.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from trigboot.config import SubsetConfig
from trigboot.data.backend import RecordSource, SinkFactory
from trigboot.data.csv_backend import CSVSinkFactory, CSVSource
from trigboot.data.materializer import MaterializedSubset, SubsetMaterializer
from trigboot.data.root_backend import RootSinkFactory, RootTreeSource
from trigboot.data.sampler import RandomIndexSampler
from trigboot.data.splitters import PartitionPlan, build_partition_plan, get_split_strategy
from trigboot.errors import ConfigurationError


@dataclass
class SubsetRun:
    """Plan and written outputs of one subset generation run."""

    plan: PartitionPlan
    outputs: List[MaterializedSubset]
    output_dir: Path


def open_source(cfg: SubsetConfig) -> RecordSource:
    """Open the configured input as a record source (CSV by extension, else ROOT)."""
    if cfg.input_path is None:
        raise ConfigurationError("No input path configured")
    path = Path(cfg.input_path)
    if not path.exists():
        raise FileNotFoundError(f"Required file not found: {path}")
    if path.suffix == ".csv":
        return CSVSource(path)
    return RootTreeSource(
        path,
        tree_path=cfg.tree_path,
        branches_from=cfg.branches_from,
        extra_branches=cfg.extra_branches,
    )


def make_sink_factory(cfg: SubsetConfig, output_dir: Path) -> SinkFactory:
    if cfg.output_format == "csv":
        return CSVSinkFactory(output_dir)
    return RootSinkFactory(output_dir, tree_name=cfg.output_tree)


def prepare_output_dir(path: str | Path) -> Path:
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(f"Cannot create output directory {path}: {e}") from e
    return path


def plan_subsets(cfg: SubsetConfig, n_entries: int) -> PartitionPlan:
    """Build the partition plan for a source of n_entries records."""
    sampler = RandomIndexSampler(cfg.random_seed)
    return build_partition_plan(
        n_entries=n_entries,
        num_subsets=cfg.num_subsets,
        train_frac=cfg.train_frac,
        policy=cfg.policy,
        sampler=sampler,
        split=get_split_strategy(cfg.split),
    )


def run_subsets(
    cfg: SubsetConfig,
    source: Optional[RecordSource] = None,
    show_progress: bool = True,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> SubsetRun:
    """Generate all subsets for one configuration.

    Args:
        cfg: Subset configuration.
        source: Record source. If None, opens cfg.input_path.
        show_progress: Whether to show a progress bar.
        should_cancel: Cooperative cancellation hook, checked between subsets.

    Returns:
        SubsetRun with the plan and the written outputs.
    """
    output_dir = prepare_output_dir(cfg.output_dir)
    if source is None:
        source = open_source(cfg)

    plan = plan_subsets(cfg, source.n_entries())
    materializer = SubsetMaterializer(
        source, make_sink_factory(cfg, output_dir), show_progress=show_progress
    )
    outputs = materializer.run(plan, should_cancel=should_cancel)
    return SubsetRun(plan=plan, outputs=outputs, output_dir=output_dir)

"""
Aggregation of efficiency curves across per-subset test outputs.

Per-subset outputs are discovered by name (`test_subset_<k>_output.root`
by default) and processed in ascending subset number, falling back to
lexical order for ties. Each stream contributes one sample per defined
bin to the shared EfficiencyAccumulator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import pandas as pd
from tqdm import tqdm

from trigboot.errors import NoAggregationInputsError, RunCancelled
from trigboot.evaluation.efficiency import (
    EfficiencyColumns,
    EfficiencyCurve,
    EfficiencyHistograms,
    compute_efficiencies,
    fill_histograms,
)
from trigboot.evaluation.histogram import Binning
from trigboot.evaluation.running_stats import EfficiencyAccumulator


def subset_number_from_filename(
    path: str | Path,
    prefix: str = "test_subset_",
    suffix: str = "_output",
    extension: str = ".root",
) -> int:
    """Parse k from `<prefix><k><suffix><extension>`; -1 if the name does not match."""
    path = Path(path)
    if path.suffix != extension:
        return -1
    stem = path.stem
    if not (stem.startswith(prefix) and stem.endswith(suffix)):
        return -1
    digits = stem[len(prefix):len(stem) - len(suffix)]
    if not digits or not digits.isdigit() or not digits.isascii():
        return -1
    return int(digits)


def list_test_outputs(
    directory: str | Path,
    prefix: str = "test_subset_",
    suffix: str = "_output",
    extension: str = ".root",
) -> List[Path]:
    """Return matching per-subset outputs, sorted by subset number then name."""
    directory = Path(directory)
    if not directory.is_dir():
        raise NoAggregationInputsError(f"Input directory not found: {directory}")

    def number(p: Path) -> int:
        return subset_number_from_filename(p, prefix, suffix, extension)

    files = [p for p in directory.iterdir() if p.is_file() and number(p) >= 0]
    return sorted(files, key=lambda p: (number(p), p.name))


@dataclass
class SubsetEfficiency:
    """Histograms and efficiency curves of one test stream."""

    subset_number: int
    path: Path
    n_records: int
    histograms: EfficiencyHistograms
    real: EfficiencyCurve
    emulated: EfficiencyCurve


@dataclass
class AggregationResult:
    """Accumulated statistics plus the per-subset curves they came from."""

    binning: Binning
    accumulator: EfficiencyAccumulator
    subsets: List[SubsetEfficiency] = field(default_factory=list)

    def summary(self) -> pd.DataFrame:
        return self.accumulator.summary(self.binning)


def aggregate_efficiencies(
    paths: Sequence[Path],
    reader: Callable[[Path], pd.DataFrame],
    binning: Binning,
    columns: EfficiencyColumns,
    on_subset: Optional[Callable[[SubsetEfficiency], None]] = None,
    show_progress: bool = True,
    should_cancel: Optional[Callable[[], bool]] = None,
    prefix: str = "test_subset_",
    suffix: str = "_output",
) -> AggregationResult:
    """Build efficiency curves for each test stream and accumulate them.

    Args:
        paths: Per-subset test outputs, in processing order.
        reader: Loads one output as a DataFrame with at least the columns
            named in `columns`.
        binning: Binning of the feature column.
        columns: Feature and response column names.
        on_subset: Called with each subset's result (e.g. to save a plot).
        show_progress: Whether to show a progress bar.
        should_cancel: Checked before each stream; True stops the run.
        prefix: File name prefix used to parse each subset number.
        suffix: File name suffix used to parse each subset number.

    Returns:
        AggregationResult with the filled accumulator.

    Raises:
        NoAggregationInputsError: If `paths` is empty.
    """
    if not paths:
        raise NoAggregationInputsError("No per-subset test outputs to aggregate")

    result = AggregationResult(
        binning=binning,
        accumulator=EfficiencyAccumulator(binning.num_bins),
    )

    iterator = tqdm(paths, desc="Aggregating subsets") if show_progress else paths
    for path in iterator:
        if should_cancel is not None and should_cancel():
            raise RunCancelled(
                f"Cancelled after {len(result.subsets)} of {len(paths)} subsets"
            )
        path = Path(path)
        frame = reader(path)
        hists = fill_histograms(frame, binning, columns)
        real, emulated = compute_efficiencies(hists)
        subset = SubsetEfficiency(
            subset_number=subset_number_from_filename(
                path, prefix, suffix, extension=path.suffix
            ),
            path=path,
            n_records=len(frame),
            histograms=hists,
            real=real,
            emulated=emulated,
        )
        if on_subset is not None:
            on_subset(subset)
        result.accumulator.add_curves(real, emulated)
        result.subsets.append(subset)

    return result

"""
Subset materialization: copy planned records into train/test streams.

For each subset, in plan order:
- open `train_subset_<k+1>` and `test_subset_<k+1>` through the sink factory
- read the subset's records once, in ascending index order
- append train rows, then test rows, unchanged

Any failure to open or write a stream aborts the whole run.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

from tqdm import tqdm

from trigboot.data.backend import RecordSource, SinkFactory
from trigboot.data.splitters import PartitionPlan, SubsetIndex
from trigboot.errors import MaterializationError, RunCancelled


@dataclass
class MaterializedSubset:
    """Output locations and row counts of one written subset."""

    subset_id: int
    train_path: str
    test_path: str
    n_train: int
    n_test: int


class SubsetMaterializer:
    """Writes every subset of a PartitionPlan from a record source."""

    def __init__(
        self,
        source: RecordSource,
        sink_factory: SinkFactory,
        show_progress: bool = True,
    ):
        self.source = source
        self.sink_factory = sink_factory
        self.show_progress = show_progress

    def materialize_subset(self, subset: SubsetIndex) -> MaterializedSubset:
        """Write the train and test streams of a single subset."""
        records = self.source.take(subset.indices)
        dtypes = self.source.dtypes

        try:
            train_sink = self.sink_factory.open(subset.train_name, dtypes)
        except OSError as e:
            raise MaterializationError(
                f"Cannot open output stream {subset.train_name}: {e}"
            ) from e
        try:
            try:
                test_sink = self.sink_factory.open(subset.test_name, dtypes)
            except OSError as e:
                raise MaterializationError(
                    f"Cannot open output stream {subset.test_name}: {e}"
                ) from e
            with test_sink:
                try:
                    train_sink.append(records[subset.train_mask])
                    test_sink.append(records[~subset.train_mask])
                except OSError as e:
                    raise MaterializationError(
                        f"Cannot write subset {subset.subset_id + 1}: {e}"
                    ) from e
        finally:
            train_sink.close()

        return MaterializedSubset(
            subset_id=subset.subset_id,
            train_path=train_sink.path,
            test_path=test_sink.path,
            n_train=train_sink.n_written,
            n_test=test_sink.n_written,
        )

    def run(
        self,
        plan: PartitionPlan,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> List[MaterializedSubset]:
        """Materialize all subsets of the plan, one after the other.

        Args:
            plan: Partition plan built against this source.
            should_cancel: Checked before each subset; if it returns True,
                the run stops with RunCancelled.

        Returns:
            One MaterializedSubset per subset, in plan order.
        """
        if plan.n_entries != self.source.n_entries():
            raise ValueError(
                f"Plan was built for {plan.n_entries} entries, "
                f"source has {self.source.n_entries()}"
            )

        if self.show_progress:
            iterator = tqdm(plan.subsets, desc="Writing subsets")
        else:
            iterator = plan.subsets

        written: List[MaterializedSubset] = []
        for subset in iterator:
            if should_cancel is not None and should_cancel():
                raise RunCancelled(
                    f"Cancelled after {len(written)} of {len(plan)} subsets"
                )
            written.append(self.materialize_subset(subset))
        return written

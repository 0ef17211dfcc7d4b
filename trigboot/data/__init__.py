"""
Record sources, partition plans and subset materialization.

This module provides:
- RecordSource / RecordSink: Storage-agnostic record interfaces
- TableSource, CSVSource, RootTreeSource: Random-access sources
- CSVSinkFactory, RootSinkFactory: Per-subset output streams
- RandomIndexSampler: Seeded permutations and draws
- build_partition_plan: Partition, resample and interleave policies
- SubsetMaterializer: Writes train/test streams for every subset
"""

from trigboot.data.backend import RecordSink, RecordSource, SinkFactory, TableSource
from trigboot.data.csv_backend import CSVSink, CSVSinkFactory, CSVSource, read_csv_frame
from trigboot.data.materializer import MaterializedSubset, SubsetMaterializer
from trigboot.data.root_backend import (
    JaggedBranch,
    RootSinkFactory,
    RootTreeSink,
    RootTreeSource,
    read_tree_frame,
    read_tree_table,
    select_branches,
)
from trigboot.data.sampler import RandomIndexSampler
from trigboot.data.splitters import (
    PartitionPlan,
    PrefixSplit,
    RandomSplit,
    SplitStrategy,
    SubsetIndex,
    build_partition_plan,
    create_interleave_blocks,
    create_partition_blocks,
    create_resample_draws,
    get_split_strategy,
)

__all__ = [
    "RecordSource",
    "RecordSink",
    "SinkFactory",
    "TableSource",
    "CSVSource",
    "CSVSink",
    "CSVSinkFactory",
    "read_csv_frame",
    "RootTreeSource",
    "RootTreeSink",
    "RootSinkFactory",
    "read_tree_frame",
    "read_tree_table",
    "JaggedBranch",
    "select_branches",
    "RandomIndexSampler",
    "PartitionPlan",
    "SubsetIndex",
    "SplitStrategy",
    "PrefixSplit",
    "RandomSplit",
    "build_partition_plan",
    "create_partition_blocks",
    "create_resample_draws",
    "create_interleave_blocks",
    "get_split_strategy",
    "MaterializedSubset",
    "SubsetMaterializer",
]

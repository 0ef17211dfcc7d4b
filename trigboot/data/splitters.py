"""
Partition plans for subset generation.

Implements:
- Partition policy: one global permutation cut into contiguous blocks
- Resample policy: bootstrap draws with replacement per subset
- Interleave policy: record i goes to subset i % num_subsets
- Split strategies: prefix (sorted order) or random train/test split

Index lists are kept sorted ascending so that materialization reads the
source sequentially. All draws go through one RandomIndexSampler: membership
draws first, then split draws subset by subset.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List

import numpy as np
import pandas as pd

from trigboot.data.sampler import RandomIndexSampler
from trigboot.errors import PartitionError


POLICIES = ("partition", "resample", "interleave")


def train_count_for(n: int, train_frac: float) -> int:
    """Number of train entries for a subset of n entries."""
    return int(n * train_frac)


def subset_name(kind: str, subset_id: int) -> str:
    """Output stream name for a subset, 1-based (e.g. "train_subset_1")."""
    return f"{kind}_subset_{subset_id + 1}"


@dataclass
class SubsetIndex:
    """Index for a single subset.

    Stores indices rather than data; the materializer resolves them
    against the record source.
    """

    subset_id: int
    indices: np.ndarray     # Source positions, sorted ascending, may repeat
    train_mask: np.ndarray  # True where the entry goes to the train stream

    @property
    def train_count(self) -> int:
        return int(self.train_mask.sum())

    @property
    def test_count(self) -> int:
        return len(self.indices) - self.train_count

    @property
    def train_indices(self) -> np.ndarray:
        return self.indices[self.train_mask]

    @property
    def test_indices(self) -> np.ndarray:
        return self.indices[~self.train_mask]

    @property
    def train_name(self) -> str:
        return subset_name("train", self.subset_id)

    @property
    def test_name(self) -> str:
        return subset_name("test", self.subset_id)


class SplitStrategy(ABC):
    """Chooses which entries of a sorted subset index list are train."""

    name: str = ""

    @abstractmethod
    def train_mask(
        self, n: int, train_count: int, sampler: RandomIndexSampler
    ) -> np.ndarray:
        """Return a boolean mask of length n with train_count True entries."""


class PrefixSplit(SplitStrategy):
    """First train_count entries in sorted-index order become train.

    Makes no draws. Train and test follow the source record order, so a
    time-ordered source gives time-separated train and test streams.
    """

    name = "prefix"

    def train_mask(
        self, n: int, train_count: int, sampler: RandomIndexSampler
    ) -> np.ndarray:
        mask = np.zeros(n, dtype=bool)
        mask[:train_count] = True
        return mask


class RandomSplit(SplitStrategy):
    """Train entries are chosen by shuffling the subset's positions.

    One permutation is drawn per subset, including empty ones.
    """

    name = "random"

    def train_mask(
        self, n: int, train_count: int, sampler: RandomIndexSampler
    ) -> np.ndarray:
        mask = np.zeros(n, dtype=bool)
        order = sampler.permutation(n)
        mask[order[:train_count]] = True
        return mask


SPLIT_STRATEGIES = {
    PrefixSplit.name: PrefixSplit,
    RandomSplit.name: RandomSplit,
}


def get_split_strategy(name: str) -> SplitStrategy:
    """Look up a split strategy by name ("prefix" or "random")."""
    try:
        return SPLIT_STRATEGIES[name]()
    except KeyError:
        raise PartitionError(
            f"Unknown split strategy: {name}. Supported: {list(SPLIT_STRATEGIES)}"
        ) from None


@dataclass
class PartitionPlan:
    """Per-subset index lists and train/test split for one run."""

    policy: str
    n_entries: int
    train_frac: float
    split: str
    seed: int
    subsets: List[SubsetIndex]

    def __len__(self) -> int:
        return len(self.subsets)

    def __iter__(self) -> Iterator[SubsetIndex]:
        return iter(self.subsets)

    def __getitem__(self, k: int) -> SubsetIndex:
        return self.subsets[k]

    def summary(self) -> pd.DataFrame:
        """Per-subset entry counts."""
        return pd.DataFrame(
            [
                {
                    "subset_id": s.subset_id,
                    "train_name": s.train_name,
                    "test_name": s.test_name,
                    "n_entries": len(s.indices),
                    "n_unique": len(np.unique(s.indices)),
                    "n_train": s.train_count,
                    "n_test": s.test_count,
                }
                for s in self.subsets
            ]
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "policy": self.policy,
            "n_entries": self.n_entries,
            "train_frac": self.train_frac,
            "split": self.split,
            "seed": self.seed,
            "subsets": [
                {
                    "subset_id": s.subset_id,
                    "indices": s.indices.tolist(),
                    "train_mask": s.train_mask.tolist(),
                }
                for s in self.subsets
            ],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> PartitionPlan:
        """Create from dictionary (e.g., from a saved partition_plan.json)."""
        subsets = [
            SubsetIndex(
                subset_id=s["subset_id"],
                indices=np.asarray(s["indices"], dtype=np.int64),
                train_mask=np.asarray(s["train_mask"], dtype=bool),
            )
            for s in d["subsets"]
        ]
        return cls(
            policy=d["policy"],
            n_entries=d["n_entries"],
            train_frac=d["train_frac"],
            split=d.get("split", PrefixSplit.name),
            seed=d["seed"],
            subsets=subsets,
        )


def create_partition_blocks(
    n_entries: int,
    num_subsets: int,
    sampler: RandomIndexSampler,
) -> List[np.ndarray]:
    """Cut one global permutation into contiguous blocks.

    Block size is ceil(n_entries / num_subsets); the last block is truncated
    and blocks starting at or past n_entries are empty.

    Args:
        n_entries: Number of records in the source.
        num_subsets: Number of blocks.
        sampler: Sampler providing the permutation (one draw).

    Returns:
        List of num_subsets sorted index arrays covering [0, n_entries) once.
    """
    order = sampler.permutation(n_entries)
    block_size = (n_entries + num_subsets - 1) // num_subsets

    blocks = []
    for k in range(num_subsets):
        start = k * block_size
        if start >= n_entries:
            blocks.append(np.empty(0, dtype=np.int64))
            continue
        blocks.append(np.sort(order[start:start + block_size]))
    return blocks


def create_resample_draws(
    n_entries: int,
    num_subsets: int,
    sampler: RandomIndexSampler,
) -> List[np.ndarray]:
    """Bootstrap draws with replacement, one batch per subset.

    Each subset holds subset_size = n_entries draws from [1, subset_size - 1].
    The draws are used directly as record positions, so position 0 is never
    selected. Duplicates are kept.

    Args:
        n_entries: Number of records in the source.
        num_subsets: Number of bootstrap subsets.
        sampler: Sampler providing one draw batch per subset.

    Returns:
        List of num_subsets sorted index arrays of length n_entries.
    """
    subset_size = n_entries
    if subset_size <= 1:
        raise PartitionError(
            f"Resample policy needs more than one entry, got subset size {subset_size}"
        )
    return [
        np.sort(sampler.uniform_int(1, subset_size - 1, size=subset_size))
        for _ in range(num_subsets)
    ]


def create_interleave_blocks(n_entries: int, num_subsets: int) -> List[np.ndarray]:
    """Assign record i to subset i % num_subsets. Makes no draws."""
    return [
        np.arange(k, n_entries, num_subsets, dtype=np.int64)
        for k in range(num_subsets)
    ]


def build_partition_plan(
    n_entries: int,
    num_subsets: int,
    train_frac: float,
    policy: str,
    sampler: RandomIndexSampler,
    split: SplitStrategy | None = None,
) -> PartitionPlan:
    """Build the complete partition plan for one run.

    Args:
        n_entries: Number of records in the source.
        num_subsets: Number of subsets (>= 1).
        train_frac: Fraction of each subset routed to train, in (0, 1).
        policy: "partition", "resample" or "interleave".
        sampler: Sampler shared by membership and split draws.
        split: Split strategy. If None, uses PrefixSplit.

    Returns:
        PartitionPlan with one SubsetIndex per subset.

    Raises:
        PartitionError: If the sizes or policy cannot produce a plan.
    """
    if n_entries <= 0:
        raise PartitionError(f"Source has no entries (n_entries={n_entries})")
    if num_subsets < 1:
        raise PartitionError(f"num_subsets must be >= 1, got {num_subsets}")
    if not 0.0 < train_frac < 1.0:
        raise PartitionError(f"train_frac must be in (0, 1), got {train_frac}")
    if split is None:
        split = PrefixSplit()

    if policy == "partition":
        blocks = create_partition_blocks(n_entries, num_subsets, sampler)
    elif policy == "resample":
        blocks = create_resample_draws(n_entries, num_subsets, sampler)
    elif policy == "interleave":
        blocks = create_interleave_blocks(n_entries, num_subsets)
    else:
        raise PartitionError(f"Unknown policy: {policy}. Supported: {list(POLICIES)}")

    subsets = []
    for k, indices in enumerate(blocks):
        n_train = train_count_for(len(indices), train_frac)
        mask = split.train_mask(len(indices), n_train, sampler)
        subsets.append(SubsetIndex(subset_id=k, indices=indices, train_mask=mask))

    return PartitionPlan(
        policy=policy,
        n_entries=n_entries,
        train_frac=train_frac,
        split=split.name,
        seed=sampler.seed,
        subsets=subsets,
    )

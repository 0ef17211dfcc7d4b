"""
Seeded pseudorandom engine shared by all partition policies.

The sampler is an explicit object handed to the partitioner. Every call
advances the same generator, so the order and number of calls fixes the
whole derived plan.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from trigboot.config import DEFAULT_SEED


class RandomIndexSampler:
    """Reproducible permutations and uniform integer draws.

    Attributes:
        seed: Seed the generator was created with.
        n_calls: Number of draws made so far.
    """

    def __init__(self, seed: int = DEFAULT_SEED):
        self.seed = seed
        self.rng = np.random.default_rng(seed)
        self.n_calls = 0

    def permutation(self, n: int) -> np.ndarray:
        """Return an unbiased shuffle of [0, n)."""
        if n < 0:
            raise ValueError(f"permutation size must be non-negative, got {n}")
        self.n_calls += 1
        return self.rng.permutation(n).astype(np.int64)

    def uniform_int(self, lo: int, hi: int, size: Optional[int] = None):
        """Draw integers uniformly from [lo, hi], both ends inclusive.

        Args:
            lo: Lowest value that can be drawn.
            hi: Highest value that can be drawn.
            size: Number of draws. If None, a single int is returned.

        Returns:
            An int, or an int64 array of length `size`.
        """
        if hi < lo:
            raise ValueError(f"empty draw range [{lo}, {hi}]")
        self.n_calls += 1
        draws = self.rng.integers(lo, hi, size=size, endpoint=True)
        if size is None:
            return int(draws)
        return draws.astype(np.int64)

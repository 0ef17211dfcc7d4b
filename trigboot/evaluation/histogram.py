"""
Fixed-width histograms over one numeric feature.

Bins cover [x_min, x_max). Values below x_min, at or above x_max, or NaN
are left out of the bin contents; under/overflow weights are tracked
separately and never enter efficiency ratios.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass(frozen=True)
class Binning:
    """Equal-width binning of [x_min, x_max) into num_bins bins."""

    num_bins: int
    x_min: float
    x_max: float

    def __post_init__(self) -> None:
        if self.num_bins < 1:
            raise ValueError(f"num_bins must be >= 1, got {self.num_bins}")
        if not self.x_max > self.x_min:
            raise ValueError(
                f"x_max must be greater than x_min, got [{self.x_min}, {self.x_max})"
            )

    @property
    def width(self) -> float:
        return (self.x_max - self.x_min) / self.num_bins

    @property
    def edges(self) -> np.ndarray:
        return np.linspace(self.x_min, self.x_max, self.num_bins + 1)

    @property
    def low_edges(self) -> np.ndarray:
        return self.edges[:-1]

    @property
    def centers(self) -> np.ndarray:
        return self.x_min + (np.arange(self.num_bins) + 0.5) * self.width

    def bin_index(self, values: np.ndarray) -> np.ndarray:
        """Bin number of each value, or -1 when outside [x_min, x_max)."""
        values = np.asarray(values, dtype=np.float64)
        in_range = (values >= self.x_min) & (values < self.x_max)
        idx = np.full(values.shape, -1, dtype=np.int64)
        raw = np.floor((values[in_range] - self.x_min) / self.width).astype(np.int64)
        # Rounding can push values just below x_max into bin num_bins
        idx[in_range] = np.minimum(raw, self.num_bins - 1)
        return idx


@dataclass
class Histogram:
    """Weighted bin contents for one Binning."""

    binning: Binning
    counts: Optional[np.ndarray] = None
    underflow: float = 0.0
    overflow: float = 0.0

    def __post_init__(self) -> None:
        if self.counts is None:
            self.counts = np.zeros(self.binning.num_bins, dtype=np.float64)

    def fill(self, values: np.ndarray, weights: Optional[np.ndarray] = None) -> None:
        """Add values with optional per-value weights (default 1)."""
        values = np.asarray(values, dtype=np.float64)
        if weights is None:
            weights = np.ones(values.shape, dtype=np.float64)
        else:
            weights = np.asarray(weights, dtype=np.float64)
            if weights.shape != values.shape:
                raise ValueError(
                    f"weights shape {weights.shape} != values shape {values.shape}"
                )

        idx = self.binning.bin_index(values)
        inside = idx >= 0
        self.counts += np.bincount(
            idx[inside], weights=weights[inside], minlength=self.binning.num_bins
        )
        self.underflow += float(weights[values < self.binning.x_min].sum())
        self.overflow += float(weights[values >= self.binning.x_max].sum())

    @property
    def total(self) -> float:
        return float(self.counts.sum())

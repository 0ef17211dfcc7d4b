"""
Error types raised by the subset and aggregation pipelines.

All of them are terminal for a batch run: the scripts report the message
and exit with a non-zero status.
"""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Invalid run configuration, detected before any output is written."""


class PartitionError(ConfigurationError):
    """A partition plan cannot be built for the requested sizes."""


class MaterializationError(OSError):
    """An output stream could not be opened or written."""


class NoAggregationInputsError(FileNotFoundError):
    """No per-subset test outputs were found for aggregation."""


class RunCancelled(RuntimeError):
    """The run was stopped at a cancellation point between subsets."""

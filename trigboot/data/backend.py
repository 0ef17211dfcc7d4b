"""
Abstract record source and sink interfaces.

Defines the contract that every storage backend (in-memory table, CSV,
ROOT) must fulfill, so the materializer and the aggregation loop never
depend on a file format.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

import numpy as np
import pandas as pd


class RecordSource(ABC):
    """Ordered, fixed-size, random-access sequence of records.

    Records are rows of a fixed schema, addressed by zero-based position.
    """

    @abstractmethod
    def n_entries(self) -> int:
        """Return the number of records."""
        pass

    @property
    @abstractmethod
    def dtypes(self) -> pd.Series:
        """Column name -> dtype of the (filtered) source schema."""
        pass

    @abstractmethod
    def take(self, indices: np.ndarray) -> pd.DataFrame:
        """Return the records at the given positions.

        Order and duplicates in `indices` are preserved in the result.
        """
        pass

    @property
    def columns(self) -> List[str]:
        return list(self.dtypes.index)

    def read(self, index: int) -> pd.Series:
        """Return the record at position index."""
        if index < 0 or index >= self.n_entries():
            raise IndexError(f"Record index {index} out of range [0, {self.n_entries()})")
        return self.take(np.array([index], dtype=np.int64)).iloc[0]

    def __len__(self) -> int:
        return self.n_entries()


class TableSource(RecordSource):
    """Source backed by an in-memory DataFrame."""

    def __init__(self, frame: pd.DataFrame):
        self._frame = frame.reset_index(drop=True)

    @property
    def frame(self) -> pd.DataFrame:
        return self._frame

    def n_entries(self) -> int:
        return len(self._frame)

    @property
    def dtypes(self) -> pd.Series:
        return self._frame.dtypes

    def take(self, indices: np.ndarray) -> pd.DataFrame:
        indices = np.asarray(indices, dtype=np.int64)
        if len(indices) and (indices.min() < 0 or indices.max() >= len(self._frame)):
            raise IndexError(
                f"Record indices out of range [0, {len(self._frame)}): "
                f"min={indices.min()}, max={indices.max()}"
            )
        return self._frame.iloc[indices].reset_index(drop=True)


class RecordSink(ABC):
    """Append-only output stream of records with a fixed schema."""

    def __init__(self, name: str):
        self.name = name
        self.n_written = 0

    @property
    @abstractmethod
    def path(self) -> str:
        """Location of the persisted artifact."""
        pass

    @abstractmethod
    def append(self, frame: pd.DataFrame) -> None:
        """Append records; columns must match the schema given at open."""
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    def __enter__(self) -> RecordSink:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class SinkFactory(ABC):
    """Creates named sinks under one output directory."""

    @abstractmethod
    def open(self, name: str, dtypes: pd.Series) -> RecordSink:
        """Create (or overwrite) the sink `name` with the given schema."""
        pass

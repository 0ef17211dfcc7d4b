"""
CSV-based record source and sinks.

Loads a flat CSV table as a random-access source and writes subset
streams as one CSV file per stream.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import pandas as pd

from trigboot.data.backend import RecordSink, SinkFactory, TableSource


class CSVSource(TableSource):
    """Source that loads a CSV file into memory.

    Optionally restricts the columns to `columns`, in file order.
    """

    def __init__(self, path: str | Path, columns: Optional[List[str]] = None):
        self.path = Path(path)
        if not self.path.exists():
            raise FileNotFoundError(f"Required file not found: {self.path}")

        frame = pd.read_csv(self.path)
        if columns is not None:
            missing = [c for c in columns if c not in frame.columns]
            if missing:
                raise KeyError(f"{self.path} has no columns {missing}")
            frame = frame[[c for c in frame.columns if c in columns]]
        super().__init__(frame)


class CSVSink(RecordSink):
    """Append-only CSV stream; the header is written on open."""

    def __init__(self, path: Path, dtypes: pd.Series):
        super().__init__(path.stem)
        self._path = path
        self._columns = list(dtypes.index)
        self._fh = open(path, "w", newline="")
        pd.DataFrame(columns=self._columns).to_csv(self._fh, index=False)

    @property
    def path(self) -> str:
        return str(self._path)

    def append(self, frame: pd.DataFrame) -> None:
        frame[self._columns].to_csv(self._fh, header=False, index=False)
        self.n_written += len(frame)

    def close(self) -> None:
        if not self._fh.closed:
            self._fh.close()


class CSVSinkFactory(SinkFactory):
    """Writes `<directory>/<name>.csv` for every opened sink."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def open(self, name: str, dtypes: pd.Series) -> CSVSink:
        return CSVSink(self.directory / f"{name}.csv", dtypes)


def read_csv_frame(path: str | Path, columns: Optional[List[str]] = None) -> pd.DataFrame:
    """Load a per-subset CSV output for aggregation."""
    return pd.read_csv(path, usecols=columns)

from __future__ import annotations

from pathlib import Path
from typing import Dict, List

import awkward as ak
import numpy as np
import pandas as pd
import pytest
import uproot

from trigboot.data.backend import RecordSink, SinkFactory, TableSource
from trigboot.data.sampler import RandomIndexSampler


class MemorySink(RecordSink):
    """Collects appended frames; used instead of files in tests."""

    def __init__(self, name: str, dtypes: pd.Series):
        super().__init__(name)
        self.columns = list(dtypes.index)
        self.frames: List[pd.DataFrame] = []
        self.closed = False

    @property
    def path(self) -> str:
        return f"memory://{self.name}"

    def append(self, frame: pd.DataFrame) -> None:
        self.frames.append(frame[self.columns])
        self.n_written += len(frame)

    def close(self) -> None:
        self.closed = True

    @property
    def frame(self) -> pd.DataFrame:
        if not self.frames:
            return pd.DataFrame(columns=self.columns)
        return pd.concat(self.frames, ignore_index=True)


class MemorySinkFactory(SinkFactory):
    def __init__(self):
        self.sinks: Dict[str, MemorySink] = {}

    def open(self, name: str, dtypes: pd.Series) -> MemorySink:
        sink = MemorySink(name, dtypes)
        self.sinks[name] = sink
        return sink


def make_events(n: int, seed: int = 7) -> pd.DataFrame:
    """Small event table with a record id, the pT feature and both responses."""
    rng = np.random.default_rng(seed)
    pt = rng.uniform(0.0, 20.0, size=n)
    real = (rng.uniform(size=n) < pt / 20.0).astype(np.float64)
    emulated = np.clip(pt / 20.0 + rng.normal(0.0, 0.05, size=n), 0.0, 1.0).astype(np.float32)
    return pd.DataFrame({
        "event_id": np.arange(n, dtype=np.int64),
        "d0_pt": pt,
        "d0_l0_hadron_tos": real,
        "d0_l0_hadron_tos_emu_xgb": emulated,
    })


def array_branches(n: int, seed: int = 3) -> Dict[str, object]:
    """Event branches plus a float[3][3] covariance and a variable-length track list."""
    rng = np.random.default_rng(seed)
    events = make_events(n, seed)
    counts = rng.integers(0, 4, size=n)
    branches: Dict[str, object] = {c: events[c].to_numpy() for c in events.columns}
    branches["B0_ENDVERTEX_COV_"] = rng.normal(size=(n, 3, 3)).astype(np.float32)
    branches["trk_p"] = ak.unflatten(rng.uniform(0.0, 50.0, size=counts.sum()), counts)
    return branches


def write_tree(path: Path, branches: Dict[str, object], tree: str = "DecayTree") -> None:
    """Write a TTree whose branches keep the order of `branches`."""
    types = {}
    for name, values in branches.items():
        if isinstance(values, ak.Array):
            types[name] = str(values.type.content)
        elif values.ndim > 1:
            types[name] = np.dtype((values.dtype, values.shape[1:]))
        else:
            types[name] = values.dtype
    with uproot.recreate(path) as f:
        f.mktree(tree, types).extend(branches)


def assert_records_equal(actual: pd.DataFrame, expected: pd.DataFrame) -> None:
    """Compare record tables whose cells may be numpy arrays; column order is ignored."""
    assert sorted(actual.columns) == sorted(expected.columns)
    assert len(actual) == len(expected)
    for name in expected.columns:
        if expected[name].dtype == object:
            for got, want in zip(actual[name], expected[name]):
                np.testing.assert_allclose(got, want)
        else:
            np.testing.assert_allclose(actual[name].to_numpy(), expected[name].to_numpy())


@pytest.fixture
def events() -> pd.DataFrame:
    return make_events(200)


@pytest.fixture
def source(events) -> TableSource:
    return TableSource(events)


@pytest.fixture
def sampler() -> RandomIndexSampler:
    return RandomIndexSampler(12345)


@pytest.fixture
def sink_factory() -> MemorySinkFactory:
    return MemorySinkFactory()


@pytest.fixture
def write_subset_csvs(tmp_path):
    """Write test_subset_<k>_output.csv files from a list of frames."""

    def _write(frames: List[pd.DataFrame], directory: Path | None = None) -> Path:
        directory = directory or tmp_path / "gen"
        directory.mkdir(parents=True, exist_ok=True)
        for k, frame in enumerate(frames, start=1):
            frame.to_csv(directory / f"test_subset_{k}_output.csv", index=False)
        return directory

    return _write

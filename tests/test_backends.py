import awkward as ak
import numpy as np
import pandas as pd
import pytest
import uproot

from trigboot.data.backend import TableSource
from trigboot.data.csv_backend import CSVSource
from trigboot.data.root_backend import (
    JaggedBranch,
    RootSinkFactory,
    RootTreeSource,
    read_tree_frame,
    select_branches,
)

from tests.conftest import array_branches, assert_records_equal, write_tree


def test_table_source_read_and_take(events):
    source = TableSource(events)
    assert len(source) == 200
    assert source.columns == list(events.columns)
    assert source.read(5)["event_id"] == 5
    taken = source.take(np.array([3, 3, 1]))
    assert taken["event_id"].tolist() == [3, 3, 1]


def test_table_source_out_of_range(events):
    source = TableSource(events)
    with pytest.raises(IndexError):
        source.read(200)
    with pytest.raises(IndexError):
        source.take(np.array([0, 500]))


def test_csv_source_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        CSVSource(tmp_path / "missing.csv")


def test_csv_source_column_selection(tmp_path, events):
    path = tmp_path / "events.csv"
    events.to_csv(path, index=False)
    source = CSVSource(path, columns=["d0_pt", "event_id"])
    assert source.columns == ["event_id", "d0_pt"]
    with pytest.raises(KeyError):
        CSVSource(path, columns=["nope"])


def test_select_branches():
    available = ["a", "b", "FitVar_q2", "c"]
    assert select_branches(available) == available
    assert select_branches(available, ["c", "a", "z"]) == ["a", "c"]
    assert select_branches(available, ["c"], ["FitVar_q2", "FitVar_El"]) == [
        "FitVar_q2", "c"
    ]


def frame_branches(frame):
    return {c: frame[c].to_numpy() for c in frame.columns}


def tree_keys(path, tree="DecayTree"):
    with uproot.open(path) as f:
        return list(f[tree].keys())


def test_root_source_filters_branches(tmp_path, events):
    events = events.assign(FitVar_q2=np.linspace(0, 1, len(events)), unused=1.0)
    write_tree(tmp_path / "input.root", frame_branches(events))
    write_tree(tmp_path / "reference.root", frame_branches(events[["event_id", "d0_pt"]].head(3)))

    source = RootTreeSource(
        tmp_path / "input.root",
        tree_path="DecayTree",
        branches_from=tmp_path / "reference.root",
    )
    kept = {"event_id", "d0_pt", "FitVar_q2"}
    assert set(source.columns) == kept
    assert source.columns == [k for k in tree_keys(tmp_path / "input.root") if k in kept]
    assert source.n_entries() == 200
    np.testing.assert_allclose(source.frame["d0_pt"], events["d0_pt"])


def test_root_source_keeps_all_without_reference(tmp_path, events):
    write_tree(tmp_path / "input.root", frame_branches(events))
    source = RootTreeSource(tmp_path / "input.root", tree_path="DecayTree")
    assert set(source.columns) == set(events.columns)
    assert source.columns == tree_keys(tmp_path / "input.root")


def test_root_source_array_branches(tmp_path):
    branches = array_branches(30)
    write_tree(tmp_path / "input.root", branches)
    source = RootTreeSource(tmp_path / "input.root", tree_path="DecayTree")

    assert source.dtypes["B0_ENDVERTEX_COV_"] == np.dtype((np.float32, (3, 3)))
    assert source.dtypes["trk_p"] == JaggedBranch(type="var * float64", counter="ntrk_p")
    assert source.dtypes["d0_pt"] == np.dtype(np.float64)

    record = source.read(4)
    np.testing.assert_allclose(record["B0_ENDVERTEX_COV_"], branches["B0_ENDVERTEX_COV_"][4])
    np.testing.assert_allclose(record["trk_p"], ak.to_numpy(branches["trk_p"][4]))
    assert record["ntrk_p"] == len(branches["trk_p"][4])


def test_root_sink_copies_array_branches(tmp_path):
    write_tree(tmp_path / "input.root", array_branches(40))
    source = RootTreeSource(tmp_path / "input.root", tree_path="DecayTree")
    rows = source.take(np.array([1, 1, 7, 20, 39]))

    with RootSinkFactory(tmp_path).open("train_subset_1", source.dtypes) as sink:
        sink.append(rows.iloc[:2])
        sink.append(rows.iloc[2:])
    assert sink.n_written == 5

    copied = RootTreeSource(tmp_path / "train_subset_1.root", tree_path="DecayTree")
    assert_records_equal(copied.frame, rows)
    assert copied.dtypes["trk_p"] == source.dtypes["trk_p"]
    assert copied.dtypes["B0_ENDVERTEX_COV_"] == source.dtypes["B0_ENDVERTEX_COV_"]


def test_root_sink_array_branches_empty_tree(tmp_path):
    write_tree(tmp_path / "input.root", array_branches(10))
    source = RootTreeSource(tmp_path / "input.root", tree_path="DecayTree")
    with RootSinkFactory(tmp_path).open("test_subset_1", source.dtypes) as sink:
        sink.append(source.take(np.array([], dtype=np.int64)))

    copied = RootTreeSource(tmp_path / "test_subset_1.root", tree_path="DecayTree")
    assert copied.n_entries() == 0
    assert set(copied.columns) == set(source.columns)


def test_root_sink_round_trip(tmp_path, events):
    factory = RootSinkFactory(tmp_path, tree_name="DecayTree")
    with factory.open("test_subset_1", events.dtypes) as sink:
        sink.append(events.iloc[:50])
        sink.append(events.iloc[50:80])
    assert sink.n_written == 80

    frame = read_tree_frame(tmp_path / "test_subset_1.root", "DecayTree")
    expected = events.iloc[:80].reset_index(drop=True)
    pd.testing.assert_frame_equal(frame, expected, check_dtype=False)


def test_root_sink_empty_tree(tmp_path, events):
    factory = RootSinkFactory(tmp_path)
    with factory.open("test_subset_2", events.dtypes) as sink:
        sink.append(events.iloc[:0])
    frame = read_tree_frame(tmp_path / "test_subset_2.root", "DecayTree")
    assert len(frame) == 0
    assert list(frame.columns) == list(events.columns)


def test_read_tree_frame_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_tree_frame(tmp_path / "nope.root", "DecayTree")

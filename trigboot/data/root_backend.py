"""
ROOT TTree record source and sinks, read and written with uproot.

The source keeps only the branches that also exist in a reference tree
(the schema the emulation models are trained on), plus a few extra
branches needed downstream, and loads them into memory once.

Branches are loaded through awkward. Flat branches become ordinary
DataFrame columns; fixed-size array branches (e.g. `*_ENDVERTEX_COV_`,
float[3][3]) and variable-length branches become object columns holding
one numpy array per record. The source's `dtypes` carry the branch types
so the sinks recreate the same schema, counter branches included.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

import awkward as ak
import numpy as np
import pandas as pd
import uproot

from trigboot.data.backend import RecordSink, SinkFactory, TableSource
from trigboot.errors import ConfigurationError


DEFAULT_EXTRA_BRANCHES = ("FitVar_q2", "FitVar_Mmiss2", "FitVar_El")


@dataclass(frozen=True)
class JaggedBranch:
    """Variable-length branch: awkward type string and its counter branch."""

    type: str
    counter: str


BranchType = Union[np.dtype, JaggedBranch]


@dataclass
class TreeTable:
    """Branches of a tree loaded as a DataFrame, with their TTree types."""

    frame: pd.DataFrame
    branch_types: pd.Series


def select_branches(
    available: Sequence[str],
    reference: Optional[Iterable[str]] = None,
    extra: Iterable[str] = (),
) -> List[str]:
    """Pick the branches to keep, in the input tree's order.

    Args:
        available: Branch names of the input tree.
        reference: Branch names of the reference tree. If None, keep all.
        extra: Additional branches kept when present in the input tree.

    Returns:
        List of kept branch names.
    """
    if reference is None:
        return list(available)
    keep = set(reference) | set(extra)
    return [name for name in available if name in keep]


def tree_branch_names(path: str | Path, tree_path: str) -> List[str]:
    """Return the branch names of a tree inside a ROOT file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Required file not found: {path}")
    with uproot.open(path) as f:
        return list(f[tree_path].keys())


def _fixed_shape(content) -> Optional[tuple]:
    """Inner shape of a (possibly multi-dimensional) fixed-size type, else None."""
    shape = []
    while isinstance(content, ak.types.RegularType):
        shape.append(content.size)
        content = content.content
    if isinstance(content, ak.types.NumpyType):
        return tuple(shape)
    return None


def _object_column(cells: Sequence[np.ndarray]) -> np.ndarray:
    column = np.empty(len(cells), dtype=object)
    for i, cell in enumerate(cells):
        column[i] = cell
    return column


def _split_rows(flat: np.ndarray, counts: np.ndarray) -> List[np.ndarray]:
    if len(counts) == 0:
        return []
    return np.split(flat, np.cumsum(counts)[:-1])


def _load_branch(array: ak.Array, counter: str):
    """Convert one awkward branch to (column values, branch type).

    Returns None for layouts that cannot be held as numpy cells.
    """
    content = array.type.content
    shape = _fixed_shape(content)
    if shape == ():
        values = ak.to_numpy(array)
        return values, values.dtype
    if shape is not None:
        values = ak.to_numpy(array)
        return _object_column(list(values)), np.dtype((values.dtype, shape))

    if isinstance(content, ak.types.ListType) and _fixed_shape(content.content) is not None:
        counts = ak.to_numpy(ak.num(array, axis=1))
        flat = ak.to_numpy(ak.flatten(array, axis=1))
        dims = [str(d) for d in flat.shape[1:]] + [flat.dtype.name]
        branch_type = JaggedBranch(
            type="var * " + " * ".join(dims),
            counter=counter,
        )
        return _object_column(_split_rows(flat, counts)), branch_type
    return None


def read_tree_table(
    path: str | Path,
    tree_path: str,
    columns: Optional[List[str]] = None,
) -> TreeTable:
    """Load branches of a tree, keeping array branches as per-record arrays.

    Args:
        path: ROOT file.
        tree_path: Tree location inside the file, e.g. "TupleB0/DecayTree".
        columns: Branches to load. If None, loads all.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If a branch has a layout that cannot be copied
            (nested variable-length arrays, records, strings).
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Required file not found: {path}")
    with uproot.open(path) as f:
        tree = f[tree_path]
        names = list(tree.keys()) if columns is None else list(columns)
        counters = {}
        for name in names:
            count_branch = tree[name].count_branch
            counters[name] = count_branch.name if count_branch is not None else None
        arrays = tree.arrays(names, library="ak")

    data: Dict[str, np.ndarray] = {}
    types: Dict[str, BranchType] = {}
    unsupported = []
    for name in names:
        loaded = _load_branch(arrays[name], counters[name] or f"n{name}")
        if loaded is None:
            unsupported.append(f"{name} ({arrays[name].type.content})")
            continue
        data[name], types[name] = loaded
    if unsupported:
        raise ConfigurationError(
            f"Cannot copy branches of {path}:{tree_path}: {', '.join(unsupported)}"
        )

    frame = pd.DataFrame(data, columns=names)
    return TreeTable(frame=frame, branch_types=pd.Series(types, index=names, dtype=object))


def read_tree_frame(
    path: str | Path,
    tree_path: str,
    columns: Optional[List[str]] = None,
) -> pd.DataFrame:
    """Load branches of a tree into a DataFrame (see read_tree_table)."""
    return read_tree_table(path, tree_path, columns).frame


class RootTreeSource(TableSource):
    """Random-access source over a reduced copy of a ROOT tree."""

    def __init__(
        self,
        path: str | Path,
        tree_path: str = "TupleB0/DecayTree",
        branches_from: Optional[str | Path] = None,
        extra_branches: Iterable[str] = DEFAULT_EXTRA_BRANCHES,
    ):
        self.path = Path(path)
        self.tree_path = tree_path

        available = tree_branch_names(self.path, tree_path)
        reference = None
        if branches_from is not None:
            reference = tree_branch_names(branches_from, tree_path)
        self.branches = select_branches(available, reference, extra_branches)

        table = read_tree_table(self.path, tree_path, self.branches)
        self._branch_types = table.branch_types
        super().__init__(table.frame)

    @property
    def dtypes(self) -> pd.Series:
        """Branch name -> numpy dtype (flat or fixed-size) or JaggedBranch."""
        return self._branch_types


def _branch_type(dtype) -> BranchType:
    if isinstance(dtype, JaggedBranch):
        return dtype
    return np.dtype(dtype)


class RootTreeSink(RecordSink):
    """Append-only TTree in its own (recreated) ROOT file.

    Counter branches of variable-length branches are written by uproot
    under their original names, so they are not filled from the frame.
    """

    def __init__(self, path: Path, dtypes: pd.Series, tree_name: str = "DecayTree"):
        super().__init__(path.stem)
        self._path = path
        self._types = {name: _branch_type(dt) for name, dt in dtypes.items()}
        counter_names = {
            name: t.counter for name, t in self._types.items() if isinstance(t, JaggedBranch)
        }
        counters = set(counter_names.values())
        self._columns = [name for name in self._types if name not in counters]

        branch_types = {}
        for name in self._columns:
            t = self._types[name]
            branch_types[name] = t.type if isinstance(t, JaggedBranch) else t

        self._file = uproot.recreate(path)
        self._closed = False
        self._tree = self._file.mktree(
            tree_name,
            branch_types,
            counter_name=lambda counted: counter_names.get(counted, "n" + counted),
        )

    @property
    def path(self) -> str:
        return str(self._path)

    def _column_array(self, name: str, values: pd.Series):
        t = self._types[name]
        if isinstance(t, JaggedBranch):
            cells = values.to_list()
            counts = np.array([len(c) for c in cells], dtype=np.int64)
            return ak.unflatten(np.concatenate(cells), counts)
        if t.shape:
            return np.stack(values.to_list()).astype(t.base)
        return values.to_numpy()

    def append(self, frame: pd.DataFrame) -> None:
        if len(frame) == 0:
            return
        self._tree.extend(
            {name: self._column_array(name, frame[name]) for name in self._columns}
        )
        self.n_written += len(frame)

    def close(self) -> None:
        if not self._closed:
            self._file.close()
            self._closed = True


class RootSinkFactory(SinkFactory):
    """Writes `<directory>/<name>.root` with one tree per sink."""

    def __init__(self, directory: str | Path, tree_name: str = "DecayTree"):
        self.directory = Path(directory)
        self.tree_name = tree_name

    def open(self, name: str, dtypes: pd.Series) -> RootTreeSink:
        return RootTreeSink(self.directory / f"{name}.root", dtypes, self.tree_name)

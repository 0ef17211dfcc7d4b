"""
Configuration management using pydantic.

All config classes use pydantic for validation and YAML loading.
Config files are stored in configs/ directory.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, model_validator


# Base path for config files
CONFIGS_DIR = Path(__file__).parent.parent / "configs"

DEFAULT_SEED = 12345


def load_yaml(path: Path | str) -> dict[str, Any]:
    """Load a YAML file and return as dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


class HistogramConfig(BaseModel):
    """Fixed-width binning of the efficiency feature over [x_min, x_max)."""

    num_bins: int = Field(default=20, ge=1)
    x_min: float = 0.0
    x_max: float = 20.0

    @model_validator(mode="after")
    def check_range(self) -> HistogramConfig:
        if self.x_max <= self.x_min:
            raise ValueError(
                f"x_max must be greater than x_min, got [{self.x_min}, {self.x_max})"
            )
        return self


class SubsetConfig(BaseModel):
    """Configuration for subset generation.

    The default seed is fixed so that every run of the pipeline produces
    the same partition plan.
    """

    input_path: Optional[str] = None
    tree_path: str = "TupleB0/DecayTree"
    branches_from: Optional[str] = None  # Reference file whose branches are kept
    extra_branches: List[str] = Field(
        default=["FitVar_q2", "FitVar_Mmiss2", "FitVar_El"]
    )
    output_dir: str = "subsets"
    output_format: Literal["root", "csv"] = "root"
    output_tree: str = "DecayTree"
    num_subsets: int = Field(default=2, ge=1)
    train_frac: float = Field(default=0.5, gt=0.0, lt=1.0)
    policy: Literal["partition", "resample", "interleave"] = "partition"
    split: Literal["prefix", "random"] = "prefix"
    random_seed: int = DEFAULT_SEED

    @classmethod
    def from_yaml(cls, path: Path | str | None = None) -> SubsetConfig:
        """Load config from YAML file.

        Args:
            path: Path to YAML file. If None, uses configs/subsets.yaml.
        """
        if path is None:
            path = CONFIGS_DIR / "subsets.yaml"
        return cls(**load_yaml(path))


class EfficiencyConfig(BaseModel):
    """Configuration for efficiency aggregation over per-subset test outputs."""

    input_dir: str = "gen"
    plot_dir: str = "plots"
    tree_name: str = "DecayTree"
    file_prefix: str = "test_subset_"
    file_suffix: str = "_output"
    file_extension: str = ".root"
    feature_col: str = "d0_pt"
    real_col: str = "d0_l0_hadron_tos"
    emulated_col: str = "d0_l0_hadron_tos_emu_xgb"
    title: str = "L0Hadron TOS efficiency"
    x_label: str = "d0 pT [GeV]"
    histogram: HistogramConfig = Field(default_factory=HistogramConfig)

    @classmethod
    def from_yaml(cls, path: Path | str | None = None) -> EfficiencyConfig:
        """Load config from YAML file.

        Args:
            path: Path to YAML file. If None, uses configs/efficiency.yaml.
        """
        if path is None:
            path = CONFIGS_DIR / "efficiency.yaml"
        return cls(**load_yaml(path))

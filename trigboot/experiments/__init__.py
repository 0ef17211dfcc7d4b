"""
Pipeline runners used by the scripts.

This module provides:
- subset_runner: Partition plan + materialization of train/test subsets
- efficiency_runner: Efficiency aggregation and charts over test outputs
"""

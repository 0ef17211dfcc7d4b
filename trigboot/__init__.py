"""Bootstrap subset generation and efficiency aggregation for trigger emulation studies."""

__version__ = "0.1.0"

"""TennisOracle: multi-agent tennis match prediction service."""

__version__ = "0.1.0"

"""HTTP API for TennisOracle."""

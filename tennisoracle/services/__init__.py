"""Service layer for TennisOracle."""

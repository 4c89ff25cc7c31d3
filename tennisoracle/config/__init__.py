"""Configuration for TennisOracle."""

from tennisoracle.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]

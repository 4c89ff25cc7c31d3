"""Reference data ingestion services."""

from tennisoracle.services.ingestion.tennis_data import TennisDataService

__all__ = ["TennisDataService"]

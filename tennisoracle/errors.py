"""Exception types shared across services and routes."""


class TennisOracleError(Exception):
    """Base class for application errors."""


class NotFoundError(TennisOracleError):
    """A requested entity does not exist."""


class MatchNotFoundError(NotFoundError):
    def __init__(self, match_id: int):
        super().__init__(f"Match not found: {match_id}")
        self.match_id = match_id


class PlayerNotFoundError(NotFoundError):
    def __init__(self, message: str = "Player data not found"):
        super().__init__(message)


class AnalysisInProgressError(TennisOracleError):
    """A run for the same match is already in flight."""

    def __init__(self, match_id: int):
        super().__init__("Match analysis already in progress")
        self.match_id = match_id

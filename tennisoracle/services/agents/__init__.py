"""Analysis agents, one class per category."""

from tennisoracle.services.agents.base import (
    ANALYSIS_ERROR,
    Advantage,
    AgentGroup,
    FactorResult,
    parse_verdict,
)
from tennisoracle.services.agents.contextual import ContextualAgents
from tennisoracle.services.agents.matchup import MatchupAgents
from tennisoracle.services.agents.physical_condition import PhysicalConditionAgents
from tennisoracle.services.agents.recent_performance import RecentPerformanceAgents
from tennisoracle.services.agents.stats import StatsProvider
from tennisoracle.services.agents.statistical import StatisticalAgents
from tennisoracle.services.agents.surface_environment import SurfaceEnvironmentAgents

__all__ = [
    "ANALYSIS_ERROR",
    "Advantage",
    "AgentGroup",
    "ContextualAgents",
    "FactorResult",
    "MatchupAgents",
    "PhysicalConditionAgents",
    "RecentPerformanceAgents",
    "StatisticalAgents",
    "StatsProvider",
    "SurfaceEnvironmentAgents",
    "parse_verdict",
]

"""Multi-agent match analysis.

One run: resolve participants, fan out six agent groups, synthesize a
prediction, persist it with one analysis row per agent, and announce start
and completion on the realtime relay.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from tennisoracle.config import Settings, get_settings
from tennisoracle.errors import AnalysisInProgressError, PlayerNotFoundError
from tennisoracle.models.domain import Match, Player, Prediction
from tennisoracle.services.agent_registry import AgentRegistry
from tennisoracle.services.agents import (
    ContextualAgents,
    FactorResult,
    MatchupAgents,
    PhysicalConditionAgents,
    RecentPerformanceAgents,
    StatisticalAgents,
    StatsProvider,
    SurfaceEnvironmentAgents,
)
from tennisoracle.services.realtime import RealtimeRelay
from tennisoracle.services.state_store import StateStore, analysis_lock_key
from tennisoracle.services.storage import TennisStorage
from tennisoracle.services.synthesis import PredictionSynthesizer, SynthesisOutcome

logger = structlog.get_logger(__name__)


def json_safe(value: Any) -> Any:
    """Round-trip through JSON so datetimes and other values fit a JSON column."""
    return json.loads(json.dumps(value, default=str))


async def gather_or_cancel(*aws: Awaitable[Any]) -> list[Any]:
    """
    Like ``asyncio.gather``, but a failure cancels the remaining awaitables.

    The first exception is re-raised after every sibling has finished.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class AnalysisOrchestrator:
    """
    Runs the agent groups for a match and stores the synthesized prediction.

    Args:
        storage: TennisStorage
        registry: AgentRegistry updated around every agent run
        state_store: Holds the per-match in-flight marker
        completion_client: Object with an async ``complete`` method
        relay: RealtimeRelay for analysis events
        stats: StatsProvider for estimated metrics
        settings: Optional settings override
    """

    def __init__(
        self,
        storage: TennisStorage,
        registry: AgentRegistry,
        state_store: StateStore,
        completion_client,
        relay: RealtimeRelay,
        stats: StatsProvider | None = None,
        settings: Settings | None = None,
    ):
        self.storage = storage
        self.registry = registry
        self.state_store = state_store
        self.relay = relay
        self.settings = settings or get_settings()
        stats = stats or StatsProvider(
            minutes_per_set=self.settings.load_defaults_config()
            .get("agents", {})
            .get("minutes_per_set", 35)
        )
        group_args = (completion_client, storage, stats, self.settings)
        self.recent_performance = RecentPerformanceAgents(*group_args)
        self.surface_environment = SurfaceEnvironmentAgents(*group_args)
        self.statistical = StatisticalAgents(*group_args)
        self.physical_condition = PhysicalConditionAgents(*group_args)
        self.matchup = MatchupAgents(*group_args)
        self.contextual = ContextualAgents(*group_args)
        self.synthesizer = PredictionSynthesizer(completion_client, self.settings)

    async def analyze_match(self, match: Match) -> Prediction:
        """
        Run a full analysis for ``match``.

        Raises:
            AnalysisInProgressError: A run for this match is already in flight
            PlayerNotFoundError: A participant id does not resolve
        """
        lock_key = analysis_lock_key(match.id)
        if not await self.state_store.acquire(lock_key, self.settings.analysis_lock_ttl):
            logger.warning("analysis_already_running", match_id=match.id)
            raise AnalysisInProgressError(match.id)

        try:
            player1, player2 = await asyncio.gather(
                self.storage.get_player(match.player1_id),
                self.storage.get_player(match.player2_id),
            )
            if player1 is None or player2 is None:
                raise PlayerNotFoundError()

            logger.info(
                "analysis_started",
                match_id=match.id,
                player1=player1.name,
                player2=player2.name,
            )
            await self.relay.broadcast("analysis:started", {"matchId": match.id})

            results = await self.run_agent_groups(match, player1, player2)
            factors = [factor for group in results.values() for factor in group]
            outcome = await self.synthesizer.synthesize(match, player1, player2, factors)

            prediction = await self._store(match, results, factors, outcome)
            logger.info(
                "analysis_completed",
                match_id=match.id,
                winner_id=outcome.winner_id,
                win_probability=outcome.win_probability,
                method=outcome.method,
                factors=len(factors),
            )
            await self.relay.broadcast(
                "analysis:completed",
                {"matchId": match.id, "prediction": prediction.to_dict()},
            )
            return prediction
        finally:
            await self.state_store.release(lock_key)

    async def run_agent_groups(
        self, match: Match, player1: Player, player2: Player
    ) -> dict[str, list[FactorResult]]:
        """
        Run the agent groups. Returns category -> results.

        Every group and the news monitor run concurrently. The data gaps
        reporter runs last, over the results of all other agents.
        """
        args = (match, player1, player2)
        rp = self.recent_performance
        se = self.surface_environment
        st = self.statistical
        pc = self.physical_condition
        cx = self.contextual

        *groups, news = await gather_or_cancel(
            self._run_group([rp.analyze_recent_matches, rp.analyze_momentum, rp.analyze_clutch_performance], args),
            self._run_group([se.analyze_surface_suitability, se.analyze_environment], args),
            self._run_group(
                [
                    st.analyze_serve_performance,
                    st.analyze_return_performance,
                    st.analyze_rally_patterns,
                    st.analyze_pressure_points,
                    st.analyze_statistical_trends,
                ],
                args,
            ),
            self._run_group(
                [
                    pc.analyze_schedule_burden,
                    pc.analyze_physical_toll,
                    pc.analyze_injury_status,
                    pc.analyze_endurance,
                ],
                args,
            ),
            self._run_matchup(*args),
            self._run_agent(cx.analyze_news.agent_name, cx.analyze_news(*args)),
        )
        others = [factor for group in groups for factor in group] + [news]
        gaps = await self._run_agent(
            cx.report_data_gaps.agent_name, cx.report_data_gaps(*args, others)
        )

        categories = [
            "recent_performance",
            "surface_environment",
            "statistical",
            "physical_condition",
            "matchup",
        ]
        results = dict(zip(categories, groups))
        results["contextual"] = [news, gaps]
        return results

    async def _run_group(self, agents: list[Callable[..., Awaitable[FactorResult]]], args: tuple) -> list[FactorResult]:
        return await gather_or_cancel(*(self._run_agent(agent.agent_name, agent(*args)) for agent in agents))

    async def _run_matchup(self, match: Match, player1: Player, player2: Player) -> list[FactorResult]:
        mu = self.matchup
        style = await self._run_agent(
            mu.analyze_playing_style.agent_name, mu.analyze_playing_style(match, player1, player2)
        )
        h2h = await self._run_agent(
            mu.analyze_head_to_head.agent_name, mu.analyze_head_to_head(match, player1, player2)
        )
        tactical = await self._run_agent(
            mu.analyze_tactical_battle.agent_name,
            mu.analyze_tactical_battle(match, player1, player2, style, h2h),
        )
        return [style, h2h, tactical]

    async def _run_agent(self, agent_name: str, run: Awaitable[FactorResult]) -> FactorResult:
        """Await one agent run, keeping its registry status current."""
        await self.registry.mark_processing(agent_name)
        try:
            result = await run
        except asyncio.CancelledError:
            await self.registry.mark_error(agent_name)
            logger.warning("agent_run_cancelled", agent=agent_name)
            raise
        except Exception:
            await self.registry.mark_error(agent_name)
            logger.exception("agent_run_failed", agent=agent_name)
            raise
        if result.failed:
            await self.registry.mark_error(agent_name)
        else:
            await self.registry.mark_active(agent_name)
        return result

    async def _store(
        self,
        match: Match,
        results: dict[str, list[FactorResult]],
        factors: list[FactorResult],
        outcome: SynthesisOutcome,
    ) -> Prediction:
        factor_analysis = [
            {
                "agent_name": f.agent_name,
                "factor": f.factor,
                "conclusion": f.conclusion,
                "advantage": f.advantage,
                "confidence": f.confidence,
                "reasoning": f.reasoning,
            }
            for f in factors
        ]
        contributions = {
            category: [f.to_dict() for f in group] for category, group in results.items()
        }
        contributions["key_factors"] = outcome.key_factors

        prediction = await self.storage.save_prediction(
            match_id=match.id,
            predicted_winner_id=outcome.winner_id,
            win_probability=outcome.win_probability,
            confidence_level=outcome.confidence_level,
            factor_analysis=json_safe(factor_analysis),
            reasoning=outcome.reasoning,
            agent_contributions=json_safe(contributions),
            synthesis_method=outcome.method,
        )
        await self.storage.create_agent_analyses(
            [
                {
                    "match_id": match.id,
                    "agent_type": f.category,
                    "agent_name": f.agent_name,
                    "factor": f.factor,
                    "analysis": json_safe(f.analysis),
                    "conclusion": f.conclusion,
                    "advantage": f.advantage,
                    "confidence_level": f.confidence,
                    "reasoning": f.reasoning,
                    "processing_time": f.processing_time_ms,
                }
                for f in factors
            ]
        )
        return prediction

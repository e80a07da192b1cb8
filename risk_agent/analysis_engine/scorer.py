"""
Risk aggregation — combine policy sub-scores and decide.

Responsibilities:
- Run the three policies concurrently for a scoring request.
- Combine sub-scores with configured weights: round(sum(score * w) / sum(w)).
- Map the combined score to allow / hold / escalate / deny.
- Score batches item by item, concurrently, keeping input order.
"""

from __future__ import annotations

import asyncio
from typing import Sequence

from risk_agent.agent_logging import bind_address
from risk_agent.analysis_engine.cache import StatsCache
from risk_agent.analysis_engine.models import PolicyOutcome, Recommendation, RiskScore, clamp_score
from risk_agent.analysis_engine.requests import ScoringRequest
from risk_agent.chain_data.cached import CachedChainData
from risk_agent.chain_data.provider import ChainDataProvider
from risk_agent.config.settings import DecisionThresholds, PolicyWeights, Settings
from risk_agent.policies import AddressReputationPolicy, AmountAnomalyPolicy, VelocityPolicy


def combine_scores(scores: Sequence[float], weights: Sequence[float]) -> int:
    """
    Weighted mean of sub-scores, rounded half up and clamped to [0, 100].

    Raises:
        ValueError: lengths differ or weights sum to zero.
    """
    if len(scores) != len(weights):
        raise ValueError("scores and weights must have the same length")
    total_weight = float(sum(weights))
    if total_weight <= 0:
        raise ValueError("weights must sum to a positive value")
    weighted = sum(float(s) * float(w) for s, w in zip(scores, weights))
    return clamp_score(weighted / total_weight)


def decide(score: int, thresholds: DecisionThresholds) -> Recommendation:
    """
    Recommendation for a combined score.

    Scores below thresholds.allow are allowed; from there up to escalate they
    are held. escalate and deny are the lower bounds of their bands.
    """
    if score >= thresholds.deny:
        return Recommendation.DENY
    if score >= thresholds.escalate:
        return Recommendation.ESCALATE
    if score >= thresholds.allow:
        return Recommendation.HOLD
    return Recommendation.ALLOW


class RiskAggregator:
    """Runs the reputation, amount and velocity policies and produces a RiskScore."""

    def __init__(
        self,
        reputation: AddressReputationPolicy,
        amount: AmountAnomalyPolicy,
        velocity: VelocityPolicy,
        *,
        weights: PolicyWeights | None = None,
        thresholds: DecisionThresholds | None = None,
    ) -> None:
        self.reputation = reputation
        self.amount = amount
        self.velocity = velocity
        self.weights = weights or PolicyWeights()
        self.thresholds = thresholds or DecisionThresholds()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        provider: ChainDataProvider,
        cache: StatsCache | None = None,
    ) -> "RiskAggregator":
        """Wire policies over one shared cache-first data boundary."""
        data = CachedChainData(provider, cache or StatsCache.from_config(settings.cache))
        return cls(
            AddressReputationPolicy(data, settings.reputation),
            AmountAnomalyPolicy(data, settings.amount),
            VelocityPolicy(data),
            weights=settings.weights,
            thresholds=settings.thresholds,
        )

    async def evaluate_policies(self, request: ScoringRequest) -> tuple[PolicyOutcome, PolicyOutcome, PolicyOutcome]:
        address = request.from_address
        rep, amt, vel = await asyncio.gather(
            self.reputation.evaluate(address),
            self.amount.evaluate(request.quantity, address),
            self.velocity.evaluate(request.context, address),
        )
        return rep, amt, vel

    async def score(self, request: ScoringRequest) -> RiskScore:
        outcomes = await self.evaluate_policies(request)
        combined = combine_scores([o.score for o in outcomes], self.weights.as_tuple())
        result = RiskScore(
            score=combined,
            reasons=tuple(o.reason for o in outcomes),
            recommendation=decide(combined, self.thresholds),
        )
        bind_address(request.from_address).info(
            "risk_score_computed",
            action=request.action.value,
            score=result.score,
            recommendation=result.recommendation.value,
            sub_scores=[o.to_dict() for o in outcomes],
        )
        return result

    async def score_batch(self, requests: Sequence[ScoringRequest]) -> list[RiskScore]:
        """Score each request independently; results follow input order."""
        return list(await asyncio.gather(*(self.score(r) for r in requests)))

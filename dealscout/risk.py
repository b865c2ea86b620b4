"""Contract risk scoring from the static clause-score table."""
from __future__ import annotations

from dealscout.dataset import COMPANY_CLAUSE_SCORES, RISK_BUCKETS, RISK_MAX_TOTAL, RISK_SUBCLAUSES
from dealscout.schemas import CompanyRiskScores, RiskBucket

LOW_CUTOFF = 35.0
MEDIUM_CUTOFF = 65.0
KEY_CONTRIBUTOR_COUNT = 3


def risk_grade(normalized_percent: float) -> str:
    """Map a 0-100 percentage to Low (<=35), Medium (<=65) or High."""
    if normalized_percent <= LOW_CUTOFF:
        return "Low"
    if normalized_percent <= MEDIUM_CUTOFF:
        return "Medium"
    return "High"


def bucket_totals(clause_scores: dict[str, int]) -> dict[str, int]:
    totals = {b.id: 0 for b in RISK_BUCKETS}
    for clause in RISK_SUBCLAUSES:
        totals[clause.bucket_id] += clause_scores.get(clause.id, 1)
    return totals


def key_contributors(totals: dict[str, int], buckets: tuple[RiskBucket, ...] = RISK_BUCKETS) -> list[str]:
    """Top buckets by (total / max) * weight, formatted ``"Label (total/max)"``."""
    ranked = sorted(
        buckets,
        key=lambda b: totals[b.id] / b.max_score * b.weight_percent,
        reverse=True,
    )
    return [f"{b.label} ({totals[b.id]}/{b.max_score})" for b in ranked[:KEY_CONTRIBUTOR_COUNT]]


def calculate_risk_scores(company_id: str) -> CompanyRiskScores | None:
    clause_scores = COMPANY_CLAUSE_SCORES.get(company_id)
    if clause_scores is None:
        return None

    totals = bucket_totals(clause_scores)
    raw_total = sum(totals.values())
    percent = raw_total / RISK_MAX_TOTAL * 100

    return CompanyRiskScores(
        company_id=company_id,
        clause_scores=dict(clause_scores),
        bucket_totals=totals,
        raw_total=raw_total,
        normalized_percent=round(percent, 1),
        grade=risk_grade(percent),
        key_contributors=key_contributors(totals),
    )

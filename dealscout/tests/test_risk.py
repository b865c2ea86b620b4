"""Tests for the contract risk model."""
from __future__ import annotations

import pytest

from dealscout.dataset import RISK_BUCKETS, RISK_MAX_TOTAL, RISK_SUBCLAUSES
from dealscout.risk import bucket_totals, calculate_risk_scores, key_contributors, risk_grade


class TestRiskModelData:
    def test_bucket_weights_sum_to_100(self):
        assert sum(b.weight_percent for b in RISK_BUCKETS) == 100

    def test_max_total(self):
        assert RISK_MAX_TOTAL == 72
        assert len(RISK_BUCKETS) == 11
        assert len(RISK_SUBCLAUSES) == 21

    def test_subclause_max_scores_fill_buckets(self):
        for bucket in RISK_BUCKETS:
            total = sum(c.max_score for c in RISK_SUBCLAUSES if c.bucket_id == bucket.id)
            assert total == bucket.max_score, bucket.id

    def test_option_scores_are_positions(self):
        for clause in RISK_SUBCLAUSES:
            assert [o.score for o in clause.options] == list(range(1, clause.max_score + 1))


class TestRiskGrade:
    @pytest.mark.parametrize("pct, grade", [
        (0, "Low"), (35, "Low"), (35.01, "Medium"), (65, "Medium"), (65.01, "High"), (100, "High"),
    ])
    def test_cutoffs(self, pct, grade):
        assert risk_grade(pct) == grade


class TestCalculateRiskScores:
    def test_mantla(self):
        scores = calculate_risk_scores("mantla")
        assert scores.raw_total == 30
        assert scores.normalized_percent == 41.7
        assert scores.grade == "Medium"
        assert scores.key_contributors == ["Termination (7/17)", "Liability (5/13)", "Non-compete (3/7)"]

    def test_instaworks(self):
        scores = calculate_risk_scores("instaworks")
        assert scores.raw_total == 25
        assert scores.normalized_percent == 34.7
        assert scores.grade == "Low"

    def test_disprztech(self):
        scores = calculate_risk_scores("disprztech")
        assert scores.raw_total == 48
        assert scores.normalized_percent == 66.7
        assert scores.grade == "High"
        assert scores.key_contributors == ["Termination (12/17)", "Liability (9/13)", "Non-compete (5/7)"]

    def test_bucket_totals_sum_to_raw_total(self):
        scores = calculate_risk_scores("mantla")
        assert sum(scores.bucket_totals.values()) == scores.raw_total
        assert set(scores.bucket_totals) == {b.id for b in RISK_BUCKETS}

    def test_unknown_company(self):
        assert calculate_risk_scores("nope") is None


class TestHelpers:
    def test_missing_clause_counts_as_one(self):
        totals = bucket_totals({})
        assert sum(totals.values()) == len(RISK_SUBCLAUSES)

    def test_key_contributors_ranked_by_weighted_share(self):
        totals = {b.id: 1 for b in RISK_BUCKETS}
        totals["indemnities"] = 5
        assert key_contributors(totals)[0] == "Indemnities (5/5)"

"""
Tests for risk tier classification.
"""

import pytest

from factories import utc
from sentinel.analysis.risk import DOWNGRADE_SUFFIX, classify_risk
from sentinel.analysis.types import CommitData, FileChange
from sentinel.models.db import RiskTier


def commit_with(*paths: str) -> CommitData:
    return CommitData(
        sha="a" * 40,
        message="change",
        author_login="alice",
        timestamp=utc(2024, 6, 1, 12),
        files=[FileChange(p, additions=10) for p in paths],
    )


class TestClassifyRisk:
    def test_core_path_with_high_confidence_is_t4(self):
        risk = classify_risk(commit_with("src/auth/jwt.ts"), 0.9)

        assert risk.tier == RiskTier.T4_NOVEL
        assert risk.score == pytest.approx(0.93)

    def test_core_path_with_medium_confidence_is_t3(self):
        assert classify_risk(commit_with("lib/payments/refund.py"), 0.5).tier == RiskTier.T3_CORE

    def test_api_route_counts_as_core(self):
        assert classify_risk(commit_with("src/api/orders.ts"), 0.5).tier == RiskTier.T3_CORE

    def test_plain_code_is_t2(self):
        risk = classify_risk(commit_with("src/components/Button.tsx"), 0.9)

        assert risk.tier == RiskTier.T2_GLUE
        assert risk.score == pytest.approx(0.9 * 0.7 + 0.1)

    @pytest.mark.parametrize("confidence", [0.0, 0.5, 1.0])
    def test_boilerplate_only_is_t1_regardless_of_confidence(self, confidence: float):
        commit = commit_with("vite.config.ts", "src/auth/login.test.ts", "src/types.ts")

        assert classify_risk(commit, confidence).tier == RiskTier.T1_BOILERPLATE

    def test_empty_commit_is_t1(self):
        assert classify_risk(commit_with(), 0.9).tier == RiskTier.T1_BOILERPLATE

    def test_mixed_boilerplate_and_core(self):
        risk = classify_risk(commit_with("src/auth/session.ts", "src/auth/session.test.ts"), 0.8)

        assert risk.tier == RiskTier.T4_NOVEL

    def test_low_confidence_downgrades_t3_to_t2(self):
        risk = classify_risk(commit_with("src/security/acl.py"), 0.1)

        assert risk.tier == RiskTier.T2_GLUE
        assert risk.explanation.endswith(DOWNGRADE_SUFFIX)

    @pytest.mark.parametrize("confidence", [0.0, 0.1, 0.29])
    def test_no_core_tier_below_low_confidence(self, confidence: float):
        risk = classify_risk(commit_with("src/auth/jwt.ts", "src/crypto/keys.ts"), confidence)

        assert risk.tier not in (RiskTier.T3_CORE, RiskTier.T4_NOVEL)

    def test_score_capped_at_one(self):
        assert classify_risk(commit_with("src/auth/jwt.ts"), 1.0).score == pytest.approx(1.0)
        assert classify_risk(commit_with("src/auth/jwt.ts"), 1.0).score <= 1.0

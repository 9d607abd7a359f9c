"""
Tests for combined AI detection.
"""

import pytest

from factories import utc
from sentinel.analysis.detector import detect_ai
from sentinel.analysis.types import CommitData, FileChange
from sentinel.models.db import DetectionMethod, RiskTier


def make_commit(**kwargs) -> CommitData:
    defaults = dict(
        sha="a" * 40,
        message="Update handler",
        author_login="alice",
        timestamp=utc(2024, 6, 1, 15),
        files=[FileChange("src/components/List.tsx", additions=20, deletions=5)],
    )
    defaults.update(kwargs)
    return CommitData(**defaults)


class TestDetectAi:
    def test_human_commit(self):
        result = detect_ai(make_commit())

        assert result.confidence == 0
        assert result.method == DetectionMethod.HEURISTIC
        assert result.risk_tier == RiskTier.T2_GLUE
        # Unmatched signals are kept for explainability
        assert {s.name for s in result.signals} == {
            "ai_coauthor",
            "pr_mentions_ai",
            "high_velocity",
            "late_night",
        }

    def test_coauthor_trailer(self):
        commit = make_commit(
            message="Add JWT refresh\n\nCo-authored-by: Claude <noreply@anthropic.com>",
            files=[FileChange("src/auth/jwt.ts", additions=40)],
        )

        result = detect_ai(commit)

        assert result.confidence == pytest.approx(0.9)
        assert result.risk_tier == RiskTier.T4_NOVEL

    def test_confidence_clamped(self):
        commit = make_commit(
            message="Big drop\n\nCo-authored-by: GitHub Copilot <copilot@github.com>",
            pr_body="Generated with Copilot and Cursor",
            timestamp=utc(2024, 6, 1, 3),
            files=[FileChange("src/app.ts", additions=1200)],
        )

        result = detect_ai(commit)

        assert result.confidence == 1.0
        assert 0 <= result.confidence <= 1

    def test_style_signal_per_file(self):
        patch = "\n".join(
            [
                "+const data = await fetch(url);",
                "+const result = await data.json();",
                "+// TODO: handle pagination for large result sets",
                "+// NOTE: the API returns results sorted by creation date",
                "+// FIXME: retry transient failures instead of throwing",
            ]
        )
        commit = make_commit(
            files=[
                FileChange("src/a.ts", additions=5, patch=patch),
                FileChange("src/b.ts", additions=5, patch=patch),
            ]
        )

        result = detect_ai(commit)

        style = [s for s in result.signals if s.name == "generic_style"]
        assert len(style) == 2
        assert style[0].detail.startswith("src/a.ts: ")
        assert result.confidence == pytest.approx(0.8)

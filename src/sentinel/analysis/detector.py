"""
Combine detection signals into a confidence score and risk classification.
"""

from sentinel.analysis.risk import classify_risk
from sentinel.analysis.signals import (
    check_ai_coauthor,
    check_code_style,
    check_pr_mentions_ai,
    check_time_of_day,
    check_velocity,
)
from sentinel.analysis.types import CommitData, DetectionResult
from sentinel.models.db import DetectionMethod

WEIGHTS = {
    "ai_coauthor": 0.9,
    "pr_mentions_ai": 0.7,
    "high_velocity": 0.6,
    "late_night": 0.3,
    "generic_style": 0.4,
}


def detect_ai(commit: CommitData) -> DetectionResult:
    """
    Run every signal over a commit.

    Confidence is the sum of matched weights, clamped to 1.0. Style is
    scored per file; each matching file contributes its own signal.
    """
    signals = [
        check_ai_coauthor(commit, WEIGHTS["ai_coauthor"]),
        check_pr_mentions_ai(commit, WEIGHTS["pr_mentions_ai"]),
        check_velocity(commit, WEIGHTS["high_velocity"]),
        check_time_of_day(commit, WEIGHTS["late_night"]),
    ]

    for file in commit.files:
        if not file.patch:
            continue
        style = check_code_style(file, WEIGHTS["generic_style"])
        if style.matched:
            style.detail = f"{file.path}: {style.detail}"
            signals.append(style)

    confidence = min(1.0, sum(s.weight for s in signals if s.matched))
    risk = classify_risk(commit, confidence)

    return DetectionResult(
        confidence=confidence,
        method=DetectionMethod.HEURISTIC,
        signals=signals,
        risk_tier=risk.tier,
        risk_score=risk.score,
        explanation=risk.explanation,
    )

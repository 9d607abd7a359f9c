"""
Risk tier classification from touched paths and AI confidence.
"""

import re

from sentinel.analysis.types import CommitData, RiskClassification
from sentinel.models.db import RiskTier

CORE_PATH_PATTERNS = [
    re.compile(r"auth", re.IGNORECASE),
    re.compile(r"payment", re.IGNORECASE),
    re.compile(r"billing", re.IGNORECASE),
    re.compile(r"security", re.IGNORECASE),
    re.compile(r"crypto", re.IGNORECASE),
    re.compile(r"password", re.IGNORECASE),
    re.compile(r"session", re.IGNORECASE),
    re.compile(r"token", re.IGNORECASE),
    re.compile(r"middleware", re.IGNORECASE),
    re.compile(r"api/.*\.(ts|js)$"),
]

BOILERPLATE_PATTERNS = [
    re.compile(r"\.config\.(ts|js|mjs|cjs)$"),
    re.compile(r"\.test\.(ts|js|tsx|jsx)$"),
    re.compile(r"\.spec\.(ts|js|tsx|jsx)$"),
    re.compile(r"types\.ts$"),
    re.compile(r"index\.ts$"),
    re.compile(r"\.d\.ts$"),
    re.compile(r"\.stories\.(ts|tsx)$"),
    re.compile(r"\.mock\.(ts|js)$"),
]

HIGH_CONFIDENCE = 0.7
LOW_CONFIDENCE = 0.3
DOWNGRADE_SUFFIX = " (low AI confidence, downgraded)"


def touches_core(path: str) -> bool:
    return any(p.search(path) for p in CORE_PATH_PATTERNS)


def is_boilerplate(path: str) -> bool:
    return any(p.search(path) for p in BOILERPLATE_PATTERNS)


def classify_risk(commit: CommitData, ai_confidence: float) -> RiskClassification:
    """
    Classify a commit into T1-T4.

    Boilerplate-only commits (including commits with no files) are T1
    regardless of confidence. Low confidence downgrades T4 and T3 by one
    tier; nothing is ever upgraded.

    Args:
        commit: Commit with its changed files
        ai_confidence: Combined detector confidence in [0, 1]

    Returns:
        RiskClassification with tier, score and explanation
    """
    paths = [f.path for f in commit.files]
    core = any(touches_core(p) for p in paths)
    only_boilerplate = all(is_boilerplate(p) for p in paths)

    if only_boilerplate:
        tier = RiskTier.T1_BOILERPLATE
        explanation = "Config, test, or type definition files only"
    elif core and ai_confidence > HIGH_CONFIDENCE:
        tier = RiskTier.T4_NOVEL
        explanation = "High-confidence AI in security-sensitive code"
    elif core:
        tier = RiskTier.T3_CORE
        explanation = "Changes to core business logic"
    else:
        tier = RiskTier.T2_GLUE
        explanation = "Standard application code"

    if ai_confidence < LOW_CONFIDENCE:
        if tier == RiskTier.T4_NOVEL:
            tier = RiskTier.T3_CORE
            explanation += DOWNGRADE_SUFFIX
        elif tier == RiskTier.T3_CORE:
            tier = RiskTier.T2_GLUE
            explanation += DOWNGRADE_SUFFIX

    blast_radius = 0.3 if core else 0.1
    score = min(1.0, ai_confidence * 0.7 + blast_radius)

    return RiskClassification(tier=tier, score=score, explanation=explanation)

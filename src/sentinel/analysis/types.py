"""
Data structures shared by the detection signals, risk classifier and analyzer.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional

from sentinel.models.db import DetectionMethod, RiskTier


@dataclass
class FileChange:
    path: str
    additions: int = 0
    deletions: int = 0
    patch: Optional[str] = None


@dataclass
class CommitData:
    """Everything the detector looks at for one commit."""

    sha: str
    message: str
    author_login: str
    timestamp: datetime
    files: list[FileChange] = field(default_factory=list)
    pr_number: Optional[int] = None
    pr_body: Optional[str] = None


@dataclass
class DetectionSignal:
    """
    One piece of evidence.

    Unmatched signals carry weight 0 and are kept for explainability.
    """

    name: str
    weight: float
    matched: bool
    detail: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if data["detail"] is None:
            del data["detail"]
        return data


@dataclass
class RiskClassification:
    tier: RiskTier
    score: float
    explanation: str


@dataclass
class DetectionResult:
    confidence: float
    method: DetectionMethod
    signals: list[DetectionSignal]
    risk_tier: RiskTier
    risk_score: float
    explanation: str

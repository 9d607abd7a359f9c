"""
Alert rule table.

Metric rules inspect an EvaluationContext and return an AlertTrigger when
they fire. Event rules (deploys, incidents) never fire from the periodic
scan; they are raised directly by the code that observes the event.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from sentinel.config import settings
from sentinel.models.db import AlertSeverity, Repo, RepoMetric


@dataclass
class EvaluationContext:
    repo: Repo
    current_metrics: Optional[RepoMetric] = None
    previous_metrics: Optional[RepoMetric] = None
    saturation_data: Optional[dict[str, Any]] = None


@dataclass
class AlertTrigger:
    title: str
    message: str
    metric_value: float
    threshold: float
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AlertRule:
    name: str
    severity: AlertSeverity
    channels: tuple[str, ...]
    evaluate: Callable[[EvaluationContext], Optional[AlertTrigger]]
    threshold: Optional[float] = None


def format_cost(hours: float, rate: Optional[int] = None) -> str:
    """Dollar cost of ``hours`` of review time, e.g. ``$12,750``."""
    rate = rate if rate is not None else settings.review_cost_per_hour
    return f"${round(hours * rate):,}"


def _current(ctx: EvaluationContext, attr: str) -> float:
    return float(getattr(ctx.current_metrics, attr, 0) or 0)


def _ai_code_high(ctx: EvaluationContext) -> Optional[AlertTrigger]:
    pct = _current(ctx, "ai_code_percentage")
    threshold = 70
    if threshold < pct <= 90:
        return AlertTrigger(
            title="AI Code Threshold Warning",
            message=(
                f"⚠️ AI code now at {pct:.1f}% of codebase. Monitor for quality "
                f"issues and review bottlenecks."
            ),
            metric_value=pct,
            threshold=threshold,
        )
    return None


def _ai_code_critical(ctx: EvaluationContext) -> Optional[AlertTrigger]:
    pct = _current(ctx, "ai_code_percentage")
    threshold = 90
    if pct > threshold:
        return AlertTrigger(
            title="AI Code Threshold Critical",
            message=(
                f"🚨 CRITICAL: AI code at {pct:.1f}%. Team may have lost manual "
                f"code-writing capability. Immediate review recommended."
            ),
            metric_value=pct,
            threshold=threshold,
        )
    return None


def _verification_tax_spike(ctx: EvaluationContext) -> Optional[AlertTrigger]:
    current = _current(ctx, "verification_tax_hours")
    previous = float(getattr(ctx.previous_metrics, "verification_tax_hours", 0) or 0)
    if previous == 0:
        return None

    threshold = previous * 1.5
    increase = (current - previous) / previous * 100
    if current > threshold:
        return AlertTrigger(
            title="Verification Tax Spike",
            message=(
                f"📊 Verification tax spiked to {current:.1f}h (up {increase:.0f}% "
                f"from last week). Review saturation may be increasing."
            ),
            metric_value=current,
            threshold=threshold,
            metadata={"previousValue": previous, "increasePercent": increase},
        )
    return None


def _verification_tax_absolute(ctx: EvaluationContext) -> Optional[AlertTrigger]:
    hours = _current(ctx, "verification_tax_hours")
    threshold = 80
    if hours > threshold:
        rate = settings.review_cost_per_hour
        return AlertTrigger(
            title="Verification Tax Critical",
            message=(
                f"🚨 Verification tax at {hours:.1f}h/week. That's "
                f"{format_cost(hours, rate)}/week ({format_cost(hours * 4, rate)}/month "
                f"@ ${rate}/hr). Consider: reducing AI usage, adding reviewers, "
                f"or automating T1 code reviews."
            ),
            metric_value=hours,
            threshold=threshold,
            metadata={"estimatedCost": hours * rate},
        )
    return None


def _review_saturation_high(ctx: EvaluationContext) -> Optional[AlertTrigger]:
    data = ctx.saturation_data or {}
    saturation = float(data.get("saturation") or 0)
    threshold = 0.8
    if saturation > threshold:
        return AlertTrigger(
            title="Review Saturation High",
            message=(
                f"⚠️ Review saturation at {saturation * 100:.0f}%. Reviewers are "
                f"approaching capacity limits. PRs may start queuing."
            ),
            metric_value=saturation,
            threshold=threshold,
            metadata={"activeReviewers": data.get("active_reviewers")},
        )
    return None


def _event_driven(ctx: EvaluationContext) -> Optional[AlertTrigger]:
    return None


AI_CODE_HIGH = AlertRule(
    "ai_code_high", AlertSeverity.WARNING, ("slack",), _ai_code_high, 70
)
AI_CODE_CRITICAL = AlertRule(
    "ai_code_critical", AlertSeverity.CRITICAL, ("slack", "email"), _ai_code_critical, 90
)
VERIFICATION_TAX_SPIKE = AlertRule(
    "verification_tax_spike", AlertSeverity.WARNING, ("slack",), _verification_tax_spike
)
VERIFICATION_TAX_ABSOLUTE = AlertRule(
    "verification_tax_absolute",
    AlertSeverity.CRITICAL,
    ("slack", "email"),
    _verification_tax_absolute,
    80,
)
REVIEW_SATURATION_HIGH = AlertRule(
    "review_saturation_high",
    AlertSeverity.WARNING,
    ("slack",),
    _review_saturation_high,
    0.8,
)
HIGH_RISK_DEPLOYED = AlertRule(
    "high_risk_deployed",
    AlertSeverity.CRITICAL,
    ("slack", "email", "pagerduty"),
    _event_driven,
    1,
)
INCIDENT_AI_ATTRIBUTED = AlertRule(
    "incident_ai_attributed",
    AlertSeverity.CRITICAL,
    ("slack", "email", "pagerduty"),
    _event_driven,
    1,
)

METRICS_RULES = [
    AI_CODE_HIGH,
    AI_CODE_CRITICAL,
    VERIFICATION_TAX_SPIKE,
    VERIFICATION_TAX_ABSOLUTE,
    REVIEW_SATURATION_HIGH,
]

ALL_RULES = METRICS_RULES + [HIGH_RISK_DEPLOYED, INCIDENT_AI_ATTRIBUTED]

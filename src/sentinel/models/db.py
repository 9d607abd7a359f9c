"""
SQLAlchemy database models for Sentinel.

These models represent the database schema for tracked repositories, the
source-control events observed for them, per-file AI attribution, daily
metric rollups, alerts, and the job queue/lock tables that coordinate the
background pipeline.
"""

import datetime as dt
import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from sentinel.utils.clock import utcnow


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


def _enum_column(enum_cls: type[enum.Enum]) -> Enum:
    return Enum(
        enum_cls,
        native_enum=False,
        values_callable=lambda x: [e.value for e in x],
    )


class EventType(str, enum.Enum):
    """Kind of source-control activity recorded as a CodeEvent."""

    COMMIT = "commit"
    PR_OPENED = "pr_opened"
    PR_REVIEWED = "pr_reviewed"
    PR_MERGED = "pr_merged"
    DEPLOY = "deploy"
    INCIDENT = "incident"


class DetectionMethod(str, enum.Enum):
    """How an attribution's AI confidence was produced."""

    HEURISTIC = "heuristic"
    ML_MODEL = "ml_model"
    MANUAL_OVERRIDE = "manual_override"


class RiskTier(str, enum.Enum):
    """Ordinal risk classification, T1 (lowest) to T4 (highest)."""

    T1_BOILERPLATE = "T1_boilerplate"
    T2_GLUE = "T2_glue"
    T3_CORE = "T3_core"
    T4_NOVEL = "T4_novel"


class TimePeriod(str, enum.Enum):
    """Rollup period for repository metrics."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class AlertSeverity(str, enum.Enum):
    """Alert severity levels."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class IncidentSeverity(str, enum.Enum):
    SEV1 = "sev1"
    SEV2 = "sev2"
    SEV3 = "sev3"
    SEV4 = "sev4"


class IncidentStatus(str, enum.Enum):
    INVESTIGATING = "investigating"
    IDENTIFIED = "identified"
    RESOLVED = "resolved"


class JobStatus(str, enum.Enum):
    """Lifecycle state of a queued job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Repo(Base):
    """A source-control repository tracked by Sentinel."""

    __tablename__ = "repositories"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    installation_id: Mapped[int] = mapped_column(
        BigInteger, nullable=False, index=True
    )  # GitHub App installation
    github_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    owner: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    default_branch: Mapped[str] = mapped_column(
        String(255), nullable=False, server_default="main"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true", index=True
    )

    # Reporting timezone for calendar-day metric windows
    timezone: Mapped[str] = mapped_column(
        String(64), nullable=False, default="America/Los_Angeles"
    )
    settings: Mapped[dict] = mapped_column(
        JSONB, nullable=False, default=dict, server_default="{}"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "installation_id", "github_id", name="uq_repositories_installation_github"
        ),
    )

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def __repr__(self) -> str:
        return f"<Repo(id={self.id}, full_name={self.full_name!r})>"


class CodeEvent(Base):
    """One observed unit of source-control activity. Immutable once written."""

    __tablename__ = "code_events"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    repo_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
    )
    event_type: Mapped[EventType] = mapped_column(
        _enum_column(EventType), nullable=False
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    commit_sha: Mapped[Optional[str]] = mapped_column(
        String(40), nullable=True, index=True
    )
    pr_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    author_login: Mapped[str] = mapped_column(String(255), nullable=False)
    event_metadata: Mapped[dict] = mapped_column(
        "metadata", JSONB, nullable=False, default=dict, server_default="{}"
    )  # commit message, ref, PR title/body, environment, ...

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_code_events_repo_timestamp", "repo_id", "timestamp"),
        Index(
            "ix_code_events_repo_type_timestamp", "repo_id", "event_type", "timestamp"
        ),
    )

    repo: Mapped["Repo"] = relationship()

    def __repr__(self) -> str:
        return (
            f"<CodeEvent(id={self.id}, type={self.event_type!r}, "
            f"sha={self.commit_sha!r}, pr={self.pr_number})>"
        )


class CodeAttribution(Base):
    """Per-file AI attribution and risk classification for a commit."""

    __tablename__ = "code_attribution"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    repo_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
    )
    commit_sha: Mapped[str] = mapped_column(String(40), nullable=False)
    file_path: Mapped[str] = mapped_column(Text, nullable=False)

    ai_confidence: Mapped[float] = mapped_column(Float, nullable=False)
    detection_method: Mapped[DetectionMethod] = mapped_column(
        _enum_column(DetectionMethod), nullable=False
    )
    # {"signals": [...]} plus survival flags merged in later
    detection_signals: Mapped[dict] = mapped_column(
        JSONB, nullable=False, default=dict, server_default="{}"
    )

    risk_tier: Mapped[RiskTier] = mapped_column(_enum_column(RiskTier), nullable=False)
    risk_score: Mapped[float] = mapped_column(Float, nullable=False)
    risk_explanation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    lines_added: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lines_deleted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    analyzed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("commit_sha", "file_path", name="uq_code_attribution_commit_file"),
        Index("ix_code_attribution_repo_confidence", "repo_id", "ai_confidence"),
        Index("ix_code_attribution_repo_analyzed", "repo_id", "analyzed_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<CodeAttribution(sha={self.commit_sha!r}, path={self.file_path!r}, "
            f"confidence={self.ai_confidence}, tier={self.risk_tier!r})>"
        )


class RepoMetric(Base):
    """Aggregated per-repository counters for one period."""

    __tablename__ = "repo_metrics"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    repo_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    period: Mapped[TimePeriod] = mapped_column(_enum_column(TimePeriod), nullable=False)

    total_commits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ai_commits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    human_commits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ai_code_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    avg_review_time_mins: Mapped[float] = mapped_column(
        Float, nullable=False, default=0
    )
    high_risk_file_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    incident_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    verification_tax_hours: Mapped[float] = mapped_column(
        Float, nullable=False, default=0
    )

    computed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("repo_id", "date", "period", name="uq_repo_metrics_repo_date_period"),
    )

    def __repr__(self) -> str:
        return (
            f"<RepoMetric(repo_id={self.repo_id}, date={self.date}, "
            f"period={self.period!r})>"
        )


class Incident(Base):
    """Production incident, optionally attributed to AI-authored code."""

    __tablename__ = "incidents"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    repo_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
    )
    external_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[IncidentSeverity] = mapped_column(
        _enum_column(IncidentSeverity), nullable=False
    )
    status: Mapped[IncidentStatus] = mapped_column(
        _enum_column(IncidentStatus),
        nullable=False,
        default=IncidentStatus.INVESTIGATING,
    )
    detected_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    suspected_commit_sha: Mapped[Optional[str]] = mapped_column(
        String(40), nullable=True
    )
    affected_files: Mapped[list] = mapped_column(
        JSONB, nullable=False, default=list, server_default="[]"
    )
    ai_attributed: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    root_cause: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    incident_metadata: Mapped[dict] = mapped_column(
        "metadata", JSONB, nullable=False, default=dict, server_default="{}"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (Index("ix_incidents_repo_detected", "repo_id", "detected_at"),)


class Alert(Base):
    """A triggered alert rule instance. Retained as an audit trail."""

    __tablename__ = "alerts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    repo_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
    )
    rule_name: Mapped[str] = mapped_column(String(100), nullable=False)
    severity: Mapped[AlertSeverity] = mapped_column(
        _enum_column(AlertSeverity), nullable=False
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    metric_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    threshold: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    channels: Mapped[list] = mapped_column(
        JSONB, nullable=False, default=list, server_default="[]"
    )  # ["slack", "email", "pagerduty"]
    alert_metadata: Mapped[dict] = mapped_column(
        "metadata", JSONB, nullable=False, default=dict, server_default="{}"
    )

    triggered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    sent_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )  # Dispatch attempted, not necessarily delivered everywhere
    delivery_status: Mapped[dict] = mapped_column(
        JSONB, nullable=False, default=dict, server_default="{}"
    )  # channel -> "sent" | "skipped" | "failed: <reason>"
    acknowledged_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    acknowledged_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_alerts_repo_rule_triggered", "repo_id", "rule_name", "triggered_at"),
    )

    repo: Mapped["Repo"] = relationship()

    def __repr__(self) -> str:
        return (
            f"<Alert(id={self.id}, rule={self.rule_name!r}, "
            f"severity={self.severity!r})>"
        )


class JobLock(Base):
    """Advisory TTL'd lock row, owned by whoever holds the token."""

    __tablename__ = "job_locks"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    token: Mapped[str] = mapped_column(String(64), nullable=False)
    acquired_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<JobLock(key={self.key!r}, expires_at={self.expires_at})>"


class Job(Base):
    """
    Durable queued job.

    The primary key is the caller-assigned idempotency key (webhook delivery
    id, ``analyze:<event>:<sha>``, ``notify-<alert>``...), so enqueueing the
    same work twice yields a single row.
    """

    __tablename__ = "jobs"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    queue: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    payload: Mapped[dict] = mapped_column(
        JSONB, nullable=False, default=dict, server_default="{}"
    )

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=JobStatus.PENDING.value
    )
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    backoff_seconds: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    run_after: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    result: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("ix_jobs_queue_status_run_after", "queue", "status", "run_after"),
    )

    def __repr__(self) -> str:
        return (
            f"<Job(id={self.id!r}, queue={self.queue!r}, name={self.name!r}, "
            f"status={self.status!r}, attempts={self.attempts})>"
        )


class ScheduledTrigger(Base):
    """Registration of a periodic trigger; one row per stable trigger name."""

    __tablename__ = "scheduled_triggers"

    name: Mapped[str] = mapped_column(String(100), primary_key=True)
    queue: Mapped[str] = mapped_column(String(50), nullable=False)
    last_fired_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    def __repr__(self) -> str:
        return f"<ScheduledTrigger(name={self.name!r}, last_fired_at={self.last_fired_at})>"

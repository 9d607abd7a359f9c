"""
API schemas for Sentinel.

Pydantic models for request/response validation.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from sentinel.models.db import AlertSeverity, IncidentSeverity

# ===== Webhooks =====


class WebhookResponse(BaseModel):
    """Response for an accepted or skipped delivery."""

    ok: bool = True
    skipped: Optional[str] = None
    queued: Optional[str] = None


# ===== Admin =====


class QueuedJobResponse(BaseModel):
    """Response for a manually queued metrics job."""

    ok: bool = True
    job_id: str = Field(serialization_alias="jobId")
    queued: int = 1


class IncidentCreate(BaseModel):
    """Request schema for recording an incident."""

    repo_id: UUID = Field(alias="repoId")
    title: str = Field(min_length=1)
    severity: IncidentSeverity
    detected_at: Optional[datetime] = Field(default=None, alias="detectedAt")
    external_id: Optional[str] = Field(default=None, alias="externalId")
    suspected_commit_sha: Optional[str] = Field(default=None, alias="suspectedCommitSha")
    affected_files: list[str] = Field(default_factory=list, alias="affectedFiles")
    ai_attributed: Optional[bool] = Field(default=None, alias="aiAttributed")
    root_cause: Optional[str] = Field(default=None, alias="rootCause")

    class Config:
        populate_by_name = True


class IncidentResponse(BaseModel):
    """Response schema for Incident."""

    id: UUID
    repo_id: UUID
    title: str
    severity: IncidentSeverity
    detected_at: datetime
    ai_attributed: Optional[bool] = None

    class Config:
        from_attributes = True


# ===== Alerts =====


class AlertResponse(BaseModel):
    """Response schema for Alert."""

    id: UUID
    repo_id: UUID
    rule_name: str
    severity: AlertSeverity
    title: str
    message: str
    metric_value: Optional[float] = None
    threshold: Optional[float] = None
    channels: list[str] = Field(default_factory=list)
    delivery_status: dict[str, str] = Field(default_factory=dict)
    triggered_at: datetime
    sent_at: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None

    class Config:
        from_attributes = True


class AcknowledgeResponse(BaseModel):
    success: bool = True
    alert: AlertResponse

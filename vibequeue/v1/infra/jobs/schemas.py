"""
AI queue Pydantic schemas.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from vibequeue.v1.infra.jobs.models import JobStatus


class HandlerResult(BaseModel):
    """Value returned by a job handler."""

    raw_response: str = Field(..., description="Raw text returned by the model")
    output_id: int | None = Field(
        default=None, description="Id of the record the handler updated"
    )


class JobEnqueueRequest(BaseModel):
    """Schema for enqueueing jobs via API."""

    type: str = Field(..., min_length=1, description="Job type")
    model: str = Field(..., min_length=1, description="Generation model identifier")
    prompt: str = Field(..., min_length=1, description="Prompt text")


class JobResponse(BaseModel):
    """Schema for job API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    model: str
    prompt: str
    status: JobStatus
    attempts: int
    response: str | None = None
    error: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime


class JobStatusItem(BaseModel):
    """Compact status row for UI polling."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    status: JobStatus
    error: str | None = None


class ProcessJobResponse(BaseModel):
    """Result of a manual processing request."""

    id: int
    accepted: bool
    reason: str | None = Field(
        default=None, description="Why the request was rejected"
    )
    status: JobStatus | None = Field(
        default=None, description="Status reported to the caller on acceptance"
    )


class QueueSummary(BaseModel):
    """Queue summary for health reporting."""

    by_status: dict[str, int]
    processor_running: bool
    autoprocess_models: list[str]
    max_attempts: int

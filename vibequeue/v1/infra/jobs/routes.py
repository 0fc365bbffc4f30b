"""
AI queue API endpoints.

Provides enqueueing, status polling and manual processing of queue jobs.
"""

from typing import Any

from fastapi import APIRouter, Depends, Path, Query, Request, status

from vibequeue.config.logging import get_logger
from vibequeue.v1.core.exceptions import (
    NotFoundError,
    PreconditionError,
    create_success_response,
)
from vibequeue.v1.infra.jobs.schemas import JobEnqueueRequest, JobResponse
from vibequeue.v1.infra.jobs.service import JobService

logger = get_logger(__name__)
router = APIRouter(prefix="/ai-queue", tags=["ai-queue"])

# Upper bound of the INTEGER id column
MAX_JOB_ID = 2**31 - 1


def get_job_service(request: Request) -> JobService:
    """Job service created by the application lifespan."""
    return request.app.state.job_service


JobServiceDep = Depends(get_job_service)


def parse_ids(raw: str) -> list[int]:
    """Parse a comma-separated id list, dropping non-numeric and out-of-range ids."""
    ids = []
    for part in raw.split(","):
        try:
            job_id = int(part.strip())
        except ValueError:
            continue
        if 0 < job_id <= MAX_JOB_ID:
            ids.append(job_id)
    return ids


@router.get("/status", response_model=dict)
async def get_job_statuses(
    ids: str = Query(..., min_length=1, description="Comma-separated job ids"),
    job_service: JobService = JobServiceDep,
) -> dict[str, Any]:
    """Batch status check for UI polling."""

    job_ids = parse_ids(ids)
    if not job_ids:
        return create_success_response(data=[])

    statuses = await job_service.get_statuses(job_ids)
    return create_success_response(data=[s.model_dump(mode="json") for s in statuses])


@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED)
async def enqueue_job(
    job_request: JobEnqueueRequest,
    job_service: JobService = JobServiceDep,
) -> dict[str, Any]:
    """Enqueue a new AI generation job."""

    job = await job_service.enqueue_job(
        job_request.type, job_request.model, job_request.prompt
    )

    logger.info("Job enqueued via API", job_id=job.id, job_type=job.type)

    return create_success_response(
        data=JobResponse.model_validate(job).model_dump(mode="json")
    )


@router.get("/{job_id}", response_model=dict)
async def get_job(
    job_id: int = Path(..., gt=0, le=MAX_JOB_ID),
    job_service: JobService = JobServiceDep,
) -> dict[str, Any]:
    """Get a specific job by ID."""

    job = await job_service.get_job(job_id)
    if not job:
        raise NotFoundError("Job not found", details={"job_id": job_id})

    return create_success_response(
        data=JobResponse.model_validate(job).model_dump(mode="json")
    )


@router.post(
    "/process/{job_id}", response_model=dict, status_code=status.HTTP_202_ACCEPTED
)
async def process_job(
    job_id: int = Path(..., gt=0, le=MAX_JOB_ID),
    job_service: JobService = JobServiceDep,
) -> dict[str, Any]:
    """Manually trigger processing of a specific job."""

    handle = await job_service.process_job_by_id(job_id)
    if not handle.accepted:
        raise PreconditionError(
            handle.reason or "Job cannot be processed",
            status_code=handle.status_code or status.HTTP_409_CONFLICT,
            details={"job_id": job_id},
        )

    logger.info("Job processing triggered via API", job_id=job_id)

    return create_success_response(data=handle.to_response().model_dump(mode="json"))

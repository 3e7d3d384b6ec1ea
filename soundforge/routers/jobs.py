"""
Job endpoints: listing, status checks, CDN storage and housekeeping.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from soundforge.models.job import JobKind
from soundforge.routers.deps import get_job_manager, get_owner_id
from soundforge.schemas.job import (
    FavoriteResponse,
    JobListResponse,
    JobResponse,
    JobStatusResponse,
    JobTitleUpdate,
    MigrationResponse,
)
from soundforge.services.job_manager import JobManager


router = APIRouter(prefix='/jobs', tags=['jobs'])


@router.get('', response_model=JobListResponse)
async def list_jobs(
    kind: Optional[JobKind] = Query(default=None),
    favorites_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    owner_id: str = Depends(get_owner_id),
    manager: JobManager = Depends(get_job_manager),
) -> JobListResponse:
    """
    List the caller's jobs with pagination.

    Returns jobs ordered by creation time (newest first).
    """
    jobs, total = await manager.list_jobs(owner_id, kind, favorites_only, limit, offset)
    return JobListResponse(
        jobs=[JobResponse.model_validate(job) for job in jobs],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get('/active', response_model=List[JobResponse])
async def list_active_jobs(
    kind: Optional[JobKind] = Query(default=None),
    owner_id: str = Depends(get_owner_id),
    manager: JobManager = Depends(get_job_manager),
) -> List[JobResponse]:
    """Jobs that are still pending or processing, oldest first."""
    jobs = await manager.list_active_jobs(owner_id, kind)
    return [JobResponse.model_validate(job) for job in jobs]


@router.get('/{job_id}', response_model=JobResponse)
async def get_job(
    job_id: str,
    owner_id: str = Depends(get_owner_id),
    manager: JobManager = Depends(get_job_manager),
) -> JobResponse:
    """Get details for a specific job."""
    job = await manager.get_job(owner_id, job_id)
    return JobResponse.model_validate(job)


@router.post('/{job_id}/status', response_model=JobStatusResponse)
async def check_job_status(
    job_id: str,
    owner_id: str = Depends(get_owner_id),
    manager: JobManager = Depends(get_job_manager),
) -> JobStatusResponse:
    """
    Check a job against its provider and record the result.

    Terminal jobs are answered from the database. A 503 means the provider
    could not be reached; the job is unchanged and the check can be retried.
    """
    check = await manager.check_job_status(owner_id, job_id)
    job = check.job
    return JobStatusResponse(
        id=job.id,
        status=job.status,
        progress=job.progress,
        output_url=job.output_url,
        output_stored=job.output_stored,
        error=job.error_message,
        logs=check.logs,
        storage=check.migration.outcome.value if check.migration else None,
    )


@router.post('/{job_id}/migrate', response_model=MigrationResponse)
async def migrate_job_output(
    job_id: str,
    owner_id: str = Depends(get_owner_id),
    manager: JobManager = Depends(get_job_manager),
) -> MigrationResponse:
    """Upload a completed job's output to the caller's CDN storage."""
    job = await manager.migrate_to_durable(owner_id, job_id)
    return MigrationResponse(id=job.id, output_url=job.output_url, output_stored=job.output_stored)


@router.post('/{job_id}/favorite', response_model=FavoriteResponse)
async def toggle_favorite(
    job_id: str,
    owner_id: str = Depends(get_owner_id),
    manager: JobManager = Depends(get_job_manager),
) -> FavoriteResponse:
    job = await manager.toggle_favorite(owner_id, job_id)
    return FavoriteResponse(id=job.id, is_favorite=job.is_favorite)


@router.patch('/{job_id}', response_model=JobResponse)
async def rename_job(
    job_id: str,
    update: JobTitleUpdate,
    owner_id: str = Depends(get_owner_id),
    manager: JobManager = Depends(get_job_manager),
) -> JobResponse:
    job = await manager.rename_job(owner_id, job_id, update.title)
    return JobResponse.model_validate(job)


@router.delete('/{job_id}', status_code=204)
async def delete_job(
    job_id: str,
    owner_id: str = Depends(get_owner_id),
    manager: JobManager = Depends(get_job_manager),
):
    """
    Delete a job record.

    Only the local record goes away; the provider-side job is not cancelled.
    """
    await manager.delete_job(owner_id, job_id)

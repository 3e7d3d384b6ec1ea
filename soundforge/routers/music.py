"""
Music generation endpoints.
"""
from fastapi import APIRouter, Depends

from soundforge.models.job import JobKind
from soundforge.routers.deps import get_job_manager, get_owner_id
from soundforge.schemas.job import JobResponse, MusicGenerationCreate
from soundforge.services.job_manager import JobManager


router = APIRouter(prefix='/music', tags=['music'])


@router.post('/generations', response_model=JobResponse, status_code=201)
async def create_generation(
    data: MusicGenerationCreate,
    owner_id: str = Depends(get_owner_id),
    manager: JobManager = Depends(get_job_manager),
) -> JobResponse:
    """
    Submit a music generation.

    Queue-based providers return immediately with a processing job to poll.
    MiniMax v2.5 answers synchronously, so its job comes back completed or
    failed.
    """
    job = await manager.submit_job(
        owner_id,
        JobKind.music_generation,
        data.provider,
        data.provider_params(),
        title=data.title,
    )
    return JobResponse.model_validate(job)

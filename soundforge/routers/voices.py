"""
Voice cloning and conversion endpoints.
"""
from fastapi import APIRouter, Depends

from soundforge.models.job import JobKind
from soundforge.providers import AMPHION_SINGERS
from soundforge.routers.deps import get_job_manager, get_owner_id
from soundforge.schemas.job import JobResponse
from soundforge.schemas.voice import (
    SingerCategory,
    SingerListResponse,
    VoiceCloneCreate,
    VoiceConversionCreate,
)
from soundforge.services.job_manager import JobManager


router = APIRouter(prefix='/voices', tags=['voices'])


@router.get('/singers', response_model=SingerListResponse)
async def list_singers() -> SingerListResponse:
    """Preset singers for Amphion SVC conversions."""
    return SingerListResponse(
        categories=[
            SingerCategory(category=category, singers=singers)
            for category, singers in AMPHION_SINGERS.items()
        ]
    )


@router.post('/clones', response_model=JobResponse, status_code=201)
async def create_voice_clone(
    data: VoiceCloneCreate,
    owner_id: str = Depends(get_owner_id),
    manager: JobManager = Depends(get_job_manager),
) -> JobResponse:
    """Submit a voice clone from a reference recording."""
    job = await manager.submit_job(
        owner_id,
        JobKind.voice_clone,
        data.provider,
        data.provider_params(),
        title=data.name,
    )
    return JobResponse.model_validate(job)


@router.post('/conversions', response_model=JobResponse, status_code=201)
async def create_voice_conversion(
    data: VoiceConversionCreate,
    owner_id: str = Depends(get_owner_id),
    manager: JobManager = Depends(get_job_manager),
) -> JobResponse:
    """
    Convert the vocals of one of the caller's completed tracks.

    Raises:
        404: Source track not found
        422: Source track not completed, or provider-specific input missing
    """
    job = await manager.submit_job(
        owner_id,
        JobKind.voice_conversion,
        data.provider,
        data.provider_params(),
        title=data.title,
    )
    return JobResponse.model_validate(job)

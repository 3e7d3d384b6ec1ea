"""
Credential endpoints (bring your own key).
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from soundforge.database import get_db
from soundforge.models.credential import CredentialService
from soundforge.routers.deps import get_owner_id
from soundforge.schemas.credential import CredentialStatusResponse, CredentialUpdate
from soundforge.services.credentials import AccessGate, CredentialResolver


router = APIRouter(prefix='/credentials', tags=['credentials'])


@router.get('', response_model=CredentialStatusResponse)
async def get_credential_status(
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
) -> CredentialStatusResponse:
    """Report which services have a key and whether the user may submit jobs."""
    statuses = await CredentialResolver(db).list_statuses(owner_id)
    return CredentialStatusResponse(
        services=statuses,
        platform_access=await AccessGate(db).may_submit(owner_id),
    )


@router.put('/{service}', status_code=204)
async def set_credential(
    service: CredentialService,
    data: CredentialUpdate,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
):
    await CredentialResolver(db).set_credential(
        owner_id,
        service,
        data.api_key,
        storage_zone=data.storage_zone,
        pull_zone=data.pull_zone,
    )


@router.delete('/{service}', status_code=204)
async def delete_credential(
    service: CredentialService,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
):
    if not await CredentialResolver(db).delete_credential(owner_id, service):
        raise HTTPException(status_code=404, detail=f'No {service.value} credential stored')

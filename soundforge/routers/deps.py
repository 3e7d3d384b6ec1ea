"""
Shared FastAPI dependencies.
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from soundforge.database import get_db
from soundforge.providers import ProviderRegistry, get_provider_registry
from soundforge.services.job_manager import JobManager
from soundforge.services.migrator import DurableStorageMigrator, get_migrator


async def get_owner_id(x_user_id: Optional[str] = Header(None)) -> str:
    """
    The authenticated user id, set by the auth layer in front of the API.

    Trusted as-is; requests without it are rejected.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail='Missing X-User-Id header')
    return x_user_id.strip()


def get_job_manager(
    db: AsyncSession = Depends(get_db),
    registry: ProviderRegistry = Depends(get_provider_registry),
    migrator: DurableStorageMigrator = Depends(get_migrator),
) -> JobManager:
    return JobManager(db, registry, migrator)

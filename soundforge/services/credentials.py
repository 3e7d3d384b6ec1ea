"""
Per-user provider credentials and the platform access gate.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from soundforge.config import PLATFORM_ACCESS_REQUIRED
from soundforge.errors import ValidationError
from soundforge.models.credential import CredentialService, PlatformAccess, ProviderCredential

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CdnSettings:
    """Bunny.net storage settings for one user."""
    api_key: str
    storage_zone: str
    pull_zone: str


class CredentialResolver:
    """
    Looks up the keys a user brought for each external service.

    Returns None when a key is absent; callers decide whether that is an error.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get(self, owner_id: str, service: CredentialService) -> Optional[ProviderCredential]:
        result = await self._session.execute(
            select(ProviderCredential).where(
                ProviderCredential.owner_id == owner_id,
                ProviderCredential.service == CredentialService(service).value,
            )
        )
        return result.scalar_one_or_none()

    async def get_credentials(self, owner_id: str, service: CredentialService) -> Optional[str]:
        credential = await self._get(owner_id, service)
        if not credential or not credential.api_key:
            return None
        return credential.api_key

    async def get_cdn_settings(self, owner_id: str) -> Optional[CdnSettings]:
        credential = await self._get(owner_id, CredentialService.bunny)
        if not credential or not credential.api_key or not credential.storage_zone or not credential.pull_zone:
            return None
        return CdnSettings(
            api_key=credential.api_key,
            storage_zone=credential.storage_zone,
            pull_zone=credential.pull_zone,
        )

    async def set_credential(
        self,
        owner_id: str,
        service: CredentialService,
        api_key: str,
        storage_zone: Optional[str] = None,
        pull_zone: Optional[str] = None,
    ) -> ProviderCredential:
        """Create or replace the user's key for a service."""
        service = CredentialService(service)
        if service == CredentialService.bunny and (not storage_zone or not pull_zone):
            raise ValidationError('Bunny.net needs a storage zone and a pull zone')

        credential = await self._get(owner_id, service)
        if credential is None:
            credential = ProviderCredential(owner_id=owner_id, service=service.value, api_key=api_key)
            self._session.add(credential)
        credential.api_key = api_key
        credential.storage_zone = storage_zone if service == CredentialService.bunny else None
        credential.pull_zone = pull_zone if service == CredentialService.bunny else None

        await self._session.commit()
        logger.info('Stored %s credential for user %s', service.value, owner_id)
        return credential

    async def delete_credential(self, owner_id: str, service: CredentialService) -> bool:
        result = await self._session.execute(
            delete(ProviderCredential).where(
                ProviderCredential.owner_id == owner_id,
                ProviderCredential.service == CredentialService(service).value,
            )
        )
        await self._session.commit()
        return result.rowcount > 0

    async def list_statuses(self, owner_id: str) -> Dict[str, bool]:
        """Which services the user has a usable key for."""
        result = await self._session.execute(
            select(ProviderCredential).where(ProviderCredential.owner_id == owner_id)
        )
        stored = {c.service: c for c in result.scalars().all()}
        statuses = {}
        for service in CredentialService:
            credential = stored.get(service.value)
            has_key = bool(credential and credential.api_key)
            if service == CredentialService.bunny:
                has_key = has_key and bool(credential.storage_zone and credential.pull_zone)
            statuses[service.value] = has_key
        return statuses


class AccessGate:
    """Answers "may this user submit jobs" from grants written by billing."""

    def __init__(self, session: AsyncSession, required: bool = PLATFORM_ACCESS_REQUIRED):
        self._session = session
        self._required = required

    async def may_submit(self, owner_id: str) -> bool:
        if not self._required:
            return True
        return await self.has_access(owner_id)

    async def has_access(self, owner_id: str) -> bool:
        result = await self._session.execute(
            select(PlatformAccess.owner_id).where(PlatformAccess.owner_id == owner_id)
        )
        return result.scalar_one_or_none() is not None

    async def grant(self, owner_id: str):
        if await self.has_access(owner_id):
            return
        self._session.add(PlatformAccess(owner_id=owner_id))
        await self._session.commit()

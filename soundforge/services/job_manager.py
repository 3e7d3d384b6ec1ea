"""
Job lifecycle: submit -> check status -> reconcile -> durable storage.

Jobs run entirely on provider infrastructure. This module only records what
providers report, driven by client status checks:

    pending -> processing -> completed | failed

Terminal states are sticky. Once a row is completed or failed, status checks
return the stored record and never call the provider again.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from soundforge.errors import (
    AccessDeniedError,
    AlreadyStoredError,
    CredentialError,
    NotConfiguredError,
    NotFoundError,
    TransientError,
    ValidationError,
)
from soundforge.models.job import Job, JobKind, JobStatus, Provider
from soundforge.providers import ProviderAdapter, ProviderRegistry
from soundforge.providers.base import ProviderState, ProviderStatus, SubmitResult
from soundforge.services.credentials import AccessGate, CredentialResolver
from soundforge.services.job_store import JobStore
from soundforge.services.migrator import DurableStorageMigrator, MigrationResult

logger = logging.getLogger(__name__)

DEFAULT_ERRORS = {
    JobKind.music_generation.value: 'Generation failed',
    JobKind.voice_clone.value: 'Voice cloning failed',
    JobKind.voice_conversion.value: 'Conversion failed',
}


@dataclass
class StatusCheck:
    """Outcome of one status check."""
    job: Job
    logs: List[str] = field(default_factory=list)
    migration: Optional[MigrationResult] = None


def default_title(kind: JobKind, params: Dict[str, Any]) -> Optional[str]:
    if kind == JobKind.voice_clone:
        return params.get('name')
    text = (params.get('prompt') or '').strip()
    if not text:
        lines = [line.strip() for line in (params.get('lyrics') or '').splitlines()]
        # skip section markers like [verse]
        text = next((line for line in lines if line and not line.startswith('[')), '')
    return text[:80] or None


class JobManager:
    """
    Orchestrates provider-backed jobs for one request.

    Every operation is scoped to the calling owner; a job id belonging to
    another user behaves exactly like one that does not exist.
    """

    def __init__(
        self,
        session: AsyncSession,
        registry: ProviderRegistry,
        migrator: DurableStorageMigrator,
        access_gate: Optional[AccessGate] = None,
    ):
        self._store = JobStore(session)
        self._credentials = CredentialResolver(session)
        self._gate = access_gate or AccessGate(session)
        self._registry = registry
        self._migrator = migrator

    async def submit_job(
        self,
        owner_id: str,
        kind: JobKind,
        provider: Provider,
        params: Dict[str, Any],
        title: Optional[str] = None,
    ) -> Job:
        """
        Validate, send to the provider and record a new job.

        Nothing is persisted when validation, the access gate or credential
        lookup fails. Synchronous providers finish inside this call.

        Raises:
            AccessDeniedError: User may not submit jobs
            ValidationError: Input rejected (before any network call)
            NotFoundError: Conversion source does not exist for this user
            CredentialError: No key stored for the provider's service
            TransientError: Provider unreachable; nothing recorded
        """
        if not await self._gate.may_submit(owner_id):
            raise AccessDeniedError('Platform access is required to generate audio')

        adapter = self._registry.get(kind, provider)
        kind = adapter.kind
        params = {k: v for k, v in params.items() if v is not None}

        source = None
        if kind == JobKind.voice_conversion:
            source = await self._resolve_source(owner_id, params)
        adapter.validate(params)

        credentials = await self._resolve_credentials(owner_id, adapter)
        result = await adapter.submit(credentials, params)

        params.pop('source_job_id', None)
        job = Job(
            owner_id=owner_id,
            kind=kind.value,
            provider=adapter.provider.value,
            provider_job_id=result.provider_job_id,
            status=JobStatus.pending.value if result.state == ProviderState.pending else JobStatus.processing.value,
            progress=0,
            input_parameters=params,
            title=title or self._title_for(kind, params, source),
            source_job_id=source.id if source else None,
        )
        await self._store.add(job)
        logger.info('Job %s submitted to %s (%s)', job.id, adapter.name, result.provider_job_id)

        if result.state.is_terminal:
            await self._apply_status(job, self._status_from_submit(result))
        return job

    async def check_job_status(self, owner_id: str, job_id: str) -> StatusCheck:
        """
        Reconcile one job with its provider.

        Terminal jobs are returned as stored without contacting the provider.
        A TransientError leaves the row untouched so the next poll can retry.
        """
        job = await self._get_owned(owner_id, job_id)
        if job.is_terminal:
            return StatusCheck(job=job)

        adapter = self._registry.get(job.kind, job.provider)
        credentials = await self._resolve_credentials(owner_id, adapter)
        status = await adapter.check_status(credentials, job.provider_job_id)

        migration = await self._apply_status(job, status)
        return StatusCheck(job=job, logs=status.logs, migration=migration)

    async def migrate_to_durable(self, owner_id: str, job_id: str) -> Job:
        """
        Copy a completed job's output to the CDN on the owner's request.

        Raises:
            NotFoundError: Job missing or owned by someone else
            ValidationError: Job has not completed
            AlreadyStoredError: Output already lives on the CDN
            NotConfiguredError: No CDN settings stored
            TransientError: Upload failed; the ephemeral URL is kept
        """
        job = await self._get_owned(owner_id, job_id)
        if job.status != JobStatus.completed.value or not job.output_url:
            raise ValidationError('Job is not completed')
        if job.output_stored:
            raise AlreadyStoredError('Already stored on CDN')

        settings = await self._credentials.get_cdn_settings(owner_id)
        if settings is None:
            raise NotConfiguredError('Bunny.net settings not configured')

        result = await self._migrator.migrate(settings, job, job.output_url)
        if not result.stored:
            raise TransientError(result.error or 'Failed to upload to CDN')

        await self._store.mark_stored(job, result.output_url)
        logger.info('Job %s output stored at %s', job.id, job.output_url)
        return job

    async def get_job(self, owner_id: str, job_id: str) -> Job:
        return await self._get_owned(owner_id, job_id)

    async def list_jobs(
        self,
        owner_id: str,
        kind: Optional[JobKind] = None,
        favorites_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Job], int]:
        return await self._store.list_jobs(owner_id, kind, favorites_only, limit, offset)

    async def list_active_jobs(self, owner_id: str, kind: Optional[JobKind] = None) -> List[Job]:
        return await self._store.list_active(owner_id, kind)

    async def delete_job(self, owner_id: str, job_id: str):
        """Remove the local record only; the provider-side job is left alone."""
        job = await self._get_owned(owner_id, job_id)
        # TODO: delete the CDN object as well when output_stored is set
        await self._store.delete(job)
        logger.info('Job %s deleted', job_id)

    async def toggle_favorite(self, owner_id: str, job_id: str) -> Job:
        job = await self._get_owned(owner_id, job_id)
        return await self._store.toggle_favorite(job)

    async def rename_job(self, owner_id: str, job_id: str, title: Optional[str]) -> Job:
        job = await self._get_owned(owner_id, job_id)
        return await self._store.set_title(job, title)

    async def _get_owned(self, owner_id: str, job_id: str) -> Job:
        job = await self._store.get(owner_id, job_id)
        if job is None:
            raise NotFoundError(f'Job not found: {job_id}')
        return job

    async def _resolve_credentials(self, owner_id: str, adapter: ProviderAdapter) -> Optional[str]:
        if not adapter.requires_credentials:
            return None
        credentials = await self._credentials.get_credentials(owner_id, adapter.service)
        if not credentials:
            raise CredentialError(f'Add your {adapter.service.value} API key to use {adapter.name}')
        return credentials

    async def _resolve_source(self, owner_id: str, params: Dict[str, Any]) -> Job:
        """Conversions start from one of the owner's completed music generations."""
        source_id = params.get('source_job_id')
        if not source_id:
            raise ValidationError('Source track is required')

        source = await self._store.get(owner_id, source_id)
        if source is None or source.kind != JobKind.music_generation.value:
            raise NotFoundError('Source track not found')
        if source.status != JobStatus.completed.value or not source.output_url:
            raise ValidationError('Source track is not completed')

        params['source_audio_url'] = source.output_url
        return source

    def _title_for(self, kind: JobKind, params: Dict[str, Any], source: Optional[Job]) -> Optional[str]:
        if kind == JobKind.voice_conversion:
            target = params.get('target_singer') or params.get('rvc_model_name') or 'Voice Conversion'
            return f'{(source.title if source else None) or "Track"} - {target}'
        return default_title(kind, params)

    @staticmethod
    def _status_from_submit(result: SubmitResult) -> ProviderStatus:
        return ProviderStatus(
            state=result.state,
            progress=100 if result.state == ProviderState.completed else None,
            output_url=result.output_url,
            error=result.error,
            extra=result.extra,
        )

    async def _apply_status(self, job: Job, status: ProviderStatus) -> Optional[MigrationResult]:
        """Record what the provider reported. Only non-terminal rows change."""
        if status.state == ProviderState.completed and not status.output_url:
            status = ProviderStatus(state=ProviderState.failed, error='No audio returned by provider')

        if status.state == ProviderState.completed:
            settings = await self._credentials.get_cdn_settings(job.owner_id)
            migration = await self._migrator.migrate(settings, job, status.output_url)
            updated = await self._store.mark_completed(
                job,
                migration.output_url,
                output_stored=migration.stored,
                extra=status.extra,
            )
            if updated:
                logger.info('Job %s completed (storage: %s)', job.id, migration.outcome.value)
            return migration

        if status.state == ProviderState.failed:
            error = status.error or DEFAULT_ERRORS.get(job.kind, 'Job failed')
            if await self._store.mark_failed(job, error):
                logger.warning('Job %s failed: %s', job.id, error)
            return None

        status_value = JobStatus.pending if status.state == ProviderState.pending else JobStatus.processing
        await self._store.update_progress(job, status_value, status.progress)
        return None

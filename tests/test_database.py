"""
Database layer tests.

Tests for SQLite database setup, WAL mode, and the Job and credential models.
"""
import pytest
from datetime import datetime
from types import SimpleNamespace
from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from soundforge.database import enable_wal_mode
from soundforge.models import (
    CredentialService,
    Job,
    JobKind,
    JobStatus,
    PlatformAccess,
    Provider,
    ProviderCredential,
)
from soundforge.models.job import utcnow
from soundforge.services.credentials import AccessGate, CredentialResolver


def make_job(**fields):
    values = {
        'owner_id': 'user-1',
        'kind': JobKind.music_generation.value,
        'provider': Provider.elevenlabs.value,
        'provider_job_id': 'req-1',
        'status': JobStatus.processing.value,
        'input_parameters': {'prompt': 'Upbeat piano instrumental'},
    }
    values.update(fields)
    return Job(**values)


class TestDatabaseConfiguration:
    """Tests for database configuration."""

    def test_database_path_in_data_dir(self):
        """Test database file lives in the data directory."""
        from soundforge.config import DATA_DIR, DATABASE_PATH

        assert DATABASE_PATH.parent == DATA_DIR
        assert DATABASE_PATH.name == 'soundforge.db'


class TestWALMode:
    """Tests for SQLite WAL mode."""

    @pytest.mark.asyncio
    async def test_enable_wal_mode(self, test_engine):
        await enable_wal_mode(test_engine)

        async with test_engine.connect() as conn:
            mode = (await conn.execute(text('PRAGMA journal_mode'))).scalar()

        assert mode.lower() == 'wal'

    @pytest.mark.asyncio
    async def test_other_backends_untouched(self):
        class OtherEngine:
            dialect = SimpleNamespace(name='postgresql')

            def begin(self):
                raise AssertionError('should not connect')

        await enable_wal_mode(OtherEngine())


class TestJobModel:
    """Tests for Job SQLAlchemy model."""

    @pytest.mark.asyncio
    async def test_create_job(self, test_session: AsyncSession):
        """Test creating a job record."""
        job = make_job()
        test_session.add(job)
        await test_session.commit()

        result = await test_session.execute(select(Job).where(Job.id == job.id))
        saved_job = result.scalar_one()

        assert saved_job.owner_id == 'user-1'
        assert saved_job.input_parameters == {'prompt': 'Upbeat piano instrumental'}
        assert saved_job.status == JobStatus.processing.value

    @pytest.mark.asyncio
    async def test_defaults(self, test_session: AsyncSession):
        """Test defaults for a freshly submitted job."""
        job = make_job()
        test_session.add(job)
        await test_session.commit()

        assert len(job.id) == 36  # UUID format: 8-4-4-4-12
        assert isinstance(job.created_at, datetime)
        assert job.progress == 0
        assert job.output_stored is False
        assert job.is_favorite is False
        assert job.completed_at is None
        assert job.is_terminal is False

    @pytest.mark.asyncio
    async def test_completed_job_with_all_fields(self, test_session: AsyncSession):
        source = make_job(status=JobStatus.completed.value, output_url='https://cdn.example.com/a.mp3')
        test_session.add(source)
        await test_session.commit()

        job = make_job(
            kind=JobKind.voice_conversion.value,
            provider=Provider.amphion_svc.value,
            status=JobStatus.completed.value,
            progress=100,
            output_url='https://my-zone.b-cdn.net/voice-conversions/x.mp3',
            output_stored=True,
            completed_at=utcnow(),
            source_job_id=source.id,
            duration_ms=30000,
            file_size_bytes=480000,
        )
        test_session.add(job)
        await test_session.commit()

        result = await test_session.execute(select(Job).where(Job.id == job.id))
        saved_job = result.scalar_one()

        assert saved_job.source_job_id == source.id
        assert saved_job.output_stored is True
        assert saved_job.duration_ms == 30000
        assert saved_job.is_terminal is True


class TestCredentialModels:
    """Tests for provider credentials and access grants."""

    @pytest.mark.asyncio
    async def test_one_credential_per_service(self, test_session: AsyncSession):
        test_session.add(ProviderCredential(owner_id='user-1', service='fal', api_key='a'))
        test_session.add(ProviderCredential(owner_id='user-1', service='fal', api_key='b'))

        with pytest.raises(IntegrityError):
            await test_session.commit()

    @pytest.mark.asyncio
    async def test_set_credential_replaces_key(self, test_session: AsyncSession):
        credentials = CredentialResolver(test_session)

        await credentials.set_credential('user-1', CredentialService.fal, 'old-key')
        await credentials.set_credential('user-1', CredentialService.fal, 'new-key')

        assert await credentials.get_credentials('user-1', CredentialService.fal) == 'new-key'
        assert await credentials.get_credentials('user-2', CredentialService.fal) is None

    @pytest.mark.asyncio
    async def test_cdn_settings(self, test_session: AsyncSession):
        credentials = CredentialResolver(test_session)
        assert await credentials.get_cdn_settings('user-1') is None

        await credentials.set_credential(
            'user-1', CredentialService.bunny, 'bunny-key', storage_zone='store', pull_zone='pull',
        )

        settings = await credentials.get_cdn_settings('user-1')
        assert settings.api_key == 'bunny-key'
        assert settings.storage_zone == 'store'
        assert settings.pull_zone == 'pull'

    @pytest.mark.asyncio
    async def test_access_grant(self, test_session: AsyncSession):
        gate = AccessGate(test_session, required=True)
        assert await gate.may_submit('user-1') is False

        await gate.grant('user-1')
        await gate.grant('user-1')

        assert await gate.may_submit('user-1') is True
        result = await test_session.execute(select(PlatformAccess))
        assert len(result.scalars().all()) == 1


class TestEnums:
    """Tests for status, kind and provider enums."""

    def test_job_status_values(self):
        """Test JobStatus enum has correct values."""
        assert JobStatus.pending.value == 'pending'
        assert JobStatus.processing.value == 'processing'
        assert JobStatus.completed.value == 'completed'
        assert JobStatus.failed.value == 'failed'

    def test_terminal_statuses(self):
        assert JobStatus.completed.is_terminal
        assert JobStatus.failed.is_terminal
        assert not JobStatus.pending.is_terminal
        assert not JobStatus.processing.is_terminal

    def test_job_status_is_string(self):
        """Test JobStatus inherits from str for JSON serialization."""
        assert isinstance(JobStatus.pending, str)
        assert JobStatus.pending == 'pending'

    def test_provider_values(self):
        assert Provider('minimax-v2.5') is Provider.minimax_v25
        assert Provider('rvc-v2') is Provider.rvc_v2

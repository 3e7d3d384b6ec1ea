"""
Pytest fixtures for testing.
"""
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from soundforge.database import get_db
from soundforge.models import Base, CredentialService, JobKind, Provider
from soundforge.providers import ProviderRegistry, get_provider_registry
from soundforge.providers.base import ProviderAdapter, ProviderState, ProviderStatus, SubmitResult
from soundforge.providers.fal import ElevenLabsMusicAdapter, MiniMaxVoiceCloneAdapter
from soundforge.providers.minimax import MiniMaxMusicAdapter
from soundforge.providers.replicate import AmphionSVCAdapter
from soundforge.services.bunny import cdn_url
from soundforge.services.credentials import AccessGate, CdnSettings, CredentialResolver
from soundforge.services.job_manager import JobManager
from soundforge.services.migrator import DurableStorageMigrator, get_migrator

OWNER = 'user-1'
OTHER_OWNER = 'user-2'
EPHEMERAL_URL = 'https://v3.fal.media/files/abc/output.mp3'


class FakeAdapter(ProviderAdapter):
    """
    Scripted provider.

    ``statuses`` are returned in order by check_status (the last one repeats).
    Call counters prove when the provider was or was not contacted.
    """

    def __init__(
        self,
        kind: JobKind,
        provider: Provider,
        service: CredentialService,
        synchronous: bool = False,
        validator: Optional[Callable[[Dict[str, Any]], None]] = None,
    ):
        super().__init__(http=None)
        self.kind = kind
        self.provider = provider
        self.service = service
        self.synchronous = synchronous
        self._validator = validator
        self.submit_result: Optional[SubmitResult] = None
        self.statuses: List[ProviderStatus] = []
        self.status_error: Optional[Exception] = None
        self.submit_calls = 0
        self.status_calls = 0
        self.submitted_params: List[Dict[str, Any]] = []

    def validate(self, params: Dict[str, Any]):
        if self._validator:
            self._validator(params)

    async def _submit(self, credentials, params):
        self.submit_calls += 1
        self.submitted_params.append(dict(params))
        if self.submit_result is not None:
            return self.submit_result
        return SubmitResult(provider_job_id=f'req-{self.submit_calls}')

    async def _fetch_status(self, credentials, provider_job_id):
        self.status_calls += 1
        if self.status_error is not None:
            raise self.status_error
        if len(self.statuses) > 1:
            return self.statuses.pop(0)
        if self.statuses:
            return self.statuses[0]
        return ProviderStatus(state=ProviderState.processing)


class FakeStorage:
    """Stands in for BunnyStorage; records every upload path."""

    def __init__(self):
        self.uploads: List[str] = []
        self.error: Optional[Exception] = None

    async def upload_from_url(self, settings: CdnSettings, source_url: str, path: str) -> str:
        if self.error is not None:
            raise self.error
        self.uploads.append(path)
        return cdn_url(settings, path)


def completed(url: str = EPHEMERAL_URL, **extra) -> ProviderStatus:
    return ProviderStatus(state=ProviderState.completed, progress=100, output_url=url, extra=extra)


def processing(progress: Optional[int] = None) -> ProviderStatus:
    return ProviderStatus(state=ProviderState.processing, progress=progress)


def failed(error: str) -> ProviderStatus:
    return ProviderStatus(state=ProviderState.failed, error=error)


@pytest.fixture
def test_db_url(tmp_path):
    """Generate a fresh database URL per test."""
    return f'sqlite+aiosqlite:///{tmp_path / "test.db"}'


@pytest_asyncio.fixture(scope='function')
async def test_engine(test_db_url):
    """Create a test database engine."""
    engine = create_async_engine(test_db_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope='function')
async def test_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_adapters() -> Dict[Provider, FakeAdapter]:
    """One scripted adapter per job kind, plus the synchronous MiniMax one."""
    return {
        Provider.elevenlabs: FakeAdapter(
            JobKind.music_generation,
            Provider.elevenlabs,
            CredentialService.fal,
            validator=ElevenLabsMusicAdapter(None).validate,
        ),
        Provider.minimax_v25: FakeAdapter(
            JobKind.music_generation,
            Provider.minimax_v25,
            CredentialService.minimax,
            synchronous=True,
            validator=MiniMaxMusicAdapter(None).validate,
        ),
        Provider.minimax_clone: FakeAdapter(
            JobKind.voice_clone,
            Provider.minimax_clone,
            CredentialService.fal,
            validator=MiniMaxVoiceCloneAdapter(None).validate,
        ),
        Provider.amphion_svc: FakeAdapter(
            JobKind.voice_conversion,
            Provider.amphion_svc,
            CredentialService.replicate,
            validator=AmphionSVCAdapter(None).validate,
        ),
    }


@pytest.fixture
def registry(fake_adapters) -> ProviderRegistry:
    registry = ProviderRegistry()
    for adapter in fake_adapters.values():
        registry.register(adapter)
    return registry


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def migrator(fake_storage) -> DurableStorageMigrator:
    return DurableStorageMigrator(fake_storage, timeout=1.0)


@pytest_asyncio.fixture
async def seeded_user(test_session):
    """OWNER has platform access and fal, minimax and replicate keys; no CDN."""
    await AccessGate(test_session).grant(OWNER)
    credentials = CredentialResolver(test_session)
    await credentials.set_credential(OWNER, CredentialService.fal, 'fal-key')
    await credentials.set_credential(OWNER, CredentialService.minimax, 'minimax-key')
    await credentials.set_credential(OWNER, CredentialService.replicate, 'replicate-key')
    return OWNER


async def configure_cdn(session: AsyncSession, owner_id: str = OWNER):
    await CredentialResolver(session).set_credential(
        owner_id,
        CredentialService.bunny,
        'bunny-key',
        storage_zone='my-storage',
        pull_zone='my-zone',
    )


@pytest.fixture
def manager(test_session, registry, migrator, seeded_user) -> JobManager:
    return JobManager(test_session, registry, migrator)


@pytest_asyncio.fixture
async def client(test_engine, registry, migrator, seeded_user):
    """Create a test client with provider and storage dependencies replaced."""
    from server import app

    # Create session factory for test engine
    test_session_factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db():
        async with test_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    # Override dependencies
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_provider_registry] = lambda: registry
    app.dependency_overrides[get_migrator] = lambda: migrator

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url='http://test',
        headers={'X-User-Id': OWNER},
    ) as client:
        yield client

    # Clean up
    app.dependency_overrides.clear()

"""
Durable storage tests: storage keys, Bunny.net uploads and migration outcomes.
"""
import asyncio

import httpx
import pytest

from soundforge.errors import CredentialError, TransientError
from soundforge.models import Job, JobKind
from soundforge.services.bunny import BunnyStorage, cdn_url, pull_zone_host
from soundforge.services.credentials import CdnSettings
from soundforge.services.migrator import (
    DurableStorageMigrator,
    MigrationOutcome,
    get_migrator,
    reset_migrator,
    storage_path,
)

from tests.conftest import FakeStorage

SETTINGS = CdnSettings(api_key='bunny-key', storage_zone='my-storage', pull_zone='my-zone')
SOURCE_URL = 'https://v3.fal.media/files/abc/output.mp3'


def make_job(kind=JobKind.music_generation, job_id='job-1'):
    return Job(id=job_id, owner_id='user-1', kind=kind.value, provider='elevenlabs', provider_job_id='req-1')


class TestStoragePath:
    """Tests for storage_path."""

    def test_music_path(self):
        assert storage_path(make_job(), SOURCE_URL) == 'music/job-1.mp3'

    def test_folder_per_kind(self):
        assert storage_path(make_job(JobKind.voice_conversion), SOURCE_URL) == 'voice-conversions/job-1.mp3'
        assert storage_path(make_job(JobKind.voice_clone), SOURCE_URL) == 'voice-clones/job-1.mp3'

    def test_known_extension_kept(self):
        assert storage_path(make_job(), 'https://cdn.example.com/a/b/track.WAV?sig=1') == 'music/job-1.wav'

    def test_unknown_extension_defaults_to_mp3(self):
        assert storage_path(make_job(), 'https://cdn.example.com/download?id=42') == 'music/job-1.mp3'
        assert storage_path(make_job(), 'https://cdn.example.com/file.exe') == 'music/job-1.mp3'

    def test_path_depends_only_on_job(self):
        """Test reruns for one job always target the same object."""
        first = storage_path(make_job(), 'https://v3.fal.media/files/aaa/output.mp3')
        second = storage_path(make_job(), 'https://v3.fal.media/files/bbb/other.mp3')
        assert first == second


class TestPullZone:
    """Tests for pull zone URL handling."""

    @pytest.mark.parametrize('pull_zone, host', [
        ('my-zone', 'my-zone.b-cdn.net'),
        ('my-zone.b-cdn.net', 'my-zone.b-cdn.net'),
        ('https://cdn.example.com/', 'cdn.example.com'),
        (' media.example.com ', 'media.example.com'),
    ])
    def test_pull_zone_host(self, pull_zone, host):
        assert pull_zone_host(pull_zone) == host

    def test_cdn_url(self):
        assert cdn_url(SETTINGS, '/music/job-1.mp3') == 'https://my-zone.b-cdn.net/music/job-1.mp3'


class TestBunnyStorage:
    """Tests for BunnyStorage against a mock transport."""

    @pytest.mark.asyncio
    async def test_upload_from_url(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.method == 'GET':
                return httpx.Response(200, content=b'ID3audio-bytes')
            return httpx.Response(201, json={'HttpCode': 201, 'Message': 'File uploaded.'})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            url = await BunnyStorage(http).upload_from_url(SETTINGS, SOURCE_URL, 'music/job-1.mp3')

        assert url == 'https://my-zone.b-cdn.net/music/job-1.mp3'
        download, upload = requests
        assert str(download.url) == SOURCE_URL
        assert upload.method == 'PUT'
        assert str(upload.url) == 'https://storage.bunnycdn.com/my-storage/music/job-1.mp3'
        assert upload.headers['AccessKey'] == 'bunny-key'
        assert upload.headers['Content-Type'] == 'audio/mpeg'
        assert upload.content == b'ID3audio-bytes'

    @pytest.mark.asyncio
    async def test_download_failure_is_transient(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            with pytest.raises(TransientError):
                await BunnyStorage(http).upload_from_url(SETTINGS, SOURCE_URL, 'music/job-1.mp3')

    @pytest.mark.asyncio
    async def test_rejected_access_key(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == 'GET':
                return httpx.Response(200, content=b'audio')
            return httpx.Response(401, json={'Message': 'Unauthorized'})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            with pytest.raises(CredentialError):
                await BunnyStorage(http).upload_from_url(SETTINGS, SOURCE_URL, 'music/job-1.mp3')

    @pytest.mark.asyncio
    async def test_redirect_loop_is_transient(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(302, headers={'Location': str(request.url)})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True) as http:
            with pytest.raises(TransientError):
                await BunnyStorage(http).upload_from_url(SETTINGS, SOURCE_URL, 'music/job-1.mp3')


class TestDurableStorageMigrator:
    """Tests for migration outcomes."""

    @pytest.mark.asyncio
    async def test_skipped_without_settings(self):
        storage = FakeStorage()
        result = await DurableStorageMigrator(storage).migrate(None, make_job(), SOURCE_URL)

        assert result.outcome == MigrationOutcome.skipped
        assert result.output_url == SOURCE_URL
        assert result.stored is False
        assert storage.uploads == []

    @pytest.mark.asyncio
    async def test_migrated(self):
        storage = FakeStorage()
        result = await DurableStorageMigrator(storage).migrate(SETTINGS, make_job(), SOURCE_URL)

        assert result.outcome == MigrationOutcome.migrated
        assert result.output_url == 'https://my-zone.b-cdn.net/music/job-1.mp3'
        assert result.stored is True

    @pytest.mark.asyncio
    async def test_upload_error_keeps_source(self):
        storage = FakeStorage()
        storage.error = CredentialError('bunny rejected the API key')

        result = await DurableStorageMigrator(storage).migrate(SETTINGS, make_job(), SOURCE_URL)

        assert result.outcome == MigrationOutcome.failed
        assert result.output_url == SOURCE_URL
        assert result.error == 'bunny rejected the API key'

    @pytest.mark.asyncio
    async def test_timeout_keeps_source(self):
        class SlowStorage:
            async def upload_from_url(self, settings, source_url, path):
                await asyncio.sleep(5)

        result = await DurableStorageMigrator(SlowStorage(), timeout=0.05).migrate(SETTINGS, make_job(), SOURCE_URL)

        assert result.outcome == MigrationOutcome.failed
        assert result.output_url == SOURCE_URL
        assert result.error == 'CDN upload timed out'

    @pytest.mark.asyncio
    async def test_redirect_loop_keeps_source(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(302, headers={'Location': str(request.url)})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True) as http:
            result = await DurableStorageMigrator(BunnyStorage(http)).migrate(SETTINGS, make_job(), SOURCE_URL)

        assert result.outcome == MigrationOutcome.failed
        assert result.output_url == SOURCE_URL
        assert result.stored is False

    @pytest.mark.asyncio
    async def test_unexpected_error_keeps_source(self):
        class BrokenStorage:
            async def upload_from_url(self, settings, source_url, path):
                raise RuntimeError('disk on fire')

        result = await DurableStorageMigrator(BrokenStorage()).migrate(SETTINGS, make_job(), SOURCE_URL)

        assert result.outcome == MigrationOutcome.failed
        assert result.output_url == SOURCE_URL
        assert result.error == 'disk on fire'

    @pytest.mark.asyncio
    async def test_rerun_targets_same_object(self):
        storage = FakeStorage()
        migrator = DurableStorageMigrator(storage)

        first = await migrator.migrate(SETTINGS, make_job(), SOURCE_URL)
        second = await migrator.migrate(SETTINGS, make_job(), SOURCE_URL)

        assert storage.uploads == ['music/job-1.mp3', 'music/job-1.mp3']
        assert first.output_url == second.output_url

    def test_migrator_singleton(self):
        reset_migrator()

        assert get_migrator() is get_migrator()

        reset_migrator()

"""
End-to-end tests: the API client and poller driving the server in-process.
"""
import asyncio

import pytest

from soundforge.client import SoundForgeClient
from soundforge.errors import AccessDeniedError, NotFoundError, ValidationError
from soundforge.models import Provider
from soundforge.services.poller import JobPoller

from tests.conftest import EPHEMERAL_URL, OTHER_OWNER, OWNER, completed, processing

PROMPT = 'Upbeat piano instrumental for a product video'


@pytest.fixture
def api(client):
    return SoundForgeClient('http://test', owner_id=OWNER, http=client)


class TestSoundForgeClient:
    """Tests for SoundForgeClient."""

    @pytest.mark.asyncio
    async def test_submit_and_poll_to_completion(self, api, fake_adapters):
        fake_adapters[Provider.elevenlabs].statuses = [processing(40), processing(80), completed()]
        reported = {}

        job = await api.submit_music('elevenlabs', prompt=PROMPT)
        assert job['status'] == 'processing'

        poller = JobPoller(api.check_job_status, notify=lambda job_id, result: reported.update({job_id: result}),
                           interval=0.01)
        poller.track(job['id'])
        await poller.start()
        for _ in range(100):
            if not poller.outstanding:
                break
            await asyncio.sleep(0.01)
        await poller.stop()

        assert reported[job['id']]['status'] == 'completed'
        assert reported[job['id']]['output_url'] == EPHEMERAL_URL
        stored = await api.get_job(job['id'])
        assert stored['status'] == 'completed'
        assert stored['progress'] == 100

    @pytest.mark.asyncio
    async def test_errors_map_to_exceptions(self, api):
        with pytest.raises(NotFoundError):
            await api.get_job('nonexistent-job-id')

        with pytest.raises(ValidationError):
            await api.submit_music('elevenlabs', prompt='short')

    @pytest.mark.asyncio
    async def test_access_denied(self, client):
        other = SoundForgeClient('http://test', owner_id=OTHER_OWNER, http=client)

        with pytest.raises(AccessDeniedError):
            await other.submit_music('elevenlabs', prompt=PROMPT)

    @pytest.mark.asyncio
    async def test_list_and_delete(self, api):
        job = await api.submit_music('elevenlabs', prompt=PROMPT)

        listing = await api.list_jobs(kind='music_generation')
        assert listing['total'] == 1
        assert [j['id'] for j in await api.list_active_jobs()] == [job['id']]

        await api.delete_job(job['id'])
        listing = await api.list_jobs()
        assert listing['total'] == 0

    @pytest.mark.asyncio
    async def test_voice_conversion_roundtrip(self, api, fake_adapters):
        fake_adapters[Provider.elevenlabs].statuses = [completed()]
        source = await api.submit_music('elevenlabs', prompt=PROMPT)
        await api.check_job_status(source['id'])

        job = await api.submit_voice_conversion('amphion-svc', source['id'], target_singer='Taylor Swift')

        assert job['source_job_id'] == source['id']
        assert job['status'] == 'processing'

    @pytest.mark.asyncio
    async def test_client_does_not_close_shared_http(self, client):
        async with SoundForgeClient('http://test', owner_id=OWNER, http=client) as api:
            await api.list_jobs()

        assert client.is_closed is False

"""
Mock provider used for development.

Selected by the MOCK_PROVIDERS setting only. Validates input exactly like the
real adapter it stands in for, then returns canned success after a short delay
without touching the network.
"""
import asyncio
import logging
import uuid
from typing import Any, Dict, Optional

from soundforge.config import MOCK_AUDIO_URL, MOCK_DELAY_SECONDS
from soundforge.models.job import JobKind
from soundforge.providers.base import ProviderAdapter, ProviderState, ProviderStatus, SubmitResult

logger = logging.getLogger(__name__)


class MockAdapter(ProviderAdapter):
    """Stands in for ``real`` without credentials or network access."""
    requires_credentials = False

    def __init__(self, real: ProviderAdapter, delay: float = MOCK_DELAY_SECONDS):
        super().__init__(http=None)
        self._real = real
        self._delay = delay
        self.kind = real.kind
        self.provider = real.provider
        self.service = real.service
        self.synchronous = real.synchronous

    def validate(self, params: Dict[str, Any]):
        self._real.validate(params)

    def _canned_extra(self) -> Dict[str, Any]:
        if self.kind == JobKind.voice_clone:
            return {'provider_voice_id': 'mock-voice', 'preview_audio_url': MOCK_AUDIO_URL}
        return {'duration_ms': 30000}

    async def _submit(self, credentials: Optional[str], params: Dict[str, Any]) -> SubmitResult:
        logger.info('[MOCK %s] submission accepted', self.name)
        await asyncio.sleep(self._delay)

        provider_job_id = f'mock-{uuid.uuid4().hex}'
        if self.synchronous:
            return SubmitResult(
                provider_job_id=provider_job_id,
                state=ProviderState.completed,
                output_url=MOCK_AUDIO_URL,
                extra=self._canned_extra(),
            )
        return SubmitResult(provider_job_id=provider_job_id, state=ProviderState.processing)

    async def _fetch_status(self, credentials: Optional[str], provider_job_id: str) -> ProviderStatus:
        return ProviderStatus(
            state=ProviderState.completed,
            progress=100,
            output_url=MOCK_AUDIO_URL,
            extra=self._canned_extra(),
        )

    def __repr__(self):
        return f'<MockAdapter {self.kind.value}/{self.name}>'

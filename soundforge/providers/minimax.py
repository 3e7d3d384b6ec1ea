"""
MiniMax direct API: music generation v2.5.

Unlike the fal.ai queue, this endpoint is synchronous: the request blocks until
the track is rendered and the response already carries the audio URL. The
adapter reports that outcome straight from ``submit``.
"""
import logging
import uuid
from typing import Any, Dict, Optional

from soundforge.config import MINIMAX_API_BASE, MINIMAX_MUSIC_MODEL, MINIMAX_TIMEOUT_SECONDS
from soundforge.errors import CredentialError, ProviderTerminalFailure, TransientError, ValidationError
from soundforge.models.credential import CredentialService
from soundforge.models.job import JobKind, Provider
from soundforge.providers.base import (
    ProviderAdapter,
    ProviderState,
    ProviderStatus,
    SubmitResult,
    optional_text,
    require_text,
    send_json,
)

logger = logging.getLogger(__name__)

SAMPLE_RATES = (16000, 24000, 32000, 44100)
BITRATES = (32000, 64000, 128000, 256000)
AUDIO_FORMATS = ('mp3', 'wav', 'pcm')

DEFAULT_AUDIO_SETTINGS = {
    'sample_rate': 44100,
    'bitrate': 256000,
    'format': 'mp3',
}

# MiniMax base_resp.status_code values
RATE_LIMITED = 1002
AUTH_FAILED = 1004
INSUFFICIENT_BALANCE = 1008
SENSITIVE_CONTENT = 1026
INVALID_PARAMS = 2013
INVALID_API_KEY = 2049

ERROR_MESSAGES = {
    RATE_LIMITED: 'Rate limit exceeded. Please try again later.',
    AUTH_FAILED: 'Authentication failed. Please check your API key.',
    INSUFFICIENT_BALANCE: 'Insufficient balance. Please top up your MiniMax account.',
    SENSITIVE_CONTENT: 'Content flagged for sensitive material.',
    INVALID_PARAMS: 'Invalid parameters. Please check your input.',
    INVALID_API_KEY: 'Invalid API key.',
}


def validate_audio_settings(params: Dict[str, Any]):
    """Check optional MiniMax audio settings (sample rate, bitrate, format)."""
    settings = params.get('audio_settings')
    if not settings:
        return
    sample_rate = settings.get('sample_rate')
    if sample_rate is not None and int(sample_rate) not in SAMPLE_RATES:
        raise ValidationError(f'Sample rate must be one of {", ".join(map(str, SAMPLE_RATES))}')
    bitrate = settings.get('bitrate')
    if bitrate is not None and int(bitrate) not in BITRATES:
        raise ValidationError(f'Bitrate must be one of {", ".join(map(str, BITRATES))}')
    audio_format = settings.get('format')
    if audio_format is not None and audio_format not in AUDIO_FORMATS:
        raise ValidationError(f'Format must be one of {", ".join(AUDIO_FORMATS)}')


def audio_setting_payload(params: Dict[str, Any]) -> Dict[str, Any]:
    """Fill in defaults for any audio setting the user left out."""
    settings = params.get('audio_settings') or {}
    return {
        'sample_rate': int(settings.get('sample_rate') or DEFAULT_AUDIO_SETTINGS['sample_rate']),
        'bitrate': int(settings.get('bitrate') or DEFAULT_AUDIO_SETTINGS['bitrate']),
        'format': settings.get('format') or DEFAULT_AUDIO_SETTINGS['format'],
    }


def error_message(code: int, message: Optional[str]) -> str:
    """Human-readable text for a MiniMax error code."""
    return ERROR_MESSAGES.get(code) or message or f'Unknown error (code: {code})'


class MiniMaxMusicAdapter(ProviderAdapter):
    """Music generation with MiniMax v2.5 (lyrics required, style prompt optional)."""
    kind = JobKind.music_generation
    provider = Provider.minimax_v25
    service = CredentialService.minimax
    synchronous = True

    def validate(self, params: Dict[str, Any]):
        require_text(params, 'lyrics', 'Lyrics', max_length=3500)
        optional_text(params, 'prompt', 'Style prompt', max_length=2000)
        validate_audio_settings(params)

    def _payload(self, params: Dict[str, Any]) -> Dict[str, Any]:
        payload = {
            'model': MINIMAX_MUSIC_MODEL,
            'lyrics': params['lyrics'],
            'output_format': 'url',
            'audio_setting': audio_setting_payload(params),
        }
        prompt = (params.get('prompt') or '').strip()
        if prompt:
            payload['prompt'] = prompt
        return payload

    async def _submit(self, credentials: Optional[str], params: Dict[str, Any]) -> SubmitResult:
        logger.info('Submitting generation to MiniMax (lyrics=%d chars)', len(params['lyrics']))
        body = await send_json(
            self._http,
            'POST',
            f'{MINIMAX_API_BASE}/v1/music_generation',
            provider=self.name,
            timeout=MINIMAX_TIMEOUT_SECONDS,
            headers={'Authorization': f'Bearer {credentials}'},
            json=self._payload(params),
        )
        provider_job_id = body.get('trace_id') or f'minimax-{uuid.uuid4()}'

        try:
            return self._parse_result(provider_job_id, body)
        except ProviderTerminalFailure as e:
            logger.warning('MiniMax generation %s failed: %s', provider_job_id, e.message)
            return SubmitResult(
                provider_job_id=provider_job_id,
                state=ProviderState.failed,
                error=e.message,
            )

    def _parse_result(self, provider_job_id: str, body: Dict[str, Any]) -> SubmitResult:
        base_resp = body.get('base_resp') or {}
        code = base_resp.get('status_code', 0)
        if code:
            message = error_message(code, base_resp.get('status_msg'))
            if code in (AUTH_FAILED, INVALID_API_KEY):
                raise CredentialError(message)
            if code == RATE_LIMITED:
                raise TransientError(message)
            if code == INVALID_PARAMS:
                raise ValidationError(message)
            raise ProviderTerminalFailure(message)

        data = body.get('data') or {}
        # 1 = in progress, 2 = completed
        if data.get('status') != 2:
            raise ProviderTerminalFailure('Generation did not complete')
        audio = data.get('audio')
        if not audio:
            raise ProviderTerminalFailure('No audio data in response')

        info = body.get('extra_info') or {}
        return SubmitResult(
            provider_job_id=provider_job_id,
            state=ProviderState.completed,
            output_url=audio,
            extra={
                'duration_ms': info.get('music_duration'),
                'file_size_bytes': info.get('music_size'),
                'sample_rate': info.get('music_sample_rate'),
                'channels': info.get('music_channel'),
                'bitrate': info.get('bitrate'),
            },
        )

    async def _fetch_status(self, credentials: Optional[str], provider_job_id: str) -> ProviderStatus:
        # Jobs are terminal as soon as submit returns; there is nothing to poll.
        raise ProviderTerminalFailure('MiniMax v2.5 generations finish on submit and cannot be polled')

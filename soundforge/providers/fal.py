"""
fal.ai queue adapters: ElevenLabs music, MiniMax music v2 and voice cloning.

Queue protocol:
    POST {queue}/{model_id}                        -> {"request_id": ...}
    GET  {queue}/{app}/requests/{id}/status?logs=1 -> IN_QUEUE | IN_PROGRESS | COMPLETED
    GET  {queue}/{app}/requests/{id}               -> model output

``app`` is the owner/alias prefix of the model id (``fal-ai/minimax-music``
for ``fal-ai/minimax-music/v2``). The model payload is sent as top-level JSON.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from soundforge.config import (
    FAL_ELEVENLABS_MUSIC_MODEL,
    FAL_MINIMAX_MUSIC_MODEL,
    FAL_MINIMAX_VOICE_CLONE_MODEL,
    FAL_QUEUE_BASE_URL,
    FAL_QWEN_VOICE_CLONE_MODEL,
)
from soundforge.errors import TransientError
from soundforge.models.credential import CredentialService
from soundforge.models.job import JobKind, Provider
from soundforge.providers.base import (
    ProviderAdapter,
    ProviderState,
    ProviderStatus,
    SubmitResult,
    check_range,
    optional_text,
    progress_from_logs,
    require_text,
    require_url,
    send_json,
)
from soundforge.providers.minimax import audio_setting_payload, validate_audio_settings

logger = logging.getLogger(__name__)

ELEVENLABS_OUTPUT_FORMAT = 'mp3_44100_128'

# fal only returns clone preview audio when given text to speak
DEFAULT_CLONE_PREVIEW_TEXT = 'Hello! This is a preview of my cloned voice.'


def app_root(model_id: str) -> str:
    """Owner/alias prefix of a fal model id, used for request status URLs."""
    return '/'.join(model_id.strip('/').split('/')[:2])


class FalQueueAdapter(ProviderAdapter):
    """Base for every adapter backed by the fal.ai queue."""
    service = CredentialService.fal
    model_id: str

    def _headers(self, credentials: str) -> Dict[str, str]:
        return {'Authorization': f'Key {credentials}'}

    def _request_url(self, provider_job_id: str) -> str:
        return f'{FAL_QUEUE_BASE_URL}/{app_root(self.model_id)}/requests/{provider_job_id}'

    def build_payload(self, params: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def parse_result(self, result: Dict[str, Any]) -> Tuple[Optional[str], Dict[str, Any]]:
        """Return (output_url, extra fields) from the model output."""
        audio = result.get('audio') or {}
        extra = {}
        if audio.get('file_size'):
            extra['file_size_bytes'] = audio['file_size']
        return audio.get('url'), extra

    async def _submit(self, credentials: Optional[str], params: Dict[str, Any]) -> SubmitResult:
        body = await send_json(
            self._http,
            'POST',
            f'{FAL_QUEUE_BASE_URL}/{self.model_id}',
            provider=self.name,
            headers=self._headers(credentials),
            json=self.build_payload(params),
        )
        request_id = body.get('request_id')
        if not request_id:
            raise TransientError(f'{self.name} did not return a request id')

        logger.info('Submitted %s request %s', self.model_id, request_id)
        return SubmitResult(provider_job_id=request_id, state=ProviderState.processing)

    async def _fetch_status(self, credentials: Optional[str], provider_job_id: str) -> ProviderStatus:
        body = await send_json(
            self._http,
            'GET',
            f'{self._request_url(provider_job_id)}/status',
            provider=self.name,
            headers=self._headers(credentials),
            params={'logs': 1},
        )
        status = str(body.get('status') or '').upper()
        logs = [entry.get('message', '') for entry in body.get('logs') or [] if isinstance(entry, dict)]

        if status == 'IN_QUEUE':
            return ProviderStatus(state=ProviderState.pending, progress=0, logs=logs)

        if status == 'FAILED' or body.get('error'):
            return ProviderStatus(
                state=ProviderState.failed,
                error=str(body.get('error') or 'Generation failed'),
                logs=logs,
            )

        if status == 'COMPLETED':
            result = await send_json(
                self._http,
                'GET',
                self._request_url(provider_job_id),
                provider=self.name,
                headers=self._headers(credentials),
            )
            output_url, extra = self.parse_result(result)
            if not output_url:
                return ProviderStatus(
                    state=ProviderState.failed,
                    error='No audio returned by provider',
                    logs=logs,
                )
            return ProviderStatus(
                state=ProviderState.completed,
                progress=100,
                output_url=output_url,
                logs=logs,
                extra=extra,
            )

        # IN_PROGRESS or anything new: keep polling
        return ProviderStatus(
            state=ProviderState.processing,
            progress=progress_from_logs(logs),
            logs=logs,
        )


class ElevenLabsMusicAdapter(FalQueueAdapter):
    """Text-to-music from a description."""
    kind = JobKind.music_generation
    provider = Provider.elevenlabs
    model_id = FAL_ELEVENLABS_MUSIC_MODEL

    def validate(self, params: Dict[str, Any]):
        require_text(params, 'prompt', 'Description', min_length=10, max_length=300)
        check_range(params, 'duration_ms', 'Duration (ms)', 5_000, 600_000)

    def build_payload(self, params: Dict[str, Any]) -> Dict[str, Any]:
        payload = {
            'prompt': params['prompt'],
            'output_format': ELEVENLABS_OUTPUT_FORMAT,
        }
        if params.get('duration_ms'):
            payload['music_length_ms'] = int(params['duration_ms'])
        if params.get('force_instrumental'):
            payload['force_instrumental'] = True
        return payload


class MiniMaxV2MusicAdapter(FalQueueAdapter):
    """Style prompt plus lyrics through fal.ai."""
    kind = JobKind.music_generation
    provider = Provider.minimax_v2
    model_id = FAL_MINIMAX_MUSIC_MODEL

    def validate(self, params: Dict[str, Any]):
        require_text(params, 'prompt', 'Style prompt', min_length=10, max_length=300)
        require_text(params, 'lyrics', 'Lyrics', min_length=10, max_length=3000)
        validate_audio_settings(params)

    def build_payload(self, params: Dict[str, Any]) -> Dict[str, Any]:
        payload = {
            'prompt': params['prompt'],
            'lyrics_prompt': params['lyrics'],
        }
        if params.get('audio_settings'):
            payload['audio_setting'] = audio_setting_payload(params)
        return payload


class MiniMaxVoiceCloneAdapter(FalQueueAdapter):
    """Clone a voice into a reusable MiniMax custom voice id."""
    kind = JobKind.voice_clone
    provider = Provider.minimax_clone
    model_id = FAL_MINIMAX_VOICE_CLONE_MODEL

    def validate(self, params: Dict[str, Any]):
        require_url(params, 'audio_url', 'Audio URL')
        optional_text(params, 'preview_text', 'Preview text', max_length=500)

    def build_payload(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'audio_url': params['audio_url'],
            'noise_reduction': bool(params.get('noise_reduction')),
            'need_volume_normalization': bool(params.get('volume_normalization')),
            'text': params.get('preview_text') or DEFAULT_CLONE_PREVIEW_TEXT,
        }

    def parse_result(self, result: Dict[str, Any]) -> Tuple[Optional[str], Dict[str, Any]]:
        preview = (result.get('audio') or {}).get('url')
        extra = {
            'provider_voice_id': result.get('custom_voice_id'),
            'preview_audio_url': preview,
        }
        return preview, extra


class QwenVoiceCloneAdapter(FalQueueAdapter):
    """Clone a voice into a speaker embedding file."""
    kind = JobKind.voice_clone
    provider = Provider.qwen_clone
    model_id = FAL_QWEN_VOICE_CLONE_MODEL

    def validate(self, params: Dict[str, Any]):
        require_url(params, 'audio_url', 'Audio URL')
        optional_text(params, 'reference_text', 'Reference text', max_length=1000)

    def build_payload(self, params: Dict[str, Any]) -> Dict[str, Any]:
        payload = {'audio_url': params['audio_url']}
        if params.get('reference_text'):
            payload['reference_text'] = params['reference_text']
        return payload

    def parse_result(self, result: Dict[str, Any]) -> Tuple[Optional[str], Dict[str, Any]]:
        embedding = (result.get('speaker_embedding') or {}).get('url')
        preview = (result.get('audio') or {}).get('url')
        return embedding, {'preview_audio_url': preview}

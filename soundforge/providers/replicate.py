"""
Replicate voice conversion adapters: Amphion SVC and RVC v2.

Both run as Replicate predictions. The lifecycle manager injects
``source_audio_url`` (the completed music generation being converted) into the
parameters before submitting.
"""
import logging
from typing import Any, Dict, List, Optional

from soundforge.config import REPLICATE_AMPHION_SVC_MODEL, REPLICATE_API_BASE, REPLICATE_RVC_MODEL
from soundforge.errors import TransientError, ValidationError
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

logger = logging.getLogger(__name__)

# Preset Amphion SVC singers, grouped for display
AMPHION_SINGERS = {
    'International': [
        'Adele',
        'John Mayer',
        'Bruno Mars',
        'Beyonce',
        'Michael Jackson',
        'Taylor Swift',
    ],
    'Chinese': [
        'David Tao',
        'Eason Chan',
        'Feng Wang',
        'Jian Li',
        'Ying Na',
        'Yijie Shi',
        'Jacky Cheung',
        'Faye Wong',
        'Tsai Chin',
    ],
}

ALL_SINGERS = frozenset(name for names in AMPHION_SINGERS.values() for name in names)

STATE_MAP = {
    'starting': ProviderState.pending,
    'processing': ProviderState.processing,
    'succeeded': ProviderState.completed,
    'failed': ProviderState.failed,
    'canceled': ProviderState.failed,
}


def _first_output(output: Any) -> Optional[str]:
    if isinstance(output, str):
        return output
    if isinstance(output, list):
        for item in output:
            if isinstance(item, str):
                return item
    if isinstance(output, dict):
        return output.get('audio') or output.get('url')
    return None


def _split_logs(logs: Any) -> List[str]:
    if not logs:
        return []
    if isinstance(logs, str):
        return [line for line in logs.splitlines() if line.strip()]
    return [str(line) for line in logs]


class ReplicateAdapter(ProviderAdapter):
    """Base for adapters running Replicate predictions."""
    kind = JobKind.voice_conversion
    service = CredentialService.replicate
    model_ref: str

    def _headers(self, credentials: str) -> Dict[str, str]:
        return {'Authorization': f'Bearer {credentials}'}

    def build_input(self, params: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def validate_common(self, params: Dict[str, Any]):
        require_url(params, 'source_audio_url', 'Source audio')
        check_range(params, 'pitch_shift', 'Pitch shift', -12, 12)
        optional_text(params, 'title', 'Title', max_length=200)

    async def _submit(self, credentials: Optional[str], params: Dict[str, Any]) -> SubmitResult:
        # 'owner/name:version' pins a version, 'owner/name' runs the latest one
        if ':' in self.model_ref:
            url = f'{REPLICATE_API_BASE}/v1/predictions'
            body = {'version': self.model_ref.split(':', 1)[1], 'input': self.build_input(params)}
        else:
            url = f'{REPLICATE_API_BASE}/v1/models/{self.model_ref}/predictions'
            body = {'input': self.build_input(params)}

        prediction = await send_json(
            self._http,
            'POST',
            url,
            provider=self.name,
            headers=self._headers(credentials),
            json=body,
        )
        prediction_id = prediction.get('id')
        if not prediction_id:
            raise TransientError(f'{self.name} did not return a prediction id')

        logger.info('Started %s prediction %s', self.name, prediction_id)
        state = STATE_MAP.get(prediction.get('status'), ProviderState.processing)
        if state.is_terminal:
            # Submission never completes a prediction; report it as running and
            # let the first status check pick up the outcome.
            state = ProviderState.processing
        return SubmitResult(provider_job_id=prediction_id, state=state)

    async def _fetch_status(self, credentials: Optional[str], provider_job_id: str) -> ProviderStatus:
        prediction = await send_json(
            self._http,
            'GET',
            f'{REPLICATE_API_BASE}/v1/predictions/{provider_job_id}',
            provider=self.name,
            headers=self._headers(credentials),
        )
        state = STATE_MAP.get(prediction.get('status'), ProviderState.processing)
        logs = _split_logs(prediction.get('logs'))

        if state == ProviderState.failed:
            error = prediction.get('error')
            if not error:
                error = 'Conversion canceled' if prediction.get('status') == 'canceled' else 'Conversion failed'
            return ProviderStatus(state=state, error=str(error), logs=logs)

        if state == ProviderState.completed:
            output_url = _first_output(prediction.get('output'))
            if not output_url:
                return ProviderStatus(state=ProviderState.failed, error='No audio returned by provider', logs=logs)
            return ProviderStatus(state=state, progress=100, output_url=output_url, logs=logs)

        progress = progress_from_logs(logs)
        if state == ProviderState.pending:
            progress = progress or 0
        return ProviderStatus(state=state, progress=progress, logs=logs)


class AmphionSVCAdapter(ReplicateAdapter):
    """Singing voice conversion to one of the preset singers."""
    provider = Provider.amphion_svc
    model_ref = REPLICATE_AMPHION_SVC_MODEL

    def validate(self, params: Dict[str, Any]):
        singer = require_text(params, 'target_singer', 'Target singer')
        if singer not in ALL_SINGERS:
            raise ValidationError(f'Unknown target singer: {singer}')
        self.validate_common(params)

    def build_input(self, params: Dict[str, Any]) -> Dict[str, Any]:
        payload = {
            'source_audio': params['source_audio_url'],
            'target_singer': params['target_singer'],
        }
        if params.get('pitch_shift'):
            payload['pitch_shift'] = params['pitch_shift']
        return payload


class RVCAdapter(ReplicateAdapter):
    """Voice conversion with a user-supplied RVC v2 model."""
    provider = Provider.rvc_v2
    model_ref = REPLICATE_RVC_MODEL

    def validate(self, params: Dict[str, Any]):
        require_url(params, 'rvc_model_url', 'RVC model URL')
        optional_text(params, 'rvc_model_name', 'RVC model name', max_length=100)
        self.validate_common(params)

    def build_input(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'song_input': params['source_audio_url'],
            'rvc_model': 'CUSTOM',
            'custom_rvc_model_download_url': params['rvc_model_url'],
            'pitch_change_all': params.get('pitch_shift') or 0,
            'output_format': 'mp3',
        }

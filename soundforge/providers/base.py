"""
Provider adapter contract.

Every external service is normalized to the same asynchronous shape:
``submit`` returns the provider's job handle and ``check_status`` reports the
provider's current truth for that handle as pending, processing, completed or
failed. Synchronous providers report their terminal state straight from
``submit``.
"""
import enum
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from soundforge.config import PROVIDER_TIMEOUT_SECONDS
from soundforge.errors import (
    CredentialError,
    ProviderTerminalFailure,
    TransientError,
    ValidationError,
)
from soundforge.models.credential import CredentialService
from soundforge.models.job import JobKind, Provider


class ProviderState(str, enum.Enum):
    """Normalized provider-side job state."""
    pending = 'pending'
    processing = 'processing'
    completed = 'completed'
    failed = 'failed'

    @property
    def is_terminal(self) -> bool:
        return self in (ProviderState.completed, ProviderState.failed)


@dataclass
class SubmitResult:
    """What a provider handed back when it accepted a job."""
    provider_job_id: str
    state: ProviderState = ProviderState.processing
    output_url: Optional[str] = None
    error: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ProviderStatus:
    """Provider's current view of a job."""
    state: ProviderState
    progress: Optional[int] = None
    output_url: Optional[str] = None
    error: Optional[str] = None
    logs: List[str] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)


_PERCENT_RE = re.compile(r'(\d{1,3})(?:\.\d+)?\s*%')


def progress_from_logs(logs: List[str]) -> Optional[int]:
    """Return the last percentage mentioned in provider logs, clamped to 0-100."""
    for line in reversed(logs):
        matches = _PERCENT_RE.findall(line)
        if matches:
            return max(0, min(100, int(matches[-1])))
    return None


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        detail = body.get('detail') or body.get('error') or body.get('message')
        if detail:
            return detail if isinstance(detail, str) else str(detail)[:200]
    return str(body)[:200]


def raise_for_provider_status(response: httpx.Response, provider: str):
    """Map a provider HTTP error onto the error taxonomy."""
    status = response.status_code
    if status < 400:
        return
    detail = _error_detail(response)
    if status in (401, 403):
        raise CredentialError(f'{provider} rejected the API key: {detail}')
    if status in (400, 422):
        raise ValidationError(f'{provider} rejected the request: {detail}')
    if status == 429 or status >= 500:
        raise TransientError(f'{provider} unavailable (HTTP {status}): {detail}')
    raise ProviderTerminalFailure(f'{provider} error (HTTP {status}): {detail}')


async def send(
    http: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    provider: str,
    timeout: Optional[float] = None,
    **kwargs,
) -> httpx.Response:
    """Issue a bounded request to a provider, translating failures."""
    try:
        response = await http.request(
            method,
            url,
            timeout=timeout or PROVIDER_TIMEOUT_SECONDS,
            **kwargs,
        )
    except httpx.TimeoutException as e:
        raise TransientError(f'{provider} request timed out') from e
    except httpx.HTTPError as e:
        raise TransientError(f'{provider} unreachable: {e}') from e

    raise_for_provider_status(response, provider)
    return response


async def send_json(
    http: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    provider: str,
    **kwargs,
) -> Dict[str, Any]:
    """Like send, but returns the decoded JSON object body."""
    response = await send(http, method, url, provider=provider, **kwargs)
    try:
        body = response.json()
    except ValueError as e:
        raise TransientError(f'{provider} returned a non-JSON response (HTTP {response.status_code})') from e
    if not isinstance(body, dict):
        raise TransientError(f'{provider} returned an unexpected response body')
    return body


# Input checks shared by adapters. All raise ValidationError.

def require_text(params: Dict[str, Any], name: str, label: str,
                 min_length: int = 1, max_length: Optional[int] = None) -> str:
    value = params.get(name)
    if value is None or not str(value).strip():
        raise ValidationError(f'{label} is required')
    return check_length(value, label, min_length, max_length)


def optional_text(params: Dict[str, Any], name: str, label: str,
                  max_length: int) -> Optional[str]:
    value = params.get(name)
    if value is None or value == '':
        return None
    return check_length(value, label, 0, max_length)


def check_length(value: str, label: str, min_length: int, max_length: Optional[int]) -> str:
    if len(value) < min_length:
        raise ValidationError(f'{label} must be at least {min_length} characters')
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f'{label} must be {max_length} characters or less')
    return value


def require_url(params: Dict[str, Any], name: str, label: str) -> str:
    value = params.get(name)
    if not value:
        raise ValidationError(f'{label} is required')
    if not str(value).startswith(('http://', 'https://')):
        raise ValidationError(f'{label} must be an http(s) URL')
    return value


def check_range(params: Dict[str, Any], name: str, label: str, low: int, high: int) -> Optional[int]:
    value = params.get(name)
    if value is None:
        return None
    if not isinstance(value, (int, float)) or isinstance(value, bool) or not low <= value <= high:
        raise ValidationError(f'{label} must be between {low} and {high}')
    return value


class ProviderAdapter(ABC):
    """
    Translates generic job requests into provider calls.

    Subclasses set ``kind``, ``provider`` and ``service`` (the credential the
    adapter needs) and implement ``validate``, ``_submit`` and ``_fetch_status``.
    """
    kind: JobKind
    provider: Provider
    service: CredentialService
    synchronous = False
    requires_credentials = True

    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    @property
    def name(self) -> str:
        return self.provider.value

    @abstractmethod
    def validate(self, params: Dict[str, Any]):
        """Raise ValidationError if params violate provider constraints."""

    async def submit(self, credentials: Optional[str], params: Dict[str, Any]) -> SubmitResult:
        """Send the job to the provider and return its handle."""
        self.validate(params)
        if self.requires_credentials and not credentials:
            raise CredentialError(f'{self.service.value} API key is required for {self.name}')
        return await self._submit(credentials, params)

    async def check_status(self, credentials: Optional[str], provider_job_id: str) -> ProviderStatus:
        """
        Ask the provider for the current state of a job.

        Provider-side rejections of the job surface as a failed status; network
        trouble raises TransientError so the caller keeps its last known state.
        """
        if self.requires_credentials and not credentials:
            raise CredentialError(f'{self.service.value} API key is required for {self.name}')
        try:
            return await self._fetch_status(credentials, provider_job_id)
        except (ProviderTerminalFailure, ValidationError) as e:
            return ProviderStatus(state=ProviderState.failed, error=e.message)

    @abstractmethod
    async def _submit(self, credentials: Optional[str], params: Dict[str, Any]) -> SubmitResult:
        ...

    @abstractmethod
    async def _fetch_status(self, credentials: Optional[str], provider_job_id: str) -> ProviderStatus:
        ...

    def __repr__(self):
        return f'<{self.__class__.__name__} {self.kind.value}/{self.name}>'

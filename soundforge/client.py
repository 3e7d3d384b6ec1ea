"""
Async HTTP client for the SoundForge API.

Used by clients driving jobs from the outside, including the job poller:

    async with SoundForgeClient('http://127.0.0.1:5111', owner_id='user-1') as client:
        job = await client.submit_music('elevenlabs', prompt='Upbeat piano instrumental')
        poller = JobPoller(client.check_job_status, notify=print)
        poller.track(job['id'])
        await poller.start()
"""
from typing import Any, Dict, List, Optional

import httpx

from soundforge import errors
from soundforge.config import OWNER_HEADER, PROVIDER_TIMEOUT_SECONDS

ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        errors.ValidationError,
        errors.CredentialError,
        errors.AuthzError,
        errors.AccessDeniedError,
        errors.NotFoundError,
        errors.TransientError,
        errors.NotConfiguredError,
        errors.AlreadyStoredError,
    )
}


def _raise_for_error(response: httpx.Response):
    if response.status_code < 400:
        return
    try:
        body = response.json()
    except ValueError:
        body = {}
    detail = body.get('detail') if isinstance(body, dict) else None
    if not isinstance(detail, str):
        detail = response.text[:200] or response.reason_phrase
    error_class = ERRORS_BY_CODE.get(body.get('code') if isinstance(body, dict) else None)
    if error_class is None:
        if response.status_code == 404:
            error_class = errors.NotFoundError
        elif response.status_code == 422:
            error_class = errors.ValidationError
        elif response.status_code >= 500:
            error_class = errors.TransientError
        else:
            error_class = errors.SoundForgeError
    raise error_class(detail)


class SoundForgeClient:
    """Talks to a SoundForge server on behalf of one user."""

    def __init__(
        self,
        base_url: str,
        owner_id: str,
        http: Optional[httpx.AsyncClient] = None,
        timeout: float = PROVIDER_TIMEOUT_SECONDS,
    ):
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._headers = {OWNER_HEADER: owner_id}

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        if self._owns_http:
            await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._http.request(method, path, headers=self._headers, **kwargs)
        except httpx.TransportError as e:
            raise errors.TransientError(f'SoundForge unreachable: {e}') from e
        _raise_for_error(response)
        if response.status_code == 204:
            return None
        return response.json()

    async def submit_music(self, provider: str, **params) -> Dict[str, Any]:
        return await self._request('POST', '/music/generations', json={'provider': provider, **params})

    async def submit_voice_clone(self, provider: str, **params) -> Dict[str, Any]:
        return await self._request('POST', '/voices/clones', json={'provider': provider, **params})

    async def submit_voice_conversion(self, provider: str, source_job_id: str, **params) -> Dict[str, Any]:
        body = {'provider': provider, 'source_job_id': source_job_id, **params}
        return await self._request('POST', '/voices/conversions', json=body)

    async def check_job_status(self, job_id: str) -> Dict[str, Any]:
        return await self._request('POST', f'/jobs/{job_id}/status')

    async def get_job(self, job_id: str) -> Dict[str, Any]:
        return await self._request('GET', f'/jobs/{job_id}')

    async def list_jobs(self, kind: Optional[str] = None, favorites_only: bool = False,
                        limit: int = 50, offset: int = 0) -> Dict[str, Any]:
        params = {'favorites_only': favorites_only, 'limit': limit, 'offset': offset}
        if kind:
            params['kind'] = kind
        return await self._request('GET', '/jobs', params=params)

    async def list_active_jobs(self) -> List[Dict[str, Any]]:
        return await self._request('GET', '/jobs/active')

    async def migrate_to_durable(self, job_id: str) -> Dict[str, Any]:
        return await self._request('POST', f'/jobs/{job_id}/migrate')

    async def delete_job(self, job_id: str):
        await self._request('DELETE', f'/jobs/{job_id}')

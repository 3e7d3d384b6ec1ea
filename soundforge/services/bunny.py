"""
Bunny.net storage client.

Uploads go to the storage API, public reads come from the user's pull zone:
    PUT https://{storage_host}/{storage_zone}/{path}   (AccessKey header)
    GET https://{pull_zone}/{path}
"""
import logging
from urllib.parse import urlparse

import httpx

from soundforge.config import BUNNY_STORAGE_HOST
from soundforge.errors import TransientError
from soundforge.providers.base import send
from soundforge.services.credentials import CdnSettings

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    'mp3': 'audio/mpeg',
    'wav': 'audio/wav',
    'pcm': 'application/octet-stream',
    'safetensors': 'application/octet-stream',
}


def pull_zone_host(pull_zone: str) -> str:
    """Accept 'myzone', 'myzone.b-cdn.net' or a full URL."""
    value = pull_zone.strip()
    if '://' in value:
        value = urlparse(value).netloc
    value = value.strip('/')
    if '.' not in value:
        value = f'{value}.b-cdn.net'
    return value


def cdn_url(settings: CdnSettings, path: str) -> str:
    return f'https://{pull_zone_host(settings.pull_zone)}/{path.lstrip("/")}'


class BunnyStorage:
    """Copies remote files into a user's Bunny.net storage zone."""

    def __init__(self, http: httpx.AsyncClient, storage_host: str = BUNNY_STORAGE_HOST):
        self._http = http
        self._storage_host = storage_host

    async def upload_from_url(self, settings: CdnSettings, source_url: str, path: str) -> str:
        """
        Download source_url and store it at path.

        PUT overwrites, so uploading the same path twice yields the same
        object and the same public URL.

        Returns:
            Public CDN URL of the stored file
        """
        try:
            download = await self._http.get(source_url)
        except httpx.TimeoutException as e:
            raise TransientError('Timed out downloading provider audio') from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransientError(f'Could not download provider audio: {e}') from e
        if download.status_code >= 400:
            raise TransientError(f'Provider audio download failed with status {download.status_code}')

        extension = path.rsplit('.', 1)[-1].lower()
        await send(
            self._http,
            'PUT',
            f'https://{self._storage_host}/{settings.storage_zone}/{path.lstrip("/")}',
            provider='bunny',
            headers={
                'AccessKey': settings.api_key,
                'Content-Type': CONTENT_TYPES.get(extension, 'application/octet-stream'),
            },
            content=download.content,
        )

        url = cdn_url(settings, path)
        logger.info('Uploaded %d bytes to %s', len(download.content), url)
        return url

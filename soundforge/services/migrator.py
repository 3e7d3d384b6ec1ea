"""
Copies ephemeral provider audio into the user's durable CDN storage.
"""
import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from soundforge.config import MIGRATION_TIMEOUT_SECONDS
from soundforge.errors import SoundForgeError
from soundforge.models.job import Job, JobKind
from soundforge.services.bunny import BunnyStorage
from soundforge.services.credentials import CdnSettings
from soundforge.services.http import get_http_client

logger = logging.getLogger(__name__)

STORAGE_FOLDERS = {
    JobKind.music_generation.value: 'music',
    JobKind.voice_conversion.value: 'voice-conversions',
    JobKind.voice_clone.value: 'voice-clones',
}

KNOWN_EXTENSIONS = ('mp3', 'wav', 'pcm', 'flac', 'ogg', 'safetensors')


class MigrationOutcome(str, enum.Enum):
    """How a migration attempt ended."""
    migrated = 'migrated'
    skipped = 'skipped'  # no CDN configured
    failed = 'failed'  # tried, kept the ephemeral URL


@dataclass
class MigrationResult:
    outcome: MigrationOutcome
    output_url: str
    error: Optional[str] = None

    @property
    def stored(self) -> bool:
        return self.outcome == MigrationOutcome.migrated


def storage_path(job: Job, source_url: str) -> str:
    """
    Destination key for a job's output.

    Depends only on the job id, kind and file extension, so every attempt for
    the same job writes the same object.
    """
    suffix = urlparse(source_url).path.rsplit('/', 1)[-1]
    extension = suffix.rsplit('.', 1)[-1].lower() if '.' in suffix else ''
    if extension not in KNOWN_EXTENSIONS:
        extension = 'mp3'
    folder = STORAGE_FOLDERS.get(job.kind, 'audio')
    return f'{folder}/{job.id}.{extension}'


class DurableStorageMigrator:
    """Best-effort, time-bounded copy of job output to the CDN."""

    def __init__(self, storage: BunnyStorage, timeout: float = MIGRATION_TIMEOUT_SECONDS):
        self._storage = storage
        self._timeout = timeout

    async def migrate(self, settings: Optional[CdnSettings], job: Job, source_url: str) -> MigrationResult:
        if settings is None:
            return MigrationResult(outcome=MigrationOutcome.skipped, output_url=source_url)

        path = storage_path(job, source_url)
        try:
            durable_url = await asyncio.wait_for(
                self._storage.upload_from_url(settings, source_url, path),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning('CDN upload for job %s timed out after %.0fs', job.id, self._timeout)
            return MigrationResult(
                outcome=MigrationOutcome.failed,
                output_url=source_url,
                error='CDN upload timed out',
            )
        except SoundForgeError as e:
            logger.warning('CDN upload for job %s failed: %s', job.id, e.message)
            return MigrationResult(outcome=MigrationOutcome.failed, output_url=source_url, error=e.message)
        except Exception as e:
            logger.exception('CDN upload for job %s failed unexpectedly', job.id)
            return MigrationResult(
                outcome=MigrationOutcome.failed,
                output_url=source_url,
                error=str(e) or type(e).__name__,
            )

        return MigrationResult(outcome=MigrationOutcome.migrated, output_url=durable_url)


# Singleton instance
_migrator: Optional[DurableStorageMigrator] = None


def get_migrator() -> DurableStorageMigrator:
    """Get the migrator singleton instance."""
    global _migrator
    if _migrator is None:
        _migrator = DurableStorageMigrator(BunnyStorage(get_http_client()))
    return _migrator


def reset_migrator():
    """Reset the migrator singleton (for testing)."""
    global _migrator
    _migrator = None

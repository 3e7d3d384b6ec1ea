"""
Job model for provider-backed generation, cloning and conversion tasks.
"""
import uuid
import enum
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, DateTime, Integer, Boolean, JSON, ForeignKey
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class JobStatus(str, enum.Enum):
    """Status states for provider jobs."""
    pending = 'pending'
    processing = 'processing'
    completed = 'completed'
    failed = 'failed'

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.completed, JobStatus.failed)


ACTIVE_STATUSES = (JobStatus.pending.value, JobStatus.processing.value)
TERMINAL_STATUSES = (JobStatus.completed.value, JobStatus.failed.value)


class JobKind(str, enum.Enum):
    """What the provider is asked to produce."""
    music_generation = 'music_generation'
    voice_clone = 'voice_clone'
    voice_conversion = 'voice_conversion'


class Provider(str, enum.Enum):
    """External services that fulfil jobs."""
    elevenlabs = 'elevenlabs'
    minimax_v2 = 'minimax-v2'
    minimax_v25 = 'minimax-v2.5'
    minimax_clone = 'minimax-clone'
    qwen_clone = 'qwen-clone'
    amphion_svc = 'amphion-svc'
    rvc_v2 = 'rvc-v2'


class Job(Base):
    """
    Represents one request to a third-party provider, tracked to completion.

    Attributes:
        id: Unique job identifier (UUID)
        owner_id: User who submitted the job
        kind: music_generation, voice_clone or voice_conversion
        provider: Service fulfilling the job
        provider_job_id: Queue request id / prediction id issued by the provider
        status: Current job status
        progress: Best-effort progress (0-100)
        input_parameters: Parameters used for submission
        output_url: Produced audio (provider-hosted or CDN)
        output_stored: True once output_url points at durable storage
        error_message: Failure reason if failed
        created_at: Job creation timestamp
        completed_at: When the job reached a terminal state
        title: Display title
        is_favorite: Marked as favorite by the owner
        source_job_id: Music generation a voice conversion was made from
        provider_voice_id: Voice id issued by the provider (voice clones)
        preview_audio_url: Preview sample (voice clones)
        duration_ms: Audio duration if reported by the provider
        file_size_bytes: Audio size if reported by the provider
    """
    __tablename__ = 'jobs'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(100), nullable=False, index=True)
    kind = Column(String(32), nullable=False)
    provider = Column(String(32), nullable=False)
    provider_job_id = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default=JobStatus.pending.value)
    progress = Column(Integer, nullable=False, default=0)
    input_parameters = Column(JSON, nullable=False, default=dict)
    output_url = Column(Text, nullable=True)
    output_stored = Column(Boolean, nullable=False, default=False)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    completed_at = Column(DateTime, nullable=True)
    title = Column(String(200), nullable=True)
    is_favorite = Column(Boolean, nullable=False, default=False)
    source_job_id = Column(String(36), ForeignKey('jobs.id', ondelete='SET NULL'), nullable=True)
    provider_voice_id = Column(String(255), nullable=True)
    preview_audio_url = Column(Text, nullable=True)
    duration_ms = Column(Integer, nullable=True)
    file_size_bytes = Column(Integer, nullable=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self):
        return f'<Job {self.id} kind={self.kind} status={self.status}>'

"""
Pydantic schemas for Job API operations.
"""
from datetime import datetime
from typing import Any, Dict, Optional, List
from pydantic import BaseModel, Field, ConfigDict

from soundforge.models.job import Provider


class AudioSettings(BaseModel):
    """MiniMax audio quality settings."""
    sample_rate: Optional[int] = Field(None, description='16000, 24000, 32000 or 44100')
    bitrate: Optional[int] = Field(None, description='32000, 64000, 128000 or 256000')
    format: Optional[str] = Field(None, description='mp3, wav or pcm')


class MusicGenerationCreate(BaseModel):
    """Schema for submitting a music generation."""
    provider: Provider = Field(..., description='elevenlabs, minimax-v2 or minimax-v2.5')
    prompt: Optional[str] = Field(None, description='Description (elevenlabs) or style prompt (minimax)')
    lyrics: Optional[str] = Field(None, description='Lyrics (minimax-v2, minimax-v2.5)')
    duration_ms: Optional[int] = Field(None, description='Track length in ms (elevenlabs)')
    force_instrumental: Optional[bool] = Field(None, description='No vocals (elevenlabs)')
    audio_settings: Optional[AudioSettings] = None
    title: Optional[str] = Field(None, max_length=200)

    def provider_params(self) -> Dict[str, Any]:
        return self.model_dump(exclude={'provider', 'title'}, exclude_none=True)


class JobResponse(BaseModel):
    """Schema for job response."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    kind: str
    provider: str
    provider_job_id: str
    status: str
    progress: int
    input_parameters: Dict[str, Any]
    output_url: Optional[str]
    output_stored: bool
    error_message: Optional[str]
    created_at: datetime
    completed_at: Optional[datetime]
    title: Optional[str]
    is_favorite: bool
    source_job_id: Optional[str]
    provider_voice_id: Optional[str]
    preview_audio_url: Optional[str]
    duration_ms: Optional[int]
    file_size_bytes: Optional[int]


class JobListResponse(BaseModel):
    """Schema for paginated job list response."""
    jobs: List[JobResponse]
    total: int
    limit: int
    offset: int


class JobStatusResponse(BaseModel):
    """Schema for the result of a status check."""
    id: str
    status: str
    progress: int
    output_url: Optional[str] = None
    output_stored: bool = False
    error: Optional[str] = None
    logs: List[str] = Field(default_factory=list)
    storage: Optional[str] = Field(None, description='migrated, skipped or failed when the job just completed')


class JobTitleUpdate(BaseModel):
    """Schema for renaming a job."""
    title: Optional[str] = Field(None, max_length=200)


class MigrationResponse(BaseModel):
    """Schema for an explicit CDN upload."""
    id: str
    output_url: str
    output_stored: bool


class FavoriteResponse(BaseModel):
    id: str
    is_favorite: bool

"""
Pydantic schemas for API request/response validation.
"""
from soundforge.schemas.job import (
    JobListResponse,
    JobResponse,
    JobStatusResponse,
    JobTitleUpdate,
    MigrationResponse,
    MusicGenerationCreate,
)
from soundforge.schemas.voice import SingerListResponse, VoiceCloneCreate, VoiceConversionCreate
from soundforge.schemas.credential import CredentialStatusResponse, CredentialUpdate

__all__ = [
    'JobListResponse',
    'JobResponse',
    'JobStatusResponse',
    'JobTitleUpdate',
    'MigrationResponse',
    'MusicGenerationCreate',
    'SingerListResponse',
    'VoiceCloneCreate',
    'VoiceConversionCreate',
    'CredentialStatusResponse',
    'CredentialUpdate',
]

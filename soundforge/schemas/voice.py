"""
Pydantic schemas for voice cloning and conversion.
"""
from typing import Any, Dict, Optional, List
from pydantic import BaseModel, Field

from soundforge.models.job import Provider


class VoiceCloneCreate(BaseModel):
    """Schema for submitting a voice clone."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    provider: Provider = Field(..., description='minimax-clone or qwen-clone')
    audio_url: str = Field(..., description='Reference recording')
    noise_reduction: Optional[bool] = None
    volume_normalization: Optional[bool] = None
    preview_text: Optional[str] = Field(None, description='MiniMax preview sentence')
    reference_text: Optional[str] = Field(None, description='Transcript of the recording (Qwen)')

    def provider_params(self) -> Dict[str, Any]:
        return self.model_dump(exclude={'provider'}, exclude_none=True)


class VoiceConversionCreate(BaseModel):
    """Schema for converting the vocals of a completed music generation."""
    provider: Provider = Field(..., description='amphion-svc or rvc-v2')
    source_job_id: str = Field(..., description='Completed music generation to convert')
    target_singer: Optional[str] = Field(None, description='Preset singer (amphion-svc)')
    rvc_model_url: Optional[str] = Field(None, description='RVC model download URL (rvc-v2)')
    rvc_model_name: Optional[str] = None
    pitch_shift: Optional[float] = Field(None, description='Semitones, -12 to 12')
    title: Optional[str] = Field(None, max_length=200)

    def provider_params(self) -> Dict[str, Any]:
        return self.model_dump(exclude={'provider', 'title'}, exclude_none=True)


class SingerCategory(BaseModel):
    category: str
    singers: List[str]


class SingerListResponse(BaseModel):
    """Preset singers available for Amphion SVC."""
    categories: List[SingerCategory]

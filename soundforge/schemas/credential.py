"""
Pydantic schemas for provider credentials.
"""
from typing import Dict, Optional
from pydantic import BaseModel, Field


class CredentialUpdate(BaseModel):
    """Schema for storing a provider key."""
    api_key: str = Field(..., min_length=1)
    storage_zone: Optional[str] = Field(None, description='Bunny.net storage zone')
    pull_zone: Optional[str] = Field(None, description='Bunny.net pull zone hostname')


class CredentialStatusResponse(BaseModel):
    """Which services the user has a key for. Keys are never returned."""
    services: Dict[str, bool]
    platform_access: bool

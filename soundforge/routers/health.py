"""
Health check endpoint.
"""
from pydantic import BaseModel
from fastapi import APIRouter

from soundforge.config import APP_VERSION, MOCK_PROVIDERS


router = APIRouter(tags=['health'])


class HealthResponse(BaseModel):
    """Health check response schema."""
    status: str
    mock_providers: bool
    version: str


@router.get('/health', response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Check server health status.

    Fast response - no database queries, no provider calls.
    """
    return HealthResponse(
        status='ok',
        mock_providers=MOCK_PROVIDERS,
        version=APP_VERSION,
    )

"""
FastAPI routers.
"""
from soundforge.routers.health import router as health_router
from soundforge.routers.jobs import router as jobs_router
from soundforge.routers.music import router as music_router
from soundforge.routers.voices import router as voices_router
from soundforge.routers.credentials import router as credentials_router

__all__ = ['health_router', 'jobs_router', 'music_router', 'voices_router', 'credentials_router']

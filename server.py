#!/usr/bin/env python3
"""
SoundForge FastAPI Server

Submits music generation, voice cloning and voice conversion jobs to
third-party providers, tracks them to completion and copies finished audio to
the user's own CDN storage.
"""
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from soundforge.config import APP_NAME, APP_VERSION, MOCK_PROVIDERS, SERVER_HOST, SERVER_PORT
from soundforge.database import init_db, close_db
from soundforge.errors import SoundForgeError
from soundforge.providers import get_provider_registry, reset_provider_registry
from soundforge.routers import (
    credentials_router,
    health_router,
    jobs_router,
    music_router,
    voices_router,
)
from soundforge.services.http import close_http_client
from soundforge.services.migrator import reset_migrator


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Startup:
        - Initialize database and create tables
        - Build the provider registry

    Shutdown:
        - Close the shared HTTP client
        - Close database connections
    """
    print(f'Starting {APP_NAME} v{APP_VERSION}...')

    # Initialize database
    print('Initializing database...')
    await init_db()

    registry = get_provider_registry()
    if MOCK_PROVIDERS:
        print('MOCK_PROVIDERS is set: no provider will be contacted')
    for kind in ('music_generation', 'voice_clone', 'voice_conversion'):
        providers = ', '.join(p.value for p in registry.providers_for(kind))
        print(f'{kind}: {providers}')

    print(f'Server ready at http://{SERVER_HOST}:{SERVER_PORT}')
    print('API documentation available at /docs')

    yield

    # Shutdown
    print('Shutting down...')

    await close_http_client()
    reset_provider_registry()
    reset_migrator()

    # Close database
    await close_db()

    print('Shutdown complete.')


# Create FastAPI application
app = FastAPI(
    title=APP_NAME,
    description='Provider-backed music generation, voice cloning and voice conversion.',
    version=APP_VERSION,
    lifespan=lifespan,
)


@app.exception_handler(SoundForgeError)
async def soundforge_error_handler(request: Request, exc: SoundForgeError):
    return JSONResponse(
        status_code=exc.status_code,
        content={'detail': exc.message, 'code': exc.code},
    )


# Register routers
app.include_router(health_router)
app.include_router(music_router)
app.include_router(voices_router)
app.include_router(jobs_router)
app.include_router(credentials_router)


if __name__ == '__main__':
    uvicorn.run(
        app,
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=False,
        log_level='info',
    )

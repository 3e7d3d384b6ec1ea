"""
Application configuration and paths.
"""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_ignore_empty=True, extra='ignore')

    # Server
    SOUNDFORGE_HOST: str = '127.0.0.1'
    SOUNDFORGE_PORT: int = 5111
    SOUNDFORGE_DATA_DIR: Path = Path.home() / '.soundforge'
    SOUNDFORGE_DATABASE_URL: Optional[str] = None

    # Mock mode never contacts providers. Only configuration can turn it on.
    MOCK_PROVIDERS: bool = False
    MOCK_DELAY_SECONDS: float = 2.0

    # Billing gate: when disabled every user may submit jobs
    PLATFORM_ACCESS_REQUIRED: bool = True

    # Network timeouts (seconds)
    PROVIDER_TIMEOUT_SECONDS: float = 30.0
    MINIMAX_TIMEOUT_SECONDS: float = 300.0
    MIGRATION_TIMEOUT_SECONDS: float = 60.0

    # Client poller
    POLL_INTERVAL_SECONDS: float = 3.0

    # Provider endpoints
    FAL_QUEUE_BASE_URL: str = 'https://queue.fal.run'
    MINIMAX_API_BASE: str = 'https://api.minimax.io'
    REPLICATE_API_BASE: str = 'https://api.replicate.com'
    BUNNY_STORAGE_HOST: str = 'storage.bunnycdn.com'

    # Model refs. Replicate refs are 'owner/name' (latest version) or 'owner/name:version'.
    FAL_QWEN_VOICE_CLONE_MODEL: str = 'fal-ai/qwen-3-tts/clone-voice'
    REPLICATE_AMPHION_SVC_MODEL: str = 'amphion/singing-voice-conversion'
    REPLICATE_RVC_MODEL: str = 'zsxkib/realistic-voice-cloning'


settings = Settings()

# Application identity
APP_NAME = 'SoundForge'
APP_VERSION = '0.1.0'

# Server configuration
SERVER_HOST = settings.SOUNDFORGE_HOST
SERVER_PORT = settings.SOUNDFORGE_PORT

# Data directory (database lives here)
DATA_DIR = settings.SOUNDFORGE_DATA_DIR

# Database configuration
DATABASE_PATH = DATA_DIR / 'soundforge.db'
DATABASE_URL = settings.SOUNDFORGE_DATABASE_URL or f'sqlite+aiosqlite:///{DATABASE_PATH}'

# Header carrying the authenticated user id (set by the auth proxy in front of us)
OWNER_HEADER = 'X-User-Id'

MOCK_PROVIDERS = settings.MOCK_PROVIDERS
MOCK_DELAY_SECONDS = settings.MOCK_DELAY_SECONDS
MOCK_AUDIO_URL = 'https://www.soundhelix.com/examples/mp3/SoundHelix-Song-2.mp3'

PLATFORM_ACCESS_REQUIRED = settings.PLATFORM_ACCESS_REQUIRED

PROVIDER_TIMEOUT_SECONDS = settings.PROVIDER_TIMEOUT_SECONDS
MINIMAX_TIMEOUT_SECONDS = settings.MINIMAX_TIMEOUT_SECONDS
MIGRATION_TIMEOUT_SECONDS = settings.MIGRATION_TIMEOUT_SECONDS

POLL_INTERVAL_SECONDS = settings.POLL_INTERVAL_SECONDS

# fal.ai queue
FAL_QUEUE_BASE_URL = settings.FAL_QUEUE_BASE_URL
FAL_ELEVENLABS_MUSIC_MODEL = 'fal-ai/elevenlabs/music'
FAL_MINIMAX_MUSIC_MODEL = 'fal-ai/minimax-music/v2'
FAL_MINIMAX_VOICE_CLONE_MODEL = 'fal-ai/minimax/voice-clone'
FAL_QWEN_VOICE_CLONE_MODEL = settings.FAL_QWEN_VOICE_CLONE_MODEL

# MiniMax direct API (music v2.5 is synchronous)
MINIMAX_API_BASE = settings.MINIMAX_API_BASE
MINIMAX_MUSIC_MODEL = 'music-2.5'

# Replicate predictions
REPLICATE_API_BASE = settings.REPLICATE_API_BASE
REPLICATE_AMPHION_SVC_MODEL = settings.REPLICATE_AMPHION_SVC_MODEL
REPLICATE_RVC_MODEL = settings.REPLICATE_RVC_MODEL

# Bunny.net storage
BUNNY_STORAGE_HOST = settings.BUNNY_STORAGE_HOST


def ensure_directories():
    """Create required directories if they don't exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)

"""
SoundForge: bring-your-own-key music generation and voice conversion service.
"""
from soundforge.config import APP_VERSION as __version__

__all__ = ['__version__']

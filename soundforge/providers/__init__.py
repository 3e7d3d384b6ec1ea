"""
Provider adapters and the (kind, provider) lookup table.
"""
from typing import Dict, List, Optional, Tuple

import httpx

from soundforge.config import MOCK_PROVIDERS
from soundforge.errors import ValidationError
from soundforge.models.job import JobKind, Provider
from soundforge.providers.base import ProviderAdapter, ProviderState, ProviderStatus, SubmitResult
from soundforge.providers.fal import (
    ElevenLabsMusicAdapter,
    MiniMaxV2MusicAdapter,
    MiniMaxVoiceCloneAdapter,
    QwenVoiceCloneAdapter,
)
from soundforge.providers.minimax import MiniMaxMusicAdapter
from soundforge.providers.mock import MockAdapter
from soundforge.providers.replicate import AMPHION_SINGERS, AmphionSVCAdapter, RVCAdapter
from soundforge.services.http import get_http_client

ADAPTER_CLASSES = (
    ElevenLabsMusicAdapter,
    MiniMaxV2MusicAdapter,
    MiniMaxMusicAdapter,
    MiniMaxVoiceCloneAdapter,
    QwenVoiceCloneAdapter,
    AmphionSVCAdapter,
    RVCAdapter,
)


class ProviderRegistry:
    """Maps (job kind, provider) to the adapter that serves it."""

    def __init__(self):
        self._adapters: Dict[Tuple[JobKind, Provider], ProviderAdapter] = {}

    def register(self, adapter: ProviderAdapter):
        self._adapters[(adapter.kind, adapter.provider)] = adapter

    def get(self, kind: JobKind, provider: Provider) -> ProviderAdapter:
        try:
            return self._adapters[(JobKind(kind), Provider(provider))]
        except (KeyError, ValueError):
            raise ValidationError(f'Provider {provider} does not support {kind}') from None

    def providers_for(self, kind: JobKind) -> List[Provider]:
        return [provider for (k, provider) in self._adapters if k == kind]


def build_registry(http: httpx.AsyncClient, mock: bool = False) -> ProviderRegistry:
    """Register every adapter, wrapped in MockAdapter when mock mode is on."""
    registry = ProviderRegistry()
    for adapter_class in ADAPTER_CLASSES:
        adapter = adapter_class(http)
        registry.register(MockAdapter(adapter) if mock else adapter)
    return registry


# Singleton instance
_registry: Optional[ProviderRegistry] = None


def get_provider_registry() -> ProviderRegistry:
    """Get the provider registry singleton instance."""
    global _registry
    if _registry is None:
        _registry = build_registry(get_http_client(), mock=MOCK_PROVIDERS)
    return _registry


def reset_provider_registry():
    """Reset the provider registry singleton (for testing)."""
    global _registry
    _registry = None


__all__ = [
    'AMPHION_SINGERS',
    'ProviderAdapter',
    'ProviderRegistry',
    'ProviderState',
    'ProviderStatus',
    'SubmitResult',
    'MockAdapter',
    'build_registry',
    'get_provider_registry',
    'reset_provider_registry',
]

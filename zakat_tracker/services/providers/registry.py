"""Provider registry and selection logic."""
from zakat_tracker.services.config import get_goldapi_key, get_metals_api_key
from . import MetalProvider
from .metal_providers import (
    ChainedMetalProvider,
    FallbackMetalProvider,
    GoldAPIProvider,
    MetalsLiveProvider,
)


def get_metal_provider() -> MetalProvider:
    """Get configured metal provider.

    Priority:
    1. metals.live (if key configured)
    2. GoldAPI (if key configured)
    3. Fallback (no prices; static table takes over)

    With both keys set, GoldAPI is tried when metals.live fails.
    """
    providers = []
    if get_metals_api_key():
        providers.append(MetalsLiveProvider())
    if get_goldapi_key():
        providers.append(GoldAPIProvider())

    if not providers:
        return FallbackMetalProvider()
    if len(providers) == 1:
        return providers[0]
    return ChainedMetalProvider(providers)


def get_provider_status() -> dict:
    """Return status of the configured metal provider."""
    metal = get_metal_provider()
    return {
        'metals': {
            'provider': metal.name,
            'requires_key': metal.requires_api_key,
            'configured': metal.is_configured(),
        },
    }

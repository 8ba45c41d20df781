"""Backend client selection."""

from typing import Dict, Optional, Type

import httpx

from ..config import Settings, settings as default_settings
from ..errors import ConfigurationError
from .backend import CacheBackendClient
from .presigned import PresignedCacheClient
from .staged import StagedCacheClient

BACKENDS: Dict[str, Type[CacheBackendClient]] = {
    PresignedCacheClient.name: PresignedCacheClient,
    StagedCacheClient.name: StagedCacheClient,
}


def get_cache_client(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> CacheBackendClient:
    """Create the backend client selected by ``TURBOGHA_BACKEND``.

    Args:
        settings: Resolved configuration (defaults to global settings)
        transport: Optional httpx transport

    Returns:
        New client instance; the caller must close it

    Raises:
        ConfigurationError: If the remote cache is not configured or the
            backend name is unknown
    """
    settings = settings or default_settings
    if not settings.valid:
        raise ConfigurationError("Cache API env vars are not set")

    backend = settings.TURBOGHA_BACKEND.lower()
    if backend not in BACKENDS:
        raise ConfigurationError(
            f"Unknown cache backend '{settings.TURBOGHA_BACKEND}' "
            f"(expected one of: {', '.join(sorted(BACKENDS))})"
        )
    return BACKENDS[backend](settings, transport=transport)

"""Storage layer for the remote cache service and local streams."""

from .backend import CacheBackendClient
from .client import BACKENDS, get_cache_client
from .models import (
    CacheEntry,
    QueryOutcome,
    QueryResult,
    ReservationHandle,
    ReserveOutcome,
    ReserveResult,
)
from .presigned import PresignedCacheClient
from .staged import StagedCacheClient
from .streams import (
    ArtifactStream,
    iter_file,
    iter_parts,
    replace_file_from_stream,
    write_stream_to_file,
)

__all__ = [
    "ArtifactStream",
    "BACKENDS",
    "CacheBackendClient",
    "CacheEntry",
    "PresignedCacheClient",
    "QueryOutcome",
    "QueryResult",
    "ReservationHandle",
    "ReserveOutcome",
    "ReserveResult",
    "StagedCacheClient",
    "get_cache_client",
    "iter_file",
    "iter_parts",
    "replace_file_from_stream",
    "write_stream_to_file",
]

"""Cache mediator: store and fetch Turborepo artifacts by content hash.

Each call picks one of two modes from the configuration:

- remote: the CI cache service, through reserve/upload and query/download
- filesystem: ``<tempDir>/<hash>.tg.bin`` when the service is not configured

The modes never mix within a call.
"""

import logging
from dataclasses import dataclass, field
from typing import AsyncIterable, Callable, Optional, Protocol

from .config import Settings, settings as default_settings
from .constants import CACHE_VERSION, get_cache_key, get_fs_cache_path, split_cache_key
from .errors import OperationError
from .storage.backend import CacheBackendClient
from .storage.client import get_cache_client
from .storage.streams import ArtifactStream, replace_file_from_stream

logger = logging.getLogger(__name__)


class CacheLog(Protocol):
    """Anything that accepts informational log lines."""

    def info(self, message: str) -> None: ...


@dataclass
class RequestContext:
    """Per-request collaborators passed in by the caller."""

    log: CacheLog = field(default_factory=lambda: logger)

    @classmethod
    def default(cls) -> "RequestContext":
        return cls()


class CacheMediator:
    """Entry point for saving and fetching cached artifacts."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client_factory: Callable[[Settings], CacheBackendClient] = get_cache_client,
    ):
        """Initialize the mediator.

        Args:
            settings: Configuration (defaults to global settings)
            client_factory: Builds a backend client for one call
        """
        self.settings = settings or default_settings
        self.client_factory = client_factory

    async def save_cache(
        self,
        ctx: RequestContext,
        content_hash: str,
        tag: Optional[str],
        stream: AsyncIterable[bytes],
        size: Optional[int] = None,
    ) -> None:
        """Store an artifact.

        A reservation conflict means another writer already owns the entry;
        the call then returns without writing anything.

        Args:
            ctx: Request context
            content_hash: Turborepo content hash
            tag: Optional artifact tag (ignored in filesystem mode)
            stream: Artifact bytes; consumed by this call
            size: Artifact size in bytes, when known

        Raises:
            OperationError: If the remote cache fails or returns an incomplete
                reservation
            ConfigurationError: If the backend client cannot be built
        """
        if not self.settings.valid:
            ctx.log.info("Using filesystem cache because cache API env vars are not set")
            path = get_fs_cache_path(content_hash, self.settings)
            await replace_file_from_stream(stream, path)
            return

        key = get_cache_key(content_hash, tag, self.settings)
        if size is None and isinstance(stream, ArtifactStream) and stream.size:
            size = stream.size

        async with self.client_factory(self.settings) as client:
            result = await client.reserve(key, CACHE_VERSION, size)

            if not result.success:
                ctx.log.info(f"Cache {key} is already reserved, skipping save")
                return

            handle = result.handle
            if handle is None or not handle.complete:
                received = handle.model_dump_json() if handle is not None else "null"
                raise OperationError(f"Unable to reserve cache (received: {received})")

            ctx.log.info(f"Reserved cache {handle.cache_id}")
            await client.save(handle.cache_id, handle.upload_id, handle.upload_urls, stream)
            ctx.log.info(f"Saved cache {handle.cache_id} for {content_hash}")

    async def get_cache(self, ctx: RequestContext, content_hash: str) -> Optional[ArtifactStream]:
        """Fetch an artifact.

        Args:
            ctx: Request context
            content_hash: Turborepo content hash

        Returns:
            Artifact stream with its size and tag, or None on a cache miss.
            The caller must consume or close the stream.

        Raises:
            OperationError: If the remote cache fails, including a found
                entry whose content cannot be downloaded
        """
        if not self.settings.valid:
            path = get_fs_cache_path(content_hash, self.settings)
            if not path.exists():
                return None
            return ArtifactStream.from_file(path)

        client = self.client_factory(self.settings)
        try:
            artifact = await self._get_remote(ctx, client, content_hash)
        except BaseException:
            await client.aclose()
            raise

        if artifact is None:
            await client.aclose()
            return None

        artifact.add_close_callback(client.aclose)
        return artifact

    async def _get_remote(
        self, ctx: RequestContext, client: CacheBackendClient, content_hash: str
    ) -> Optional[ArtifactStream]:
        cache_key = get_cache_key(content_hash, settings=self.settings)
        result = await client.query(cache_key, CACHE_VERSION)
        ctx.log.info(f"Cache lookup for {cache_key}")

        if not result.success or result.entry is None:
            ctx.log.info("Cache lookup did not return data")
            return None

        found_key, tag = split_cache_key(result.entry.cache_key)
        if found_key != cache_key:
            ctx.log.info(f"Cache key mismatch: {found_key} != {cache_key}")
            return None

        artifact = await client.download(result.entry.archive_location)
        artifact.tag = tag
        return artifact


_default_mediator: Optional[CacheMediator] = None


def get_mediator() -> CacheMediator:
    """Return the mediator built from the global settings."""
    global _default_mediator
    if _default_mediator is None:
        _default_mediator = CacheMediator()
    return _default_mediator


async def save_cache(
    ctx: RequestContext,
    content_hash: str,
    tag: Optional[str],
    stream: AsyncIterable[bytes],
    size: Optional[int] = None,
) -> None:
    """Store an artifact with the default mediator."""
    await get_mediator().save_cache(ctx, content_hash, tag, stream, size)


async def get_cache(ctx: RequestContext, content_hash: str) -> Optional[ArtifactStream]:
    """Fetch an artifact with the default mediator."""
    return await get_mediator().get_cache(ctx, content_hash)

"""Cache key, version and path construction."""

from pathlib import Path
from typing import Optional

from .config import Settings, settings as default_settings

# Changing this invalidates every entry previously written to the remote cache
CACHE_VERSION = "turbogha_v2"

TAG_SEPARATOR = "#"


def get_cache_key(
    content_hash: str, tag: Optional[str] = None, settings: Optional[Settings] = None
) -> str:
    """Build the cache key for a content hash.

    Args:
        content_hash: Turborepo content hash
        tag: Optional artifact tag, appended as ``#tag``
        settings: Settings to read the key prefix from (defaults to global)

    Returns:
        ``prefix + content_hash`` with ``#tag`` appended when a tag is given
    """
    prefix = (settings or default_settings).TURBOGHA_CACHE_PREFIX
    key = f"{prefix}{content_hash}"
    if tag:
        key = f"{key}{TAG_SEPARATOR}{tag}"
    return key


def split_cache_key(cache_key: str) -> tuple[str, Optional[str]]:
    """Split ``baseKey#tag`` into its base key and tag.

    Args:
        cache_key: Key as reported by the remote cache

    Returns:
        Tuple of (base key, tag or None)
    """
    base, sep, tag = cache_key.partition(TAG_SEPARATOR)
    return base, (tag if sep and tag else None)


def get_fs_cache_path(content_hash: str, settings: Optional[Settings] = None) -> Path:
    """Path of the filesystem cache entry for a hash."""
    return (settings or default_settings).temp_dir / f"{content_hash}.tg.bin"


def get_temp_cache_path(cache_id: int | str, settings: Optional[Settings] = None) -> Path:
    """Path of the staging file used while uploading cache ``cache_id``."""
    return (settings or default_settings).temp_dir / f"cache-{cache_id}.tg.bin"

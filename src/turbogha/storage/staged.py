"""Whole-file upload variant.

The reservation returns only a cache id. The artifact is staged in a local
file so that its final size is known, uploaded in ranged chunks to the cache
resource, then committed with the total size.
"""

import logging
from typing import AsyncIterable, List

from ..constants import get_temp_cache_path
from .backend import CacheBackendClient
from .models import ReservationHandle
from .streams import iter_file, write_stream_to_file

logger = logging.getLogger(__name__)


class StagedCacheClient(CacheBackendClient):
    """Cache client for the single-id whole-file upload protocol."""

    name = "staged"

    def _parse_reservation(self, data: dict) -> ReservationHandle:
        cache_id = data.get("cacheId")
        return ReservationHandle(
            cache_id=cache_id,
            upload_id=str(cache_id),
            upload_urls=[f"{self.base_url}/caches/{cache_id}"],
        )

    async def _upload(
        self,
        cache_id: int,
        upload_id: str,
        upload_urls: List[str],
        stream: AsyncIterable[bytes],
    ) -> None:
        temp_path = get_temp_cache_path(cache_id, self.settings)
        url = upload_urls[0]

        try:
            size = await write_stream_to_file(stream, temp_path)
            logger.debug(f"Staged cache {cache_id} in {temp_path} ({size} bytes)")

            offset = 0
            async for chunk in iter_file(temp_path, self.chunk_size):
                end = offset + len(chunk) - 1
                message = f"Unable to upload chunk {offset}-{end} of cache {cache_id}"
                response = await self._request(
                    "PATCH",
                    url,
                    message,
                    content=chunk,
                    headers={
                        "Content-Type": "application/octet-stream",
                        "Content-Range": f"bytes {offset}-{end}/*",
                    },
                )
                if response.is_error:
                    self._raise_for_response(response, message)
                offset += len(chunk)

            message = f"Unable to commit cache {cache_id}"
            response = await self._request("POST", url, message, json={"size": size})
            if response.is_error:
                self._raise_for_response(response, message)
        finally:
            temp_path.unlink(missing_ok=True)

"""Pre-signed multi-URL upload variant.

The reservation returns an upload session id and a batch of pre-signed part
URLs sized from the announced artifact size. Parts are uploaded directly to
the blob store and the session is committed with the collected ETags.
"""

import logging
from typing import AsyncIterable, List

from ..errors import OperationError
from .backend import CacheBackendClient
from .models import ReservationHandle
from .streams import iter_parts

logger = logging.getLogger(__name__)


class PresignedCacheClient(CacheBackendClient):
    """Cache client for the pre-signed part upload protocol."""

    name = "presigned"

    def _parse_reservation(self, data: dict) -> ReservationHandle:
        return ReservationHandle(
            cache_id=data.get("cacheId"),
            upload_id=data.get("uploadId"),
            upload_urls=data.get("uploadUrls"),
        )

    async def _upload(
        self,
        cache_id: int,
        upload_id: str,
        upload_urls: List[str],
        stream: AsyncIterable[bytes],
    ) -> None:
        parts = []
        total = 0

        async for part in iter_parts(stream, self.chunk_size):
            part_number = len(parts) + 1
            if part_number > len(upload_urls):
                logger.error(
                    f"Unable to upload cache {cache_id}: "
                    f"artifact needs more than {len(upload_urls)} parts"
                )
                raise OperationError(
                    f"Unable to upload cache {cache_id}: "
                    f"artifact needs more than {len(upload_urls)} parts"
                )

            message = f"Unable to upload part {part_number} of cache {cache_id}"
            response = await self._request(
                "PUT",
                upload_urls[part_number - 1],
                message,
                api=False,
                content=part,
                headers={"Content-Type": "application/octet-stream"},
            )
            if response.is_error:
                self._raise_for_response(response, message)

            parts.append(
                {"partNumber": part_number, "etag": response.headers.get("etag", "")}
            )
            total += len(part)
            logger.debug(f"Uploaded part {part_number} of cache {cache_id} ({len(part)} bytes)")

        message = f"Unable to commit cache {cache_id}"
        response = await self._request(
            "POST",
            f"{self.base_url}/caches/{cache_id}/complete",
            message,
            json={"uploadId": upload_id, "size": total, "parts": parts},
        )
        if response.is_error:
            self._raise_for_response(response, message)

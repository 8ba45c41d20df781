"""Remote cache service client.

The remote cache exposes a reserve -> upload -> commit protocol for writes and
a query -> download protocol for reads. Two upload protocol variants exist;
each is implemented as a subclass of :class:`CacheBackendClient`.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterable, List, NoReturn, Optional

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..errors import ConfigurationError, IntegrityError, OperationError
from .models import CacheEntry, QueryResult, ReservationHandle, ReserveResult
from .streams import ArtifactStream

logger = logging.getLogger(__name__)

API_ACCEPT_HEADER = "application/json;api-version=6.0-preview.1"


def _response_body(response: httpx.Response) -> Any:
    """Return the decoded JSON body, or the raw text when it is not JSON."""
    try:
        return response.json()
    except ValueError:
        return response.text


def _content_length(response: httpx.Response) -> int:
    """Return the declared body size, 0 when the header is absent or unusable."""
    try:
        return max(int(response.headers.get("content-length") or 0), 0)
    except ValueError:
        return 0


class CacheBackendClient(ABC):
    """HTTP client for the remote cache service.

    One instance is used per mediator call; it owns a pooled
    ``httpx.AsyncClient`` that is released by :meth:`aclose`.
    """

    name: str = ""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            settings: Resolved configuration; must be valid
            transport: Optional httpx transport (used to fake the service)

        Raises:
            ConfigurationError: If the remote cache is not configured
        """
        if not settings.valid:
            raise ConfigurationError(
                "Cache API env vars are not set (ACTIONS_CACHE_URL, ACTIONS_RUNTIME_TOKEN)"
            )

        self.settings = settings
        self.base_url = settings.cache_url
        self.chunk_size = settings.TURBOGHA_UPLOAD_CHUNK_SIZE
        self._client = httpx.AsyncClient(
            timeout=settings.TURBOGHA_TIMEOUT,
            transport=transport,
            follow_redirects=True,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "CacheBackendClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _api_headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.settings.ACTIONS_RUNTIME_TOKEN}",
            "Accept": API_ACCEPT_HEADER,
        }

    async def _request(
        self,
        method: str,
        url: str,
        message: str,
        api: bool = True,
        headers: Optional[dict] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request, mapping transport failures to OperationError.

        Args:
            method: HTTP method
            url: Absolute URL
            message: Context prefix used for logs and errors
            api: Send the service auth headers (off for pre-signed URLs)
            headers: Extra request headers
            **kwargs: Passed to ``httpx.AsyncClient.request``

        Returns:
            The response, whatever its status

        Raises:
            OperationError: On timeout or connection failure
        """
        request_headers = self._api_headers() if api else {}
        request_headers.update(headers or {})

        try:
            return await self._client.request(method, url, headers=request_headers, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"{message}: request timed out")
            raise OperationError(f"{message}: request timed out") from e
        except httpx.RequestError as e:
            logger.error(f"{message}: {e}")
            raise OperationError(f"{message}: {e}") from e

    def _raise_for_response(self, response: httpx.Response, message: str) -> NoReturn:
        """Log a failed response and raise it as an OperationError."""
        body = _response_body(response)
        logger.error(f"{message}: {response.status_code} {response.reason_phrase}")
        logger.error(body if isinstance(body, str) else json.dumps(body))
        raise OperationError(
            f"{message}: {response.status_code} {response.reason_phrase}",
            status_code=response.status_code,
            body=body,
        )

    def _json(self, response: httpx.Response, message: str) -> dict:
        body = _response_body(response)
        if not isinstance(body, dict):
            logger.error(f"{message}: unexpected response body {body!r}")
            raise OperationError(
                f"{message}: unexpected response body",
                status_code=response.status_code,
                body=body,
            )
        return body

    async def reserve(
        self, key: str, version: str, size: Optional[int] = None
    ) -> ReserveResult:
        """Reserve a cache entry for upload.

        Args:
            key: Cache key
            version: Cache version
            size: Artifact size in bytes, when known

        Returns:
            Granted result with a handle, or a conflict when another writer
            already holds the key

        Raises:
            OperationError: On any other failure
        """
        message = "Unable to reserve cache"
        payload: dict = {"key": key, "version": version}
        if size:
            payload["cacheSize"] = size

        response = await self._request(
            "POST", f"{self.base_url}/caches", message, json=payload
        )

        if response.status_code == 409:
            logger.info(f"Cache {key} is already reserved")
            return ReserveResult.conflict()
        if response.is_error:
            self._raise_for_response(response, message)

        data = self._json(response, message)
        if not data.get("cacheId"):
            self._raise_for_response(response, message)

        try:
            handle = self._parse_reservation(data)
        except ValidationError as e:
            logger.error(f"{message}: invalid reservation {data}")
            raise OperationError(
                f"{message}: invalid reservation", status_code=response.status_code, body=data
            ) from e

        logger.info(f"Reserved cache {handle.cache_id}")
        return ReserveResult.granted(handle)

    @abstractmethod
    def _parse_reservation(self, data: dict) -> ReservationHandle:
        """Build a handle from a successful reservation response."""

    async def save(
        self,
        cache_id: int,
        upload_id: str,
        upload_urls: List[str],
        stream: AsyncIterable[bytes],
    ) -> None:
        """Upload an artifact into a reserved cache entry.

        Args:
            cache_id: Reserved cache identifier
            upload_id: Upload session identifier
            upload_urls: Upload target locations
            stream: Artifact bytes

        Raises:
            OperationError: If the upload fails
        """
        try:
            await self._upload(cache_id, upload_id, upload_urls, stream)
        except OperationError:
            raise
        except Exception as e:
            logger.error(f"Unable to upload cache {cache_id}: {e}")
            raise OperationError(f"Unable to upload cache {cache_id}: {e}") from e

        logger.info(f"Saved cache {cache_id}")

    @abstractmethod
    async def _upload(
        self,
        cache_id: int,
        upload_id: str,
        upload_urls: List[str],
        stream: AsyncIterable[bytes],
    ) -> None:
        """Transfer the artifact using the variant's upload protocol."""

    async def query(self, key: str, version: str) -> QueryResult:
        """Look up a cache entry.

        Args:
            key: Cache key (without tag)
            version: Cache version

        Returns:
            Found result with the matched entry, or not-found

        Raises:
            OperationError: On any failure other than a miss
        """
        message = "Unable to query cache"
        response = await self._request(
            "GET",
            f"{self.base_url}/cache",
            message,
            params={"keys": key, "version": version},
        )

        if response.status_code in (204, 404):
            return QueryResult.not_found()
        if response.is_error:
            self._raise_for_response(response, message)

        data = self._json(response, message)
        archive_location = data.get("archiveLocation")
        if not archive_location:
            return QueryResult.not_found()

        return QueryResult.found(
            CacheEntry(
                cache_key=str(data.get("cacheKey") or key),
                archive_location=archive_location,
            )
        )

    async def download(self, archive_location: str) -> ArtifactStream:
        """Open a download stream for an archive location.

        Args:
            archive_location: URL returned by :meth:`query`

        Returns:
            Stream of the artifact bytes; size from Content-Length (0 if absent)

        Raises:
            IntegrityError: If the location does not yield a readable body
            OperationError: On transport failure
        """
        message = "Unable to download cache"
        request = self._client.build_request("GET", archive_location)
        try:
            response = await self._client.send(request, stream=True)
        except httpx.TimeoutException as e:
            logger.error(f"{message}: request timed out")
            raise OperationError(f"{message}: request timed out") from e
        except httpx.RequestError as e:
            logger.error(f"{message}: {e}")
            raise OperationError(f"{message}: {e}") from e

        if response.is_error or response.status_code == 204:
            await response.aread()
            await response.aclose()
            logger.error(f"Failed to retrieve cache stream: {response.status_code}")
            raise IntegrityError(
                "Failed to retrieve cache stream",
                status_code=response.status_code,
                body=response.text,
            )

        size = _content_length(response)
        return ArtifactStream(response.aiter_bytes(), size=size, on_close=response.aclose)

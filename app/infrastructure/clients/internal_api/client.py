"""Async HTTP client for the internal REST API.

The notification layer never touches persistence directly. It reads spell
cast records and writes delivery bookkeeping through the internal API,
authenticating every call with the ``X-Internal-Client-Key`` header.

Every method returns an OperationResult; HTTP and transport failures are
classified, never raised.
"""

from typing import TYPE_CHECKING, Any, Dict, Optional

import httpx

from infrastructure.logging import get_module_logger
from infrastructure.operations import (
    OperationResult,
    classify_http_error,
    classify_http_status,
)

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()

CLIENT_KEY_HEADER = "X-Internal-Client-Key"
GENERATIONS_PATH = "/internal/v1/data/generations"
SPELL_CASTS_PATH = "/internal/v1/data/spells/casts"


class InternalApiClient:
    """Client for internal REST API calls made by the delivery pipeline.

    Attributes:
        base_url: Base URL for all requests
        timeout: Default timeout in seconds
    """

    def __init__(
        self,
        settings: "Settings",
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize the internal API client.

        Args:
            settings: Settings instance with the internal_api section
            http_client: Optional shared AsyncClient (tests inject one backed
                by httpx.MockTransport)
        """
        self.base_url = settings.internal_api.INTERNAL_API_BASE_URL.rstrip("/")
        self.timeout = settings.internal_api.INTERNAL_API_TIMEOUT_SECONDS
        self._client_key = settings.internal_api.INTERNAL_API_KEY_WEB
        self._http_client = http_client
        self._owns_client = http_client is None
        self._logger = logger.bind(component="internal_api_client")

        if not self._client_key:
            self._logger.warning("internal_api_key_missing")

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": "Generation-Delivery/1.0",
        }
        if self._client_key:
            headers[CLIENT_KEY_HEADER] = self._client_key
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self._headers(),
            )
        return self._http_client

    async def get(
        self, path: str, params: Optional[Dict[str, Any]] = None
    ) -> OperationResult:
        """Send GET request to an internal endpoint."""
        return await self._request("GET", path, params=params)

    async def put(self, path: str, json_data: Dict[str, Any]) -> OperationResult:
        """Send PUT request to an internal endpoint."""
        return await self._request("PUT", path, json_data=json_data)

    async def get_spell_cast(self, cast_id: str) -> OperationResult:
        """Fetch the execution record of one spell cast.

        Args:
            cast_id: Cast identifier

        Returns:
            OperationResult whose data is the decoded cast document
        """
        return await self.get(f"{SPELL_CASTS_PATH}/{cast_id}")

    async def update_generation(
        self, generation_id: str, updates: Dict[str, Any]
    ) -> OperationResult:
        """Write delivery bookkeeping fields onto a generation record."""
        return await self.put(f"{GENERATIONS_PATH}/{generation_id}", updates)

    async def _request(
        self,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> OperationResult:
        url = f"{self.base_url}{path}"
        log = self._logger.bind(method=method, path=path)
        log.debug("internal_api_request")

        try:
            response = await self._get_client().request(
                method,
                url,
                json=json_data,
                params=params,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            result = classify_http_error(exc, service="internal_api")
            log.error(
                "internal_api_request_failed",
                error=str(exc),
                error_code=result.error_code,
            )
            return result

        log = log.bind(status_code=response.status_code)

        if not response.is_success:
            result = classify_http_status(response, service="internal_api")
            log.warning(
                "internal_api_error_response",
                error=result.message,
                error_code=result.error_code,
            )
            return result

        data: Optional[Any] = None
        if response.content:
            try:
                data = response.json()
            except ValueError:
                log.warning("non_json_response", content=response.text[:200])
                data = response.text

        log.debug("internal_api_success")
        return OperationResult.success(data=data, message=f"{method} {path} succeeded")

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None
        self._logger.debug("internal_api_client_closed")

    async def __aenter__(self) -> "InternalApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

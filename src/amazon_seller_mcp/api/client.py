"""Selling Partner API request dispatcher.

Attaches a user's stored access token to outbound SP-API calls and routes
them to the regional host the seller authorized. The dispatcher never
refreshes tokens itself; callers check ``OAuthManager.is_authenticated``
first.
"""

import logging
import uuid
from datetime import datetime
from typing import Any

import httpx

from amazon_seller_mcp.auth.models import DEFAULT_REGION, Region
from amazon_seller_mcp.auth.token_storage import TokenStore
from amazon_seller_mcp.exceptions import NotAuthenticatedError, SellingPartnerAPIError

logger = logging.getLogger(__name__)

# SP-API regional base URLs
API_ENDPOINTS = {
    Region.US_EAST_1: "https://sellingpartnerapi-na.amazon.com",
    Region.EU_WEST_1: "https://sellingpartnerapi-eu.amazon.com",
    Region.AP_NORTHEAST_1: "https://sellingpartnerapi-fe.amazon.com",
}

DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


def api_base_url(region: Region | str | None) -> str:
    """Resolve the SP-API host for a region.

    Unknown or missing regions fall back to the North America host.
    """
    try:
        return API_ENDPOINTS[Region(region)]
    except ValueError:
        return API_ENDPOINTS[DEFAULT_REGION]


class SellingPartnerClient:
    """Authenticated JSON client for the Selling Partner API.

    Attributes:
        storage: Token store the access token is read from.
    """

    def __init__(
        self,
        storage: TokenStore,
        http_client: httpx.AsyncClient | None = None,
        timeout: httpx.Timeout = DEFAULT_TIMEOUT,
    ) -> None:
        self.storage = storage
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._timeout = timeout

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create shared HTTP client with connection pooling.

        Returns:
            Shared httpx.AsyncClient instance.
        """
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                http2=True,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                timeout=self._timeout,
            )
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client and release resources."""
        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def request(
        self,
        user_id: str,
        endpoint: str,
        method: str = "GET",
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated request to SP-API.

        Args:
            user_id: User whose stored access token to use.
            endpoint: API path including any query string.
            method: HTTP method (GET, POST, etc.).
            body: Optional JSON body.

        Returns:
            JSON response as a dictionary (empty for bodiless responses).

        Raises:
            NotAuthenticatedError: If the user has no stored access token.
            SellingPartnerAPIError: If SP-API answers with a non-success status.
            httpx.HTTPError: On transport failures.
        """
        bundle = await self.storage.get(user_id)
        if bundle is None or not bundle.access_token:
            raise NotAuthenticatedError("No valid access token")

        url = f"{api_base_url(bundle.region)}{endpoint}"
        client = await self._get_http_client()

        request_id = str(uuid.uuid4())
        start_time = datetime.now()
        logger.info(f"Request {request_id}: Starting {method} {endpoint}")

        response = await client.request(
            method=method,
            url=url,
            json=body,
            headers={
                "Authorization": f"Bearer {bundle.access_token}",
                "Content-Type": "application/json",
                "x-amz-access-token": bundle.access_token,
            },
        )

        duration_ms = int((datetime.now() - start_time).total_seconds() * 1000)
        if not response.is_success:
            logger.error(
                f"Request {request_id}: HTTP error in {duration_ms}ms, "
                f"status={response.status_code}"
            )
            raise SellingPartnerAPIError(
                f"API request failed: {response.reason_phrase}",
                status_code=response.status_code,
            )

        logger.info(
            f"Request {request_id}: Success in {duration_ms}ms, status={response.status_code}"
        )
        if not response.content:
            return {}
        result: dict[str, Any] = response.json()
        return result

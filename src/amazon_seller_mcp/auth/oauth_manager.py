"""Login with Amazon OAuth manager for Amazon Seller authentication.

This module builds the Seller Central consent URL, exchanges authorization
codes and refresh tokens with the Login with Amazon (LWA) token endpoint,
and keeps each user's stored token bundle fresh.

Refresh is lazy: ``ensure_fresh`` refreshes an expired access token the
first time it is needed, so the first request after expiry pays one extra
round trip to LWA.

Environment Variables:
    AMAZON_CLIENT_ID: LWA client ID (required)
    AMAZON_CLIENT_SECRET: LWA client secret (required for token exchange)
    OAUTH_REDIRECT_URI: Redirect URI registered for the application (required)
"""

import asyncio
import logging
import weakref
from collections.abc import Callable
from urllib.parse import quote, urlencode

import httpx

from amazon_seller_mcp.auth.models import (
    DEFAULT_REGION,
    Region,
    TokenBundle,
    TokenResponse,
    TokenStatus,
    now_ms,
)
from amazon_seller_mcp.auth.token_storage import InMemoryTokenStore, TokenStore
from amazon_seller_mcp.config import Settings
from amazon_seller_mcp.exceptions import (
    AmazonSellerMCPError,
    ConfigurationError,
    TokenExchangeError,
)

logger = logging.getLogger(__name__)

LWA_TOKEN_ENDPOINT = "https://api.amazon.com/auth/o2/token"
CONSENT_ENDPOINT = "https://sellercentral.amazon.com/apps/authorize/consent"
SELLER_SCOPE = "sellingpartnerapi::notifications sellingpartnerapi::migration"

# Separator between user id and region in the OAuth state parameter
STATE_SEPARATOR = "_"


def build_state(user_id: str, region: str) -> str:
    """Build the OAuth state echoed back to the redirect handler."""
    return f"{user_id}{STATE_SEPARATOR}{region}"


def parse_state(state: str) -> tuple[str, Region]:
    """Recover user id and region from an OAuth state value.

    Region values never contain the separator, so splitting on the last
    occurrence is unambiguous even when the user id contains underscores.

    Args:
        state: State value produced by ``build_state``.

    Returns:
        Tuple of (user_id, region).

    Raises:
        ValueError: If the state has no separator or an unknown region.
    """
    user_id, sep, region = state.rpartition(STATE_SEPARATOR)
    if not sep or not user_id:
        raise ValueError(f"Malformed OAuth state: {state!r}")
    return user_id, Region(region)


class OAuthManager:
    """OAuth authentication manager for Amazon Seller accounts.

    Handles consent URL construction, code exchange, refresh, and the
    lazy refresh-on-check policy for stored bundles.

    Attributes:
        storage: Token store owning every user's bundle.
        settings: OAuth client configuration.

    Example:
        ```python
        manager = OAuthManager(storage=store, settings=Settings.from_env())

        url = manager.build_consent_url("seller-1", Region.US_EAST_1)

        # Later, once the redirect handler has the authorization code
        await manager.complete_authorization("seller-1", code, Region.US_EAST_1)

        if await manager.is_authenticated("seller-1"):
            ...
        ```
    """

    def __init__(
        self,
        storage: TokenStore | None = None,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize OAuth manager.

        Args:
            storage: Token store. Creates an in-memory store if not provided.
            settings: OAuth settings. Read from the environment if not provided.
            http_client: HTTP client for LWA calls. Created lazily if not provided.
            clock: Returns the current time in epoch milliseconds.
        """
        self.storage = storage if storage is not None else InMemoryTokenStore()
        self.settings = settings or Settings.from_env()
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._clock = clock
        # Entries disappear once no caller holds or waits on the lock
        self._refresh_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client used for LWA requests."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=httpx.Timeout(30.0, connect=10.0))
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client if this manager created it."""
        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        return self._refresh_locks.setdefault(user_id, asyncio.Lock())

    # ------------------------------------------------------------------
    # Consent flow
    # ------------------------------------------------------------------

    def build_consent_url(self, user_id: str, region: Region | str = DEFAULT_REGION) -> str:
        """Build the Seller Central consent URL for a user.

        Args:
            user_id: Opaque user identifier, echoed back in ``state``.
            region: Marketplace region, echoed back in ``state``.

        Returns:
            Consent URL to show to the user.

        Raises:
            ConfigurationError: If client ID or redirect URI is missing.
        """
        if not self.settings.client_id or not self.settings.redirect_uri:
            raise ConfigurationError("Amazon OAuth credentials not configured")

        region_value = region.value if isinstance(region, Region) else region
        params = {
            "application_id": self.settings.client_id,
            "redirect_uri": self.settings.redirect_uri,
            "scope": SELLER_SCOPE,
            "state": build_state(user_id, region_value),
        }
        query = urlencode(params, safe="", quote_via=quote)
        return f"{CONSENT_ENDPOINT}?{query}"

    async def _post_token_request(self, data: dict[str, str], failure: str) -> TokenResponse:
        """POST a form-encoded grant to the LWA token endpoint.

        Raises:
            TokenExchangeError: If LWA answers with a non-success status.
        """
        client = await self._get_http_client()
        response = await client.post(
            LWA_TOKEN_ENDPOINT,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        if not response.is_success:
            raise TokenExchangeError(
                f"{failure}: {response.reason_phrase}", status_code=response.status_code
            )
        return TokenResponse.model_validate(response.json())

    async def exchange_code(self, code: str) -> TokenResponse:
        """Exchange an authorization code for tokens.

        Args:
            code: Authorization code delivered to the redirect URI.

        Returns:
            Token response containing access and refresh tokens.

        Raises:
            ConfigurationError: If client ID, secret, or redirect URI is missing.
            TokenExchangeError: If LWA rejects the exchange.
        """
        settings = self.settings
        if not settings.client_id or not settings.client_secret or not settings.redirect_uri:
            raise ConfigurationError("Amazon OAuth credentials not configured")

        return await self._post_token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": settings.redirect_uri,
                "client_id": settings.client_id,
                "client_secret": settings.client_secret,
            },
            failure="Token exchange failed",
        )

    async def refresh(self, refresh_token: str) -> TokenResponse:
        """Exchange a refresh token for a new access token.

        Raises:
            ConfigurationError: If client ID or secret is missing.
            TokenExchangeError: If LWA rejects the refresh.
        """
        settings = self.settings
        if not settings.client_id or not settings.client_secret:
            raise ConfigurationError("Amazon OAuth credentials not configured")

        return await self._post_token_request(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": settings.client_id,
                "client_secret": settings.client_secret,
            },
            failure="Token refresh failed",
        )

    async def complete_authorization(
        self, user_id: str, code: str, region: Region | str = DEFAULT_REGION
    ) -> TokenBundle:
        """Finish the consent flow: exchange the code and store a new bundle.

        Args:
            user_id: User the code was issued for.
            code: Authorization code from the redirect.
            region: Region recovered from the OAuth state.

        Returns:
            The stored token bundle.
        """
        response = await self.exchange_code(code)
        bundle = TokenBundle(
            access_token=response.access_token,
            refresh_token=response.refresh_token,
            expires_on=self._clock() + response.expires_in * 1000,
            region=Region(region),
        )
        await self.storage.put(user_id, bundle)
        logger.info(f"Stored new Amazon Seller tokens for user {user_id}")
        return bundle

    # ------------------------------------------------------------------
    # Token lifecycle
    # ------------------------------------------------------------------

    async def ensure_fresh(self, user_id: str) -> TokenBundle | None:
        """Return a usable bundle for the user, refreshing it if expired.

        A refresh failure deletes the bundle so the user must go through
        consent again.

        Args:
            user_id: User whose bundle to check.

        Returns:
            The current (possibly refreshed) bundle, or None when the user
            is not authenticated.
        """
        bundle = await self.storage.get(user_id)
        if bundle is None or not bundle.refresh_token:
            return None
        if not bundle.is_expired(self._clock()):
            return bundle

        async with self._lock_for(user_id):
            # A concurrent caller may have refreshed while we waited
            bundle = await self.storage.get(user_id)
            if bundle is None or not bundle.refresh_token:
                return None
            if not bundle.is_expired(self._clock()):
                return bundle

            logger.info(f"Access token expired for user {user_id}, refreshing")
            try:
                response = await self.refresh(bundle.refresh_token)
            except (AmazonSellerMCPError, httpx.HTTPError, ValueError) as e:
                logger.error(f"Token refresh failed for user {user_id}: {e}")
                await self.storage.delete(user_id)
                return None

            refreshed = bundle.model_copy(
                update={
                    "access_token": response.access_token,
                    "expires_on": self._clock() + response.expires_in * 1000,
                }
            )
            await self.storage.put(user_id, refreshed)
            return refreshed

    async def is_authenticated(self, user_id: str) -> bool:
        """Check authentication, refreshing an expired access token if needed."""
        return await self.ensure_fresh(user_id) is not None

    async def get_status(self, user_id: str) -> tuple[TokenStatus, TokenBundle | None]:
        """Get the status of a user's stored bundle without network access.

        Returns:
            Tuple of (TokenStatus, TokenBundle or None).
        """
        bundle = await self.storage.get(user_id)
        if bundle is None:
            return TokenStatus.MISSING, None
        if not bundle.refresh_token:
            return TokenStatus.INVALID, bundle
        if bundle.is_expired(self._clock()):
            return TokenStatus.EXPIRED, bundle
        return TokenStatus.VALID, bundle

    async def revoke(self, user_id: str) -> bool:
        """Delete a user's bundle, forcing re-authentication."""
        removed = await self.storage.delete(user_id)
        logger.info(f"Revoked Amazon Seller tokens for user {user_id}")
        return removed

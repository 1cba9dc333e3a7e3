"""Shared pytest fixtures for amazon-seller-mcp tests.

This module provides reusable fixtures for token bundles, token storage,
the OAuth manager, and mocked Login with Amazon / SP-API transports.
"""

from collections.abc import Callable
from unittest.mock import AsyncMock

import httpx
import pytest

from amazon_seller_mcp.auth.models import Region, TokenBundle
from amazon_seller_mcp.auth.oauth_manager import OAuthManager
from amazon_seller_mcp.auth.token_storage import InMemoryTokenStore
from amazon_seller_mcp.config import Settings

# Fixed clock for expiry arithmetic (epoch milliseconds)
NOW_MS = 1_700_000_000_000

Handler = Callable[[httpx.Request], httpx.Response]


def fixed_clock() -> int:
    return NOW_MS


# =============================================================================
# Token Fixtures
# =============================================================================


@pytest.fixture
def valid_bundle() -> TokenBundle:
    """Create a token bundle that expires in one hour."""
    return TokenBundle(
        access_token="test_access_token_abc123",
        refresh_token="test_refresh_token_xyz789",
        expires_on=NOW_MS + 3_600_000,
        region=Region.US_EAST_1,
    )


@pytest.fixture
def expired_bundle() -> TokenBundle:
    """Create a token bundle whose access token expired a minute ago."""
    return TokenBundle(
        access_token="expired_access_token",
        refresh_token="test_refresh_token",
        expires_on=NOW_MS - 60_000,
        region=Region.EU_WEST_1,
    )


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Create settings with complete OAuth credentials."""
    return Settings(
        client_id="amzn1.application-oa2-client.test",
        client_secret="test_client_secret",  # pragma: allowlist secret
        redirect_uri="https://example.com/callback",
    )


# =============================================================================
# Token Storage Fixtures
# =============================================================================


@pytest.fixture
def memory_store() -> InMemoryTokenStore:
    """Create an empty in-memory token store."""
    return InMemoryTokenStore()


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Create a mock ``redis.asyncio.Redis`` client.

    Provides async mocks for get, set, delete, ping and aclose.
    """
    client = AsyncMock()
    client.get.return_value = None
    client.set.return_value = True
    client.delete.return_value = 1
    client.ping.return_value = True
    return client


# =============================================================================
# HTTP Fixtures
# =============================================================================


@pytest.fixture
def recorded_requests() -> list[httpx.Request]:
    """Collect requests seen by mock transports."""
    return []


@pytest.fixture
def make_http_client(recorded_requests: list[httpx.Request]) -> Callable[[Handler], httpx.AsyncClient]:
    """Build an ``httpx.AsyncClient`` whose transport calls ``handler``.

    Every request is appended to ``recorded_requests`` before it is handled.
    """

    def factory(handler: Handler) -> httpx.AsyncClient:
        def record(request: httpx.Request) -> httpx.Response:
            recorded_requests.append(request)
            return handler(request)

        return httpx.AsyncClient(transport=httpx.MockTransport(record))

    return factory


def lwa_token_response(
    access_token: str = "new_access_token", expires_in: int = 3600
) -> httpx.Response:
    """Create a successful LWA token endpoint response."""
    return httpx.Response(
        200,
        json={
            "access_token": access_token,
            "refresh_token": "issued_refresh_token",
            "token_type": "bearer",
            "expires_in": expires_in,
        },
    )


# =============================================================================
# OAuth Manager Fixtures
# =============================================================================


@pytest.fixture
def make_manager(
    memory_store: InMemoryTokenStore,
    settings: Settings,
    make_http_client: Callable[[Handler], httpx.AsyncClient],
) -> Callable[[Handler], OAuthManager]:
    """Build an OAuthManager over ``memory_store`` with a fixed clock."""

    def factory(handler: Handler) -> OAuthManager:
        return OAuthManager(
            storage=memory_store,
            settings=settings,
            http_client=make_http_client(handler),
            clock=fixed_clock,
        )

    return factory


# =============================================================================
# CLI Test Fixtures
# =============================================================================


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()

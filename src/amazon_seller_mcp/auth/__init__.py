"""OAuth authentication for Amazon Seller MCP.

This package stores per-user Login with Amazon tokens and keeps them
fresh for Selling Partner API calls.

Quick Start:
    ```python
    from amazon_seller_mcp.auth import OAuthManager, create_token_store

    storage = await create_token_store(settings.redis_url)
    manager = OAuthManager(storage=storage, settings=settings)

    # Send the user to Seller Central
    url = manager.build_consent_url("seller-1", "us-east-1")

    # Before each API call
    if await manager.is_authenticated("seller-1"):
        ...
    ```
"""

from amazon_seller_mcp.auth.models import (
    DEFAULT_REGION,
    Region,
    TokenBundle,
    TokenResponse,
    TokenStatus,
    is_expired,
)
from amazon_seller_mcp.auth.oauth_manager import OAuthManager, parse_state
from amazon_seller_mcp.auth.token_storage import (
    FallbackTokenStore,
    InMemoryTokenStore,
    RedisTokenStore,
    TokenStore,
    create_token_store,
)

__all__ = [
    "DEFAULT_REGION",
    "FallbackTokenStore",
    "InMemoryTokenStore",
    "OAuthManager",
    "RedisTokenStore",
    "Region",
    "TokenBundle",
    "TokenResponse",
    "TokenStatus",
    "TokenStore",
    "create_token_store",
    "is_expired",
    "parse_state",
]

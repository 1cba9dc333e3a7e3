"""Per-user OAuth token storage for Amazon Seller MCP.

Two backends share one async interface:

- ``InMemoryTokenStore``: process-local dictionary.
- ``RedisTokenStore``: durable storage under ``amazon_tokens:<user_id>``
  with a fixed 7 day TTL, independent of token expiry.

``FallbackTokenStore`` wraps the Redis store so that any Redis failure is
logged and served from memory instead. Storage degradation never fails a
read or write.

Use ``create_token_store()`` at startup to pick the right combination.
"""

import logging
from abc import ABC, abstractmethod

from pydantic import ValidationError
from redis.asyncio import Redis

from amazon_seller_mcp.auth.models import TokenBundle

logger = logging.getLogger(__name__)

KEY_PREFIX = "amazon_tokens:"
TOKEN_TTL_SECONDS = 3600 * 24 * 7


class TokenStore(ABC):
    """Mapping from user identifier to token bundle."""

    @abstractmethod
    async def get(self, user_id: str) -> TokenBundle | None:
        """Return the user's bundle, or None when unauthenticated."""

    @abstractmethod
    async def put(self, user_id: str, bundle: TokenBundle) -> bool:
        """Store the user's bundle (last write wins)."""

    @abstractmethod
    async def delete(self, user_id: str) -> bool:
        """Remove the user's bundle."""

    async def close(self) -> None:
        """Release backend resources."""


class InMemoryTokenStore(TokenStore):
    """Token store backed by a process-local dictionary."""

    def __init__(self) -> None:
        self._tokens: dict[str, TokenBundle] = {}

    async def get(self, user_id: str) -> TokenBundle | None:
        return self._tokens.get(user_id)

    async def put(self, user_id: str, bundle: TokenBundle) -> bool:
        self._tokens[user_id] = bundle
        return True

    async def delete(self, user_id: str) -> bool:
        return self._tokens.pop(user_id, None) is not None

    def __len__(self) -> int:
        return len(self._tokens)


class RedisTokenStore(TokenStore):
    """Token store backed by Redis.

    Errors from Redis propagate; wrap this store in ``FallbackTokenStore``
    to degrade to memory instead.

    Attributes:
        client: ``redis.asyncio.Redis`` client created with
            ``decode_responses=True``.
        ttl_seconds: Expiration applied to every write.

    Example:
        ```python
        client = Redis.from_url("redis://localhost:6379", decode_responses=True)
        store = RedisTokenStore(client)
        await store.put("seller-1", bundle)
        ```
    """

    def __init__(self, client: Redis, ttl_seconds: int = TOKEN_TTL_SECONDS) -> None:
        self.client = client
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key_for(user_id: str) -> str:
        return f"{KEY_PREFIX}{user_id}"

    async def get(self, user_id: str) -> TokenBundle | None:
        data = await self.client.get(self.key_for(user_id))
        if data is None:
            return None

        try:
            return TokenBundle.model_validate_json(data)
        except ValidationError as e:
            # Corrupted entry, treat as unauthenticated
            logger.warning(f"Ignoring unreadable token bundle for user {user_id}: {e}")
            return None

    async def put(self, user_id: str, bundle: TokenBundle) -> bool:
        await self.client.set(self.key_for(user_id), bundle.to_json(), ex=self.ttl_seconds)
        return True

    async def delete(self, user_id: str) -> bool:
        removed = await self.client.delete(self.key_for(user_id))
        return bool(removed)

    async def close(self) -> None:
        await self.client.aclose()


class FallbackTokenStore(TokenStore):
    """Durable store with in-memory fallback on any durable-store error.

    Reads and writes go to ``primary`` first. When it raises, the failure
    is logged and the same operation is served by ``fallback``. Deletes
    always clear ``fallback`` as well, so a bundle written during an outage
    cannot outlive its revocation.
    """

    def __init__(self, primary: TokenStore, fallback: TokenStore | None = None) -> None:
        self.primary = primary
        self.fallback = fallback if fallback is not None else InMemoryTokenStore()

    async def get(self, user_id: str) -> TokenBundle | None:
        try:
            return await self.primary.get(user_id)
        except Exception as e:
            logger.warning(f"Failed to get tokens from durable store, using memory: {e}")
            return await self.fallback.get(user_id)

    async def put(self, user_id: str, bundle: TokenBundle) -> bool:
        try:
            return await self.primary.put(user_id, bundle)
        except Exception as e:
            logger.warning(f"Failed to store tokens in durable store, using memory: {e}")
            return await self.fallback.put(user_id, bundle)

    async def delete(self, user_id: str) -> bool:
        removed = False
        try:
            removed = await self.primary.delete(user_id)
        except Exception as e:
            logger.warning(f"Failed to delete tokens from durable store: {e}")
        return await self.fallback.delete(user_id) or removed

    async def close(self) -> None:
        try:
            await self.primary.close()
        except Exception as e:
            logger.warning(f"Error closing durable store (non-fatal): {e}")


async def create_token_store(redis_url: str | None) -> TokenStore:
    """Select the token store for this process.

    Args:
        redis_url: Redis connection URL, or None for memory-only storage.

    Returns:
        ``FallbackTokenStore`` over Redis when Redis answers a ping,
        otherwise an ``InMemoryTokenStore``.
    """
    if not redis_url:
        logger.info("No Redis URL provided, using in-memory token storage")
        return InMemoryTokenStore()

    client = Redis.from_url(redis_url, decode_responses=True)
    try:
        await client.ping()
    except Exception as e:
        logger.warning(f"Redis connection failed, using in-memory storage: {e}")
        await client.aclose()
        return InMemoryTokenStore()

    logger.info("Connected to Redis for token storage")
    return FallbackTokenStore(RedisTokenStore(client))

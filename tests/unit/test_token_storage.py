"""Unit tests for token storage backends.

Tests cover the in-memory store, the Redis store key/TTL contract, the
in-memory fallback on Redis failures, and store selection at startup.
"""

from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from amazon_seller_mcp.auth.models import DEFAULT_REGION, TokenBundle
from amazon_seller_mcp.auth.token_storage import (
    KEY_PREFIX,
    TOKEN_TTL_SECONDS,
    FallbackTokenStore,
    InMemoryTokenStore,
    RedisTokenStore,
    create_token_store,
)


@pytest.mark.unit
class TestInMemoryTokenStore:
    """Tests for InMemoryTokenStore."""

    @pytest.mark.asyncio
    async def test_should_return_none_for_unknown_user(
        self, memory_store: InMemoryTokenStore
    ) -> None:
        assert await memory_store.get("nobody") is None

    @pytest.mark.asyncio
    async def test_get_after_put_returns_bundle(
        self, memory_store: InMemoryTokenStore, valid_bundle: TokenBundle
    ) -> None:
        """Verify a stored bundle is read back unchanged."""
        await memory_store.put("seller-1", valid_bundle)
        assert await memory_store.get("seller-1") == valid_bundle

    @pytest.mark.asyncio
    async def test_put_should_overwrite(
        self,
        memory_store: InMemoryTokenStore,
        valid_bundle: TokenBundle,
        expired_bundle: TokenBundle,
    ) -> None:
        """Verify last write wins."""
        await memory_store.put("seller-1", valid_bundle)
        await memory_store.put("seller-1", expired_bundle)
        assert await memory_store.get("seller-1") == expired_bundle
        assert len(memory_store) == 1

    @pytest.mark.asyncio
    async def test_delete_should_remove_bundle(
        self, memory_store: InMemoryTokenStore, valid_bundle: TokenBundle
    ) -> None:
        await memory_store.put("seller-1", valid_bundle)

        assert await memory_store.delete("seller-1") is True
        assert await memory_store.get("seller-1") is None
        assert await memory_store.delete("seller-1") is False


@pytest.mark.unit
class TestRedisTokenStore:
    """Tests for RedisTokenStore."""

    @pytest.mark.asyncio
    async def test_put_should_write_prefixed_key_with_ttl(
        self, mock_redis: AsyncMock, valid_bundle: TokenBundle
    ) -> None:
        """Verify bundles are written under amazon_tokens:<user> with a 7 day TTL."""
        store = RedisTokenStore(mock_redis)

        await store.put("seller-1", valid_bundle)

        mock_redis.set.assert_awaited_once_with(
            "amazon_tokens:seller-1", valid_bundle.to_json(), ex=604800
        )
        assert KEY_PREFIX == "amazon_tokens:"
        assert TOKEN_TTL_SECONDS == 604800

    @pytest.mark.asyncio
    async def test_get_should_parse_stored_json(
        self, mock_redis: AsyncMock, valid_bundle: TokenBundle
    ) -> None:
        mock_redis.get.return_value = valid_bundle.to_json()
        store = RedisTokenStore(mock_redis)

        result = await store.get("seller-1")

        assert result == valid_bundle
        mock_redis.get.assert_awaited_once_with("amazon_tokens:seller-1")

    @pytest.mark.asyncio
    async def test_get_should_return_none_when_absent(self, mock_redis: AsyncMock) -> None:
        assert await RedisTokenStore(mock_redis).get("seller-1") is None

    @pytest.mark.asyncio
    async def test_get_should_treat_corrupt_entry_as_missing(self, mock_redis: AsyncMock) -> None:
        """Verify unreadable stored data is reported as unauthenticated."""
        mock_redis.get.return_value = "{not json"
        assert await RedisTokenStore(mock_redis).get("seller-1") is None

    @pytest.mark.asyncio
    async def test_get_should_default_unknown_stored_region(self, mock_redis: AsyncMock) -> None:
        """Verify an entry with an unrecognized region still authenticates."""
        mock_redis.get.return_value = (
            '{"accessToken": "a", "refreshToken": "r", "expiresOn": 1, "region": "us-west-2"}'
        )

        result = await RedisTokenStore(mock_redis).get("u1")

        assert result is not None
        assert result.refresh_token == "r"
        assert result.region == DEFAULT_REGION

    @pytest.mark.asyncio
    async def test_delete_should_report_removal(self, mock_redis: AsyncMock) -> None:
        store = RedisTokenStore(mock_redis)

        assert await store.delete("seller-1") is True
        mock_redis.delete.assert_awaited_once_with("amazon_tokens:seller-1")

        mock_redis.delete.return_value = 0
        assert await store.delete("seller-1") is False

    @pytest.mark.asyncio
    async def test_close_should_close_client(self, mock_redis: AsyncMock) -> None:
        await RedisTokenStore(mock_redis).close()
        mock_redis.aclose.assert_awaited_once()


@pytest.mark.unit
class TestFallbackTokenStore:
    """Tests for FallbackTokenStore degradation to memory."""

    def test_should_keep_empty_fallback_store(self, mock_redis: AsyncMock) -> None:
        """Verify an empty fallback store passed in is the one used."""
        fallback = InMemoryTokenStore()
        store = FallbackTokenStore(RedisTokenStore(mock_redis), fallback)
        assert store.fallback is fallback

    @pytest.mark.asyncio
    async def test_should_use_primary_when_healthy(
        self, mock_redis: AsyncMock, valid_bundle: TokenBundle
    ) -> None:
        fallback = InMemoryTokenStore()
        store = FallbackTokenStore(RedisTokenStore(mock_redis), fallback)

        await store.put("seller-1", valid_bundle)

        mock_redis.set.assert_awaited_once()
        assert len(fallback) == 0

    @pytest.mark.asyncio
    async def test_put_should_fall_back_to_memory_on_redis_error(
        self, mock_redis: AsyncMock, valid_bundle: TokenBundle
    ) -> None:
        """Verify a Redis write failure is not surfaced and memory holds the bundle."""
        mock_redis.set.side_effect = RedisConnectionError("down")
        fallback = InMemoryTokenStore()
        store = FallbackTokenStore(RedisTokenStore(mock_redis), fallback)

        assert await store.put("seller-1", valid_bundle) is True
        assert await fallback.get("seller-1") == valid_bundle

    @pytest.mark.asyncio
    async def test_get_should_fall_back_to_memory_on_redis_error(
        self, mock_redis: AsyncMock, valid_bundle: TokenBundle
    ) -> None:
        mock_redis.get.side_effect = RedisConnectionError("down")
        fallback = InMemoryTokenStore()
        await fallback.put("seller-1", valid_bundle)
        store = FallbackTokenStore(RedisTokenStore(mock_redis), fallback)

        assert await store.get("seller-1") == valid_bundle

    @pytest.mark.asyncio
    async def test_round_trip_survives_redis_outage(
        self, mock_redis: AsyncMock, valid_bundle: TokenBundle
    ) -> None:
        """Verify put then get returns the bundle while Redis is down."""
        mock_redis.set.side_effect = RedisConnectionError("down")
        mock_redis.get.side_effect = RedisConnectionError("down")
        store = FallbackTokenStore(RedisTokenStore(mock_redis))

        await store.put("seller-1", valid_bundle)

        assert await store.get("seller-1") == valid_bundle

    @pytest.mark.asyncio
    async def test_delete_should_always_clear_memory(
        self, mock_redis: AsyncMock, valid_bundle: TokenBundle
    ) -> None:
        """Verify revocation removes a bundle written during an outage."""
        mock_redis.delete.side_effect = RedisConnectionError("down")
        fallback = InMemoryTokenStore()
        await fallback.put("seller-1", valid_bundle)
        store = FallbackTokenStore(RedisTokenStore(mock_redis), fallback)

        assert await store.delete("seller-1") is True
        assert await fallback.get("seller-1") is None

    @pytest.mark.asyncio
    async def test_delete_should_clear_both_stores(
        self, mock_redis: AsyncMock, valid_bundle: TokenBundle
    ) -> None:
        fallback = InMemoryTokenStore()
        await fallback.put("seller-1", valid_bundle)
        store = FallbackTokenStore(RedisTokenStore(mock_redis), fallback)

        assert await store.delete("seller-1") is True
        mock_redis.delete.assert_awaited_once_with("amazon_tokens:seller-1")
        assert len(fallback) == 0


@pytest.mark.unit
class TestCreateTokenStore:
    """Tests for create_token_store selection."""

    @pytest.mark.asyncio
    async def test_should_use_memory_without_url(self) -> None:
        store = await create_token_store(None)
        assert isinstance(store, InMemoryTokenStore)

    @pytest.mark.asyncio
    async def test_should_use_redis_when_ping_succeeds(self, mock_redis: AsyncMock) -> None:
        with patch(
            "amazon_seller_mcp.auth.token_storage.Redis.from_url", return_value=mock_redis
        ) as from_url:
            store = await create_token_store("redis://localhost:6379")

        from_url.assert_called_once_with("redis://localhost:6379", decode_responses=True)
        assert isinstance(store, FallbackTokenStore)
        assert isinstance(store.primary, RedisTokenStore)
        assert store.primary.client is mock_redis

    @pytest.mark.asyncio
    async def test_should_fall_back_to_memory_when_ping_fails(
        self, mock_redis: AsyncMock
    ) -> None:
        """Verify an unreachable Redis does not fail startup."""
        mock_redis.ping.side_effect = RedisConnectionError("refused")
        with patch(
            "amazon_seller_mcp.auth.token_storage.Redis.from_url", return_value=mock_redis
        ):
            store = await create_token_store("redis://localhost:6379")

        assert isinstance(store, InMemoryTokenStore)
        mock_redis.aclose.assert_awaited_once()

"""Unit tests for the Redis repositories against a mocked client.

The Lua script itself is exercised in tests/integration/test_redis_counter.py.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from quotaguard.core.exceptions import StoreError
from quotaguard.domain.rate_limiting.value_objects import Tier
from quotaguard.infrastructure.repositories.redis import (
    SLIDING_WINDOW_SCRIPT,
    RedisCounterRepository,
    RedisPlanCacheRepository,
    build_payload,
)


@pytest.fixture
def redis_client():
    """Fixture providing a mock Redis client with a registered script."""
    client = MagicMock()
    client.script = AsyncMock(return_value=0)
    client.register_script.return_value = client.script
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    return client


class TestRedisCounterRepository:

    def test_script_registered_once(self, redis_client):
        RedisCounterRepository(redis_client)

        redis_client.register_script.assert_called_once_with(SLIDING_WINDOW_SCRIPT)

    @pytest.mark.asyncio
    async def test_sends_json_payload_as_single_key(self, redis_client):
        repository = RedisCounterRepository(redis_client)
        tiers = [Tier(1, 5), Tier(86400, 20000, 3600)]

        denied = await repository.check_and_increment("ns:rl:hit:abc", tiers, 1_700_000_000, weight=3)

        assert denied is False
        redis_client.script.assert_awaited_once()
        keys = redis_client.script.await_args.kwargs["keys"]
        assert len(keys) == 1
        assert json.loads(keys[0]) == {
            "key": "ns:rl:hit:abc",
            "limits": [[1, 5], [86400, 20000, 3600]],
            "timestamp": 1_700_000_000,
            "weight": 3,
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("result, denied", [(0, False), (1, True), ("1", True)])
    async def test_script_result_maps_to_denied(self, redis_client, result, denied):
        redis_client.script.return_value = result
        repository = RedisCounterRepository(redis_client)

        assert await repository.check_and_increment("k", [Tier(1, 1)], 100) is denied

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [RedisConnectionError("refused"), RedisTimeoutError("timeout")])
    async def test_store_failures_raise_store_error(self, redis_client, error):
        redis_client.script.side_effect = error
        repository = RedisCounterRepository(redis_client)

        with pytest.raises(StoreError) as exc_info:
            await repository.check_and_increment("k", [Tier(1, 1)], 100)

        assert exc_info.value.code == "store_error"
        assert exc_info.value.__cause__ is error

    def test_payload_for_empty_tier_list(self):
        assert json.loads(build_payload("k", [], 5, 1))["limits"] == []


class TestRedisPlanCacheRepository:

    @pytest.mark.asyncio
    async def test_get_returns_cached_plan(self, redis_client):
        redis_client.get.return_value = "gold"

        assert await RedisPlanCacheRepository(redis_client).get("ns:rl:abc") == "gold"
        redis_client.get.assert_awaited_once_with("ns:rl:abc")

    @pytest.mark.asyncio
    async def test_get_decodes_bytes(self, redis_client):
        redis_client.get.return_value = b"gold"

        assert await RedisPlanCacheRepository(redis_client).get("k") == "gold"

    @pytest.mark.asyncio
    async def test_get_miss(self, redis_client):
        assert await RedisPlanCacheRepository(redis_client).get("k") is None

    @pytest.mark.asyncio
    async def test_set_writes_value_and_ttl_in_one_command(self, redis_client):
        await RedisPlanCacheRepository(redis_client).set("ns:rl:abc", "none", 3600)

        redis_client.set.assert_awaited_once_with("ns:rl:abc", "none", ex=3600)
        redis_client.expire.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete(self, redis_client):
        await RedisPlanCacheRepository(redis_client).delete("ns:rl:abc")

        redis_client.delete.assert_awaited_once_with("ns:rl:abc")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation, args", [
        ("get", ("k",)),
        ("set", ("k", "gold", 60)),
        ("delete", ("k",)),
    ])
    async def test_failures_raise_store_error(self, redis_client, operation, args):
        getattr(redis_client, operation).side_effect = RedisConnectionError("refused")
        repository = RedisPlanCacheRepository(redis_client)

        with pytest.raises(StoreError):
            await getattr(repository, operation)(*args)

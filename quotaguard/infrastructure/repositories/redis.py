"""Redis-backed repositories for counter records and cached plans.

The counter check runs as a Lua script inside Redis, which guarantees that no
other command touches the same key while a check-and-increment is in flight.
The script receives one JSON payload ``{key, limits, timestamp, weight}`` and
returns 0 when the hit was recorded or 1 when it was denied.
"""

import json
from typing import Optional, Sequence

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from quotaguard.core.exceptions import StoreError
from quotaguard.domain.rate_limiting.repositories import CounterRepository, PlanCacheRepository
from quotaguard.domain.rate_limiting.value_objects import Tier

logger = structlog.get_logger(__name__)

SLIDING_WINDOW_SCRIPT = """
local data = cjson.decode(KEYS[1])
local key = data['key']
local limits = data['limits']
local now = tonumber(data['timestamp'])
local weight = tonumber(data['weight'] or '1')

local longest_duration = 0
local saved_keys = {}

for i, limit in ipairs(limits) do
    local duration = limit[1]
    longest_duration = math.max(longest_duration, duration)
    local precision = math.min(limit[3] or duration, duration)
    local blocks = math.ceil(duration / precision)
    local saved = {}
    table.insert(saved_keys, saved)
    saved.block_id = math.floor(now / precision)
    saved.trim_before = saved.block_id - blocks + 1
    saved.count_key = duration .. ':' .. precision .. ':'
    saved.ts_key = saved.count_key .. 'o'

    local old_ts = redis.call('HGET', key, saved.ts_key)
    old_ts = old_ts and tonumber(old_ts) or saved.trim_before
    if old_ts > now then
        return 1
    end

    local decr = 0
    local dele = {}
    local trim = math.min(saved.trim_before, old_ts + blocks)
    for old_block = old_ts, trim - 1 do
        local bkey = saved.count_key .. old_block
        local bcount = redis.call('HGET', key, bkey)
        if bcount then
            decr = decr + tonumber(bcount)
            table.insert(dele, bkey)
        end
    end

    local cur
    if #dele > 0 then
        redis.call('HDEL', key, unpack(dele))
        cur = redis.call('HINCRBY', key, saved.count_key, -decr)
    else
        cur = redis.call('HGET', key, saved.count_key)
    end

    if tonumber(cur or '0') + weight > limit[2] then
        return 1
    end
end

for i, limit in ipairs(limits) do
    local saved = saved_keys[i]
    redis.call('HSET', key, saved.ts_key, saved.trim_before)
    redis.call('HINCRBY', key, saved.count_key, weight)
    redis.call('HINCRBY', key, saved.count_key .. saved.block_id, weight)
end

if longest_duration > 0 then
    redis.call('EXPIRE', key, longest_duration)
end
return 0
"""


def build_payload(key: str, tiers: Sequence[Tier], now: int, weight: int) -> str:
    """Encode the script arguments as the JSON document passed in KEYS[1]."""
    return json.dumps({
        "key": key,
        "limits": [tier.as_payload() for tier in tiers],
        "timestamp": now,
        "weight": weight,
    })


class RedisCounterRepository(CounterRepository):
    """
    Counter records stored as Redis hashes and updated by a server-side script.

    The script is registered once per repository; redis-py sends it by SHA and
    reloads it transparently after a SCRIPT FLUSH or a failover.
    """

    def __init__(self, redis_client: Redis):
        self.redis = redis_client
        self._script = redis_client.register_script(SLIDING_WINDOW_SCRIPT)

    async def check_and_increment(
        self,
        key: str,
        tiers: Sequence[Tier],
        now: int,
        weight: int = 1,
    ) -> bool:
        payload = build_payload(key, tiers, now, weight)
        try:
            result = await self._script(keys=[payload])
        except RedisError as e:
            logger.error("counter_script_failed", key=key, error=str(e))
            raise StoreError(f"Counter check failed for {key}: {e}") from e
        return int(result) > 0


class RedisPlanCacheRepository(PlanCacheRepository):
    """Cached plan assignments stored as plain Redis strings with a TTL."""

    def __init__(self, redis_client: Redis):
        self.redis = redis_client

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self.redis.get(key)
        except RedisError as e:
            raise StoreError(f"Failed to read {key}: {e}") from e
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self.redis.set(key, value, ex=ttl_seconds)
        except RedisError as e:
            raise StoreError(f"Failed to write {key}: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self.redis.delete(key)
        except RedisError as e:
            raise StoreError(f"Failed to delete {key}: {e}") from e

"""Bucketed sliding-window counter.

A pure-Python rendition of the check-and-increment performed server-side by
the Redis script in `quotaguard.infrastructure.repositories.redis`. It works on
a mutable mapping with the exact field layout of the Redis hash, so the
in-memory store and the shared store agree on every decision.

Per tier the record holds:

- ``"<duration>:<precision>:"``: aggregate count of the live buckets
- ``"<duration>:<precision>:o"``: oldest block id kept at the last update
- ``"<duration>:<precision>:<block_id>"``: count of one bucket
"""

from __future__ import annotations

from typing import MutableMapping, Sequence

from .value_objects import Tier


def longest_duration(tiers: Sequence[Tier]) -> int:
    """Return the longest tier duration, or 0 for an empty tier list."""
    return max((tier.duration for tier in tiers), default=0)


def _evict_expired(record: MutableMapping[str, int], tier: Tier, old_ts: int, trim_before: int) -> int:
    """Drop the buckets that slid out of the window and return the live aggregate."""
    trim = min(trim_before, old_ts + tier.blocks)
    decr = 0
    expired = []
    for old_block in range(old_ts, trim):
        bucket = tier.bucket_field(old_block)
        count = record.get(bucket)
        if count is not None:
            decr += int(count)
            expired.append(bucket)

    if not expired:
        return int(record.get(tier.count_field, 0))

    for bucket in expired:
        del record[bucket]
    record[tier.count_field] = int(record.get(tier.count_field, 0)) - decr
    return record[tier.count_field]


def apply_hit(record: MutableMapping[str, int], tiers: Sequence[Tier], now: int, weight: int = 1) -> bool:
    """
    Check `weight` more units against every tier and record them if allowed.

    The verification pass stops at the first violated tier: nothing is
    incremented and the tiers after it are neither trimmed nor checked. A
    stored trim timestamp newer than `now` (clock went backwards) denies.

    Returns:
        True when the hit is denied, False when it was recorded.
    """
    trims = []
    for tier in tiers:
        trim_before = tier.trim_before(now)
        trims.append(trim_before)

        old_ts = record.get(tier.timestamp_field)
        old_ts = int(old_ts) if old_ts is not None else trim_before
        if old_ts > now:
            return True

        current = _evict_expired(record, tier, old_ts, trim_before)
        if current + weight > tier.threshold:
            return True

    for tier, trim_before in zip(tiers, trims):
        record[tier.timestamp_field] = trim_before
        record[tier.count_field] = int(record.get(tier.count_field, 0)) + weight
        bucket = tier.bucket_field(tier.block_id(now))
        record[bucket] = int(record.get(bucket, 0)) + weight
    return False

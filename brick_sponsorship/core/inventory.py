"""
Sponsored brick counter backed by Redis.

Layout:
- ``bricks:sponsored``: integer counter of sponsored bricks
- ``bricks:purchases``: hash of checkout session id -> brick count

Every read goes to Redis; the counter is never cached in process.
Purchase records are written with HSETNX, so the first writer for a
session id wins and only that writer increments the counter.
"""
from dataclasses import dataclass
from typing import Any, Dict, List

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from .exceptions import UpstreamError

logger = structlog.get_logger(__name__)

TOTAL_BRICKS = 134500

SPONSORED_KEY = "bricks:sponsored"
PURCHASES_KEY = "bricks:purchases"


@dataclass(frozen=True)
class BrickInventory:
    """Snapshot of the brick counter."""

    total: int
    sponsored: int
    available: int

    def to_dict(self) -> Dict[str, int]:
        return {"total": self.total, "sponsored": self.sponsored, "available": self.available}


@dataclass(frozen=True)
class PurchaseRecord:
    """A processed checkout session and the bricks it sponsored."""

    session: str
    bricks: int

    def to_dict(self) -> Dict[str, Any]:
        return {"session": self.session, "bricks": self.bricks}


def _to_int(value: Any) -> int:
    if value is None:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class InventoryStore:
    """Counter and purchase-record operations, one Redis round trip each."""

    def __init__(self, redis_client: Redis, total_bricks: int = TOTAL_BRICKS):
        self.redis = redis_client
        self.total_bricks = total_bricks

    def _store_error(self, operation: str, error: Exception) -> UpstreamError:
        logger.error("inventory_store_error", operation=operation, error=str(error))
        return UpstreamError(
            f"Counter store {operation} failed: {error}",
            user_message="Failed to fetch brick data",
            original_error=error,
        )

    async def get_sponsored_count(self) -> int:
        try:
            value = await self.redis.get(SPONSORED_KEY)
        except RedisError as e:
            raise self._store_error("get_sponsored_count", e) from e
        return _to_int(value)

    async def get_available_count(self) -> int:
        return max(self.total_bricks - await self.get_sponsored_count(), 0)

    async def get_inventory(self) -> BrickInventory:
        """Read the counter once and derive the available count from it."""
        sponsored = await self.get_sponsored_count()
        return BrickInventory(
            total=self.total_bricks,
            sponsored=sponsored,
            available=max(self.total_bricks - sponsored, 0),
        )

    async def increment_sponsored(self, by: int) -> int:
        """
        Atomically add ``by`` bricks to the counter.

        Returns:
            int: The new counter value
        """
        if isinstance(by, bool) or not isinstance(by, int) or by <= 0:
            raise ValueError("Increment must be a positive integer")
        try:
            return int(await self.redis.incrby(SPONSORED_KEY, by))
        except RedisError as e:
            raise self._store_error("increment_sponsored", e) from e

    async def has_purchase_record(self, session_id: str) -> bool:
        try:
            return bool(await self.redis.hexists(PURCHASES_KEY, session_id))
        except RedisError as e:
            raise self._store_error("has_purchase_record", e) from e

    async def record_purchase(self, session_id: str, brick_count: int) -> bool:
        """
        Write the purchase record for a session if none exists.

        Returns:
            bool: True if this call created the record, False if it was
                already present
        """
        try:
            created = await self.redis.hsetnx(PURCHASES_KEY, session_id, str(brick_count))
        except RedisError as e:
            raise self._store_error("record_purchase", e) from e
        return bool(created)

    async def apply_purchase(self, session_id: str, brick_count: int) -> bool:
        """
        Record a purchase and, only if it is new, add its bricks to the counter.

        A crash between the two writes leaves the record without its
        increment (under-count), never an increment without a record.

        Returns:
            bool: True if the counter was incremented, False on a duplicate
        """
        if not await self.record_purchase(session_id, brick_count):
            logger.info(
                "inventory_purchase_already_recorded",
                session_id=session_id,
                bricks=brick_count,
            )
            return False

        sponsored = await self.increment_sponsored(brick_count)
        if sponsored > self.total_bricks:
            # Paid purchases are never refused; oversell is flagged for follow-up.
            logger.warning(
                "inventory_sponsored_exceeds_total",
                session_id=session_id,
                sponsored=sponsored,
                total=self.total_bricks,
            )
        logger.info(
            "inventory_purchase_applied",
            session_id=session_id,
            bricks=brick_count,
            sponsored=sponsored,
        )
        return True

    async def list_purchases(self) -> List[PurchaseRecord]:
        try:
            records = await self.redis.hgetall(PURCHASES_KEY)
        except RedisError as e:
            raise self._store_error("list_purchases", e) from e
        return [
            PurchaseRecord(session=session, bricks=_to_int(bricks))
            for session, bricks in sorted(records.items())
        ]

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except RedisError as e:
            raise self._store_error("ping", e) from e

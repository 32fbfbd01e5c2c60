import time
from typing import Callable

from xero_sync.core.options import KeyValueStore
from xero_sync.core.settings import settings

SYNCED = "yes"
PENDING_PREFIX = "pending:"


def sync_mark_key(order_id: str) -> str:
    return f"xero_synced:{order_id}"


class SyncMarkStore:
    """
    Per-order SyncMark with at-most-once claiming.

    A trigger first claims the order (``pending:<ts>``), then either marks it
    synced or releases the claim. Claims older than SYNC_CLAIM_TTL belong to
    a worker that died and may be taken over.
    """

    def __init__(self, store: KeyValueStore, clock: Callable[[], float] = time.time):
        self.store = store
        self.clock = clock

    async def is_synced(self, order_id: str) -> bool:
        return await self.store.get(sync_mark_key(order_id)) == SYNCED

    async def claim(self, order_id: str) -> bool:
        key = sync_mark_key(order_id)
        now = int(self.clock())
        pending = f"{PENDING_PREFIX}{now}"

        if await self.store.add(key, pending):
            return True

        current = await self.store.get(key)
        if current is None:
            return await self.store.add(key, pending)
        if not current.startswith(PENDING_PREFIX):
            return False

        try:
            claimed_at = int(current[len(PENDING_PREFIX):])
        except ValueError:
            claimed_at = 0
        if now - claimed_at < settings.SYNC_CLAIM_TTL:
            return False
        return await self.store.replace(key, current, pending)

    async def mark_synced(self, order_id: str) -> None:
        await self.store.put(sync_mark_key(order_id), SYNCED)

    async def release(self, order_id: str) -> None:
        key = sync_mark_key(order_id)
        current = await self.store.get(key)
        # Never clear a completed mark
        if current and current.startswith(PENDING_PREFIX):
            await self.store.delete(key)

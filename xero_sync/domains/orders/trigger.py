import logging
from typing import Optional

from .gateway import OrderGateway
from .sync_engine import OrderSyncEngine
from .sync_marks import SyncMarkStore
from .types import SyncResult

logger = logging.getLogger(__name__)


class OrderSyncTrigger:
    """Runs the sync engine at most once per completed order."""

    def __init__(
        self, engine: OrderSyncEngine, orders: OrderGateway, marks: SyncMarkStore
    ):
        self.engine = engine
        self.orders = orders
        self.marks = marks

    async def handle_order_completed(self, order_id: str) -> Optional[SyncResult]:
        """
        Handle an order-completed event.

        Args:
            order_id: ID of the completed order

        Returns:
            SyncResult when a sync ran, None when the order was skipped
        """
        if not await self.marks.claim(order_id):
            logger.info(f"Order {order_id} already synced to Xero or in progress")
            return None

        synced = False
        try:
            order = await self.orders.get_order(order_id)

            if not order or order.total <= 0:
                return None

            if not order.is_paid:
                await self.orders.add_note(
                    order_id,
                    "Xero Sync Skipped: Order status is completed but the store "
                    "does not consider it paid.",
                )
                return None

            await self.orders.add_note(
                order_id, "Attempting to synchronize order with Xero."
            )
            result = await self.engine.sync(order)

            if result.success:
                await self.marks.mark_synced(order_id)
                synced = True
            else:
                await self.orders.add_note(
                    order_id,
                    "Xero Synchronization failed. See debug log for details.",
                )
            return result
        finally:
            if not synced:
                # Lets an operator re-trigger the order later
                await self.marks.release(order_id)

from .sync_engine import OrderSyncEngine
from .trigger import OrderSyncTrigger

__all__ = ["OrderSyncEngine", "OrderSyncTrigger"]

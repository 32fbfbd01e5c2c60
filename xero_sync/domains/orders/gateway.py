from typing import List, Optional, Protocol

from .models import Order


class OrderGateway(Protocol):
    """Narrow read/annotate interface onto the e-commerce platform."""

    async def get_order(self, order_id: str) -> Optional[Order]: ...

    async def add_note(self, order_id: str, note: str) -> None: ...


class PayloadOrderGateway:
    """Gateway over an order snapshot pushed with the completion event.

    Notes are collected so the caller can return them to the platform.
    """

    def __init__(self, order: Order):
        self.order = order
        self.notes: List[str] = []

    async def get_order(self, order_id: str) -> Optional[Order]:
        return self.order if self.order.id == order_id else None

    async def add_note(self, order_id: str, note: str) -> None:
        self.notes.append(note)

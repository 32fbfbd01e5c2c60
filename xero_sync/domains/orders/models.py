"""Read-only order snapshot consumed by the sync engine.

The host platform adapter fills these in; the core never reads the host's
order objects directly.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

LOCATION_FIELDS = ("address_1", "address_2", "city", "state", "postcode", "country")


class OrderAddress(BaseModel):
    """Billing or shipping address on an order."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company: Optional[str] = None
    address_1: Optional[str] = None
    address_2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postcode: Optional[str] = None
    country: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{(self.first_name or '').strip()} {(self.last_name or '').strip()}".strip()

    def has_location(self) -> bool:
        """True when at least a street line or a city is present."""
        return bool((self.address_1 or "").strip() or (self.city or "").strip())

    def same_location(self, other: "OrderAddress") -> bool:
        return all(
            (getattr(self, field) or "").strip().lower()
            == (getattr(other, field) or "").strip().lower()
            for field in LOCATION_FIELDS
        )

    def address_lines(self) -> List[str]:
        locality = " ".join(
            part for part in (self.city, self.state, self.postcode) if part
        )
        parts = [self.address_1, self.address_2, locality, self.country]
        return [part.strip() for part in parts if part and part.strip()]


class OrderLine(BaseModel):
    """One product line of an order."""

    name: str = Field(..., description="Line description shown on the invoice")
    quantity: Decimal = Field(..., description="Quantity ordered")
    unit_price: Decimal = Field(..., description="Unit price excluding tax")
    total_tax: Decimal = Field(Decimal("0"), description="Tax for the whole line")
    sku: Optional[str] = Field(None, description="Tracked stock code, if any")
    product_name: Optional[str] = Field(None, description="Catalog product name")
    product_price: Optional[Decimal] = Field(
        None, description="Current catalog price used when creating the Xero item"
    )


class Order(BaseModel):
    """Completed order as seen by the sync engine."""

    id: str = Field(..., description="Order identifier")
    created_at: datetime = Field(..., description="When the order was placed")
    total: Decimal = Field(..., description="Order total including tax and shipping")
    shipping_total: Decimal = Field(Decimal("0"), description="Shipping excluding tax")
    shipping_tax: Decimal = Field(Decimal("0"), description="Tax on shipping")
    payment_method: Optional[str] = Field(None, description="Payment gateway ID")
    is_paid: bool = Field(True, description="Whether the platform considers it paid")
    billing_email: Optional[str] = None
    billing_phone: Optional[str] = None
    billing: OrderAddress = Field(default_factory=OrderAddress)
    shipping: Optional[OrderAddress] = None
    lines: List[OrderLine] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Accept numeric order IDs from the platform."""
        if isinstance(v, int):
            return str(v)
        return v

"""Outcome types for order synchronization."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class SyncStep(str, Enum):
    """Stages of the order sync pipeline, in execution order."""

    CREDENTIALS = "credentials"
    CONTACT = "contact"
    LINE_ITEMS = "line_items"
    INVOICE = "invoice"
    PAYMENT = "payment"


class StepStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    DEGRADED = "degraded"
    FAILED = "failed"


class SyncFailureReason(str, Enum):
    NOT_CONNECTED = "not_connected"
    NO_LINE_ITEMS = "no_line_items"
    INVOICE_CREATE_FAILED = "invoice_create_failed"


class SyncResult(BaseModel):
    """Result of one sync attempt.

    ``success`` is True once the invoice exists; payment problems only show
    up in ``steps``.
    """

    order_id: str
    success: bool
    reason: Optional[SyncFailureReason] = None
    invoice_id: Optional[str] = None
    steps: Dict[SyncStep, StepStatus] = Field(default_factory=dict)


class OrderSyncResponse(BaseModel):
    """Response for the order-completed event endpoint."""

    order_id: str
    synced: bool = Field(..., description="Whether a sync ran and succeeded")
    skipped: bool = Field(..., description="True when the trigger did not run a sync")
    result: Optional[SyncResult] = None
    notes: List[str] = Field(default_factory=list)

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from xero_sync.dependencies import (
    get_credential_manager,
    get_sync_mappings,
    get_sync_marks,
    get_xero_api_client,
)
from xero_sync.domains.external_accounting.xero.auth.service import (
    XeroCredentialManager,
)
from xero_sync.domains.external_accounting.xero.data_service import XeroApiClient
from xero_sync.shared.auth import CallerJwtPayload, require_role

from .gateway import PayloadOrderGateway
from .mappings import SyncMappings
from .models import Order
from .sync_engine import OrderSyncEngine
from .sync_marks import SyncMarkStore
from .trigger import OrderSyncTrigger
from .types import OrderSyncResponse

router = APIRouter(prefix="/orders", tags=["Orders"])


class OrderCompletedEvent(BaseModel):
    """Order-completed event pushed by the e-commerce platform."""

    order: Order = Field(..., description="Snapshot of the completed order")


@router.post(
    "/completed",
    response_model=OrderSyncResponse,
    status_code=status.HTTP_200_OK,
    operation_id="orderCompleted",
)
async def order_completed(
    event: OrderCompletedEvent,
    caller: CallerJwtPayload = Depends(require_role("admin", "service")),
    credentials: XeroCredentialManager = Depends(get_credential_manager),
    api_client: XeroApiClient = Depends(get_xero_api_client),
    mappings: SyncMappings = Depends(get_sync_mappings),
    marks: SyncMarkStore = Depends(get_sync_marks),
) -> OrderSyncResponse:
    """
    Synchronize a completed order to Xero.

    Each order is invoiced at most once; repeated events for an order that
    is already synced (or being synced) return ``skipped``. The notes the
    sync wrote are returned so the platform can attach them to the order.
    """
    gateway = PayloadOrderGateway(event.order)
    engine = OrderSyncEngine(credentials, api_client, gateway, mappings)
    trigger = OrderSyncTrigger(engine, gateway, marks)

    result = await trigger.handle_order_completed(event.order.id)

    return OrderSyncResponse(
        order_id=event.order.id,
        synced=bool(result and result.success),
        skipped=result is None,
        result=result,
        notes=gateway.notes,
    )

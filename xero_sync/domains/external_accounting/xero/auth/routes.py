# xero_sync/domains/external_accounting/xero/auth/routes.py
import logging
from typing import Dict
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse

from xero_sync.core.settings import settings
from xero_sync.dependencies import (
    get_credential_manager,
    get_sync_mappings,
    get_xero_api_client,
)
from xero_sync.domains.orders.mappings import SyncMappings
from xero_sync.shared.auth import CallerJwtPayload, require_admin

from ..data_service import XeroApiClient
from .models import (
    XeroAuthUrlResponse,
    XeroCallbackParams,
    XeroConnectionStatus,
    XeroDisconnectResponse,
    XeroSettingsResponse,
    XeroSettingsUpdate,
)
from .service import XeroCredentialManager

logger = logging.getLogger(__name__)

# Router for Xero connector endpoints
router = APIRouter(prefix="/xero", tags=["Xero"])


def _admin_redirect(connected: bool) -> RedirectResponse:
    separator = "&" if "?" in settings.ADMIN_RETURN_URL else "?"
    query = urlencode({"xero_connected": "1" if connected else "0"})
    return RedirectResponse(
        url=f"{settings.ADMIN_RETURN_URL}{separator}{query}",
        status_code=status.HTTP_302_FOUND,
    )


async def _settings_response(
    credentials: XeroCredentialManager, mappings: SyncMappings
) -> XeroSettingsResponse:
    return XeroSettingsResponse(
        client_id_configured=bool(await credentials.credentials.get_client_id()),
        default_sales_account=await mappings.get_default_sales_account(),
        payment_mappings=await mappings.get_payment_mappings(),
    )


@router.get(
    "/settings",
    response_model=XeroSettingsResponse,
    operation_id="getXeroSettings",
)
async def get_xero_settings(
    admin: CallerJwtPayload = Depends(require_admin),
    credentials: XeroCredentialManager = Depends(get_credential_manager),
    mappings: SyncMappings = Depends(get_sync_mappings),
) -> XeroSettingsResponse:
    """Current client ID flag, default sales account and payment mappings."""
    return await _settings_response(credentials, mappings)


@router.put(
    "/settings",
    response_model=XeroSettingsResponse,
    operation_id="updateXeroSettings",
)
async def update_xero_settings(
    update: XeroSettingsUpdate,
    admin: CallerJwtPayload = Depends(require_admin),
    credentials: XeroCredentialManager = Depends(get_credential_manager),
    mappings: SyncMappings = Depends(get_sync_mappings),
) -> XeroSettingsResponse:
    """
    Update connector settings.

    Omitted fields are left unchanged. Changing the client ID does not
    invalidate an existing connection; disconnect first to switch apps.
    """
    if update.client_id is not None:
        await credentials.credentials.set_client_id(update.client_id)
    await mappings.update(
        default_sales_account=update.default_sales_account,
        payment_mappings=update.payment_mappings,
    )
    return await _settings_response(credentials, mappings)


@router.post(
    "/connect",
    response_model=XeroAuthUrlResponse,
    status_code=status.HTTP_200_OK,
    operation_id="startXeroConnection",
)
async def start_xero_connection(
    admin: CallerJwtPayload = Depends(require_admin),
    credentials: XeroCredentialManager = Depends(get_credential_manager),
) -> XeroAuthUrlResponse:
    """
    Start the Xero PKCE authorization flow.

    Returns:
        Authorization URL the administrator's browser should open

    Raises:
        HTTP 400: If no client ID has been configured
    """
    redirect_uri = settings.redirect_uri
    auth_url = await credentials.begin_authorization(redirect_uri)
    return XeroAuthUrlResponse(auth_url=auth_url, redirect_uri=redirect_uri)


@router.get(
    "/callback",
    operation_id="xeroOAuthCallback",
)
async def xero_oauth_callback(
    code: str = Query(None, description="OAuth authorization code"),
    state: str = Query(None, description="JWT state token"),
    error: str = Query(None, description="OAuth error code"),
    error_description: str = Query(None, description="OAuth error description"),
    credentials: XeroCredentialManager = Depends(get_credential_manager),
) -> RedirectResponse:
    """
    Handle the redirect from Xero after the administrator authorizes.

    **No authentication required** - the state token binds the callback to
    the pending authorization.

    Always redirects to ADMIN_RETURN_URL with ``xero_connected=1`` or ``0``.
    """
    callback_params = XeroCallbackParams(
        code=code,
        state=state,
        error=error,
        error_description=error_description,
    )

    if callback_params.error:
        logger.warning(
            f"Xero authorization denied: "
            f"{callback_params.error_description or callback_params.error}"
        )
        return _admin_redirect(False)

    if not callback_params.code or not callback_params.state:
        logger.warning("Xero callback is missing code or state")
        return _admin_redirect(False)

    try:
        await credentials.complete_authorization(
            callback_params.code, settings.redirect_uri, callback_params.state
        )
    except Exception as e:
        # Message is logged, the browser only sees the flag
        logger.error(f"Xero connection failed: {getattr(e, 'detail', e)}")
        return _admin_redirect(False)

    return _admin_redirect(True)


@router.get(
    "/status",
    response_model=XeroConnectionStatus,
    operation_id="getXeroConnectionStatus",
)
async def get_xero_connection_status(
    admin: CallerJwtPayload = Depends(require_admin),
    credentials: XeroCredentialManager = Depends(get_credential_manager),
) -> XeroConnectionStatus:
    """
    Get the current Xero connection status.

    ``connected`` is True only when a usable access token can be produced,
    which may refresh the token as a side effect.
    """
    return await credentials.get_connection_status()


@router.delete(
    "/connection",
    response_model=XeroDisconnectResponse,
    operation_id="disconnectXero",
)
async def disconnect_xero(
    admin: CallerJwtPayload = Depends(require_admin),
    credentials: XeroCredentialManager = Depends(get_credential_manager),
) -> XeroDisconnectResponse:
    """Forget tokens, tenant, pending verifier and client ID."""
    return await credentials.disconnect()


@router.get(
    "/accounts/bank",
    response_model=Dict[str, str],
    operation_id="listXeroBankAccounts",
)
async def list_bank_accounts(
    admin: CallerJwtPayload = Depends(require_admin),
    api_client: XeroApiClient = Depends(get_xero_api_client),
) -> Dict[str, str]:
    """Bank accounts for payment mappings; empty when not connected."""
    return await api_client.get_bank_accounts()


@router.get(
    "/accounts/sales",
    response_model=Dict[str, str],
    operation_id="listXeroSalesAccounts",
)
async def list_sales_accounts(
    admin: CallerJwtPayload = Depends(require_admin),
    api_client: XeroApiClient = Depends(get_xero_api_client),
) -> Dict[str, str]:
    """Revenue accounts for the default sales account; empty when not connected."""
    return await api_client.get_sales_accounts()

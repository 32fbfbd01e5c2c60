# xero_sync/domains/external_accounting/xero/auth/models.py
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ConnectionState(str, Enum):
    """Lifecycle state of the Xero authorization."""

    UNCONFIGURED = "unconfigured"
    AWAITING_AUTHORIZATION = "awaiting_authorization"
    PENDING_EXCHANGE = "pending_exchange"
    CONNECTED = "connected"


class TokenSet(BaseModel):
    """Token set returned by the Xero identity server, plus its expiry."""

    model_config = ConfigDict(extra="allow")

    access_token: str = Field(..., description="Access token for API calls")
    refresh_token: Optional[str] = Field(
        None, description="Refresh token for token renewal"
    )
    expires_in: int = Field(..., description="Token lifetime in seconds")
    expires_at: int = Field(..., description="Unix time the access token expires")
    token_type: str = Field(default="Bearer", description="Token type")
    scope: Optional[str] = Field(None, description="Granted scopes")

    @property
    def can_refresh(self) -> bool:
        return bool(self.refresh_token)


class XeroTokenResponse(BaseModel):
    """Response from Xero token endpoint."""

    model_config = ConfigDict(extra="allow")

    access_token: str = Field(..., description="Access token for API calls")
    refresh_token: Optional[str] = Field(
        None, description="Refresh token for token renewal"
    )
    expires_in: int = Field(..., description="Token lifetime in seconds")
    token_type: str = Field(default="Bearer", description="Token type")
    scope: Optional[str] = Field(None, description="Granted scopes")


class PendingAuthorization(BaseModel):
    """PKCE verifier kept between issuing the auth URL and the code exchange."""

    verifier: str = Field(..., description="PKCE code verifier")
    state_nonce: str = Field(..., description="Nonce embedded in the state token")
    created_at: int = Field(..., description="Unix time the flow was started")


class XeroStateTokenPayload(BaseModel):
    """JWT payload for OAuth state token."""

    nonce: str = Field(..., description="CSRF protection nonce")
    iat: int = Field(..., description="Token issue time")
    exp: int = Field(..., description="Token expiry time")


class XeroTenantInfo(BaseModel):
    """Information about a Xero tenant from connections endpoint."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = Field(None, description="Xero connection UUID")
    tenantId: str = Field(..., description="Xero tenant ID")
    tenantName: Optional[str] = Field(None, description="Organization name in Xero")
    tenantType: Optional[str] = Field(
        None, description="Tenant type (ORGANISATION, PRACTICE)"
    )


class XeroAuthUrlResponse(BaseModel):
    """Response model for OAuth authorization URL generation."""

    auth_url: str = Field(..., description="Xero OAuth authorization URL")
    redirect_uri: str = Field(..., description="Redirect URI registered with Xero")


class XeroCallbackParams(BaseModel):
    """Query parameters from Xero OAuth callback."""

    code: Optional[str] = Field(None, description="OAuth authorization code")
    state: Optional[str] = Field(None, description="JWT state token")
    error: Optional[str] = Field(None, description="Error code if authorization failed")
    error_description: Optional[str] = Field(None, description="Error description")


class XeroConnectionResponse(BaseModel):
    """Response model for successful connection."""

    message: str = Field(..., description="Success message")
    connected_at: datetime = Field(..., description="When connection was established")
    tenant_id: str = Field(..., description="Connected Xero tenant ID")
    tenant_name: Optional[str] = Field(
        None, description="Connected Xero organization name"
    )


class XeroConnectionStatus(BaseModel):
    """Response model for Xero connection status."""

    connected: bool = Field(..., description="Whether a usable token is available")
    state: ConnectionState = Field(..., description="Authorization lifecycle state")
    tenant_id: Optional[str] = Field(None, description="Xero tenant ID if connected")
    expires_at: Optional[datetime] = Field(
        None, description="When the access token expires"
    )
    encryption_key_source: str = Field(
        ..., description="Which secret protects stored tokens"
    )


class XeroDisconnectResponse(BaseModel):
    """Response model for disconnection."""

    message: str = Field(..., description="Success message")
    disconnected_at: datetime = Field(..., description="When disconnection occurred")


class XeroSettingsUpdate(BaseModel):
    """Admin-supplied connector settings."""

    client_id: Optional[str] = Field(None, description="Xero app client ID (PKCE)")
    default_sales_account: Optional[str] = Field(
        None, description="Default revenue account code for sales lines"
    )
    payment_mappings: Optional[Dict[str, str]] = Field(
        None, description="Payment method ID to Xero bank account code"
    )


class XeroSettingsResponse(BaseModel):
    """Current connector settings."""

    client_id_configured: bool
    default_sales_account: str
    payment_mappings: Dict[str, str]

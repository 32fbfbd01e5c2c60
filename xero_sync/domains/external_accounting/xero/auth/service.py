# xero_sync/domains/external_accounting/xero/auth/service.py
import asyncio
import base64
import hashlib
import logging
import secrets
import time
from datetime import datetime, timezone
from typing import Callable, Optional
from urllib.parse import urlencode

import httpx
import jwt
from pydantic import ValidationError

from xero_sync.core.options import KeyValueStore
from xero_sync.core.settings import settings
from xero_sync.shared.exceptions import (
    IntegrationAuthenticationError,
    IntegrationConfigurationError,
    IntegrationConnectionError,
    IntegrationTokenExpiredError,
)

from .models import (
    ConnectionState,
    PendingAuthorization,
    TokenSet,
    XeroConnectionResponse,
    XeroConnectionStatus,
    XeroDisconnectResponse,
    XeroStateTokenPayload,
    XeroTenantInfo,
    XeroTokenResponse,
)
from .secret_box import SecretBox
from .store import CredentialStore

logger = logging.getLogger(__name__)

# Xero OAuth endpoints
AUTHORIZE_URL = "https://login.xero.com/identity/connect/authorize"
TOKEN_URL = "https://identity.xero.com/connect/token"
CONNECTIONS_URL = "https://api.xero.com/connections"


def generate_code_verifier() -> str:
    """Random 64-character PKCE verifier (32 bytes, hex encoded)."""
    return secrets.token_bytes(32).hex()


def code_challenge(verifier: str) -> str:
    """S256 challenge: base64url(sha256(verifier)) without padding."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


class XeroCredentialManager:
    """Owns the PKCE authorization flow and keeps the Xero token set alive."""

    def __init__(
        self,
        store: KeyValueStore,
        box: Optional[SecretBox] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.box = box or SecretBox.from_settings()
        self.credentials = CredentialStore(store, self.box)
        self.transport = transport
        self.clock = clock
        self.scopes = settings.XERO_SCOPES
        self.refresh_poll_interval = 0.5

        self.auth_url = AUTHORIZE_URL
        self.token_url = TOKEN_URL
        self.connections_url = CONNECTIONS_URL

        # Serializes refreshes inside this process; the store lease covers others
        self._refresh_lock = asyncio.Lock()

    async def begin_authorization(self, redirect_uri: str) -> str:
        """
        Start the PKCE authorization flow.

        Args:
            redirect_uri: Redirect URI registered in the Xero app

        Returns:
            Xero authorization URL to send the administrator to

        Raises:
            IntegrationConfigurationError: If no client ID is stored
        """
        client_id = await self.credentials.get_client_id()
        if not client_id:
            raise IntegrationConfigurationError("Xero client ID is not configured")

        verifier = generate_code_verifier()
        nonce = secrets.token_urlsafe(32)
        now = self._now()

        # Overwrites any verifier left behind by an abandoned flow
        await self.credentials.save_pending(
            PendingAuthorization(verifier=verifier, state_nonce=nonce, created_at=now)
        )

        auth_params = {
            "response_type": "code",
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "scope": self.scopes,
            "state": self._generate_state_token(nonce, now),
            "code_challenge": code_challenge(verifier),
            "code_challenge_method": "S256",
        }

        logger.info("Issued Xero authorization URL")
        return f"{self.auth_url}?{urlencode(auth_params)}"

    async def complete_authorization(
        self, code: str, redirect_uri: str, state: Optional[str] = None
    ) -> XeroConnectionResponse:
        """
        Exchange the authorization code for tokens and discover the tenant.

        Nothing is persisted unless both the exchange and the tenant lookup
        succeed, so a failed attempt leaves the previous connection intact.

        Args:
            code: Authorization code from the callback
            redirect_uri: Same redirect URI used to build the auth URL
            state: State token from the callback, checked when present

        Returns:
            XeroConnectionResponse with the connected tenant

        Raises:
            IntegrationConfigurationError: If no client ID is stored
            IntegrationAuthenticationError: For verifier, state or token errors
            IntegrationConnectionError: For transport failures
        """
        client_id = await self.credentials.get_client_id()
        if not client_id:
            raise IntegrationConfigurationError("Xero client ID is not configured")

        pending = await self.credentials.load_pending()
        if not pending:
            raise IntegrationAuthenticationError(
                "PKCE verifier missing. Please restart the Xero connection."
            )

        if self._now() - pending.created_at > settings.XERO_AUTH_SESSION_TTL:
            await self.credentials.clear_pending()
            raise IntegrationAuthenticationError("OAuth session expired")

        if state is not None:
            state_payload = self._validate_state_token(state)
            if not secrets.compare_digest(state_payload.nonce, pending.state_nonce):
                raise IntegrationAuthenticationError("OAuth state does not match")

        token_response = await self._exchange_code_for_tokens(
            code, redirect_uri, client_id, pending.verifier
        )
        issued_at = self._now()

        tenant_info = await self._get_tenant_info(token_response.access_token)

        tokens = TokenSet.model_validate(
            {
                **token_response.model_dump(),
                "expires_at": issued_at + token_response.expires_in,
            }
        )
        await self.credentials.save_tokens(tokens)
        await self.credentials.set_tenant_id(tenant_info.tenantId)
        await self.credentials.clear_pending()

        logger.info(f"Connected to Xero tenant {tenant_info.tenantId}")
        return XeroConnectionResponse(
            message="Xero connection established successfully",
            connected_at=datetime.now(timezone.utc),
            tenant_id=tenant_info.tenantId,
            tenant_name=tenant_info.tenantName,
        )

    async def get_valid_access_token(self) -> Optional[str]:
        """
        Get a valid access token, refreshing it if necessary.

        Returns:
            Access token, or None when not connected or the refresh failed
        """
        client_id = await self.credentials.get_client_id()
        tokens = await self.credentials.load_tokens()

        if not tokens or not client_id:
            return None

        if self._is_fresh(tokens):
            return tokens.access_token

        if not tokens.can_refresh:
            logger.error("Xero token refresh error: refresh token missing")
            return None

        try:
            return await self._refresh_with_lock(client_id)
        except IntegrationTokenExpiredError as e:
            logger.error(e.detail)
            return None

    async def get_tenant_id(self) -> Optional[str]:
        return await self.credentials.get_tenant_id()

    async def get_connection_state(self) -> ConnectionState:
        if not await self.credentials.get_client_id():
            return ConnectionState.UNCONFIGURED

        tokens = await self.credentials.load_tokens()
        if tokens and await self.credentials.get_tenant_id():
            return ConnectionState.CONNECTED

        if await self.credentials.load_pending():
            return ConnectionState.PENDING_EXCHANGE

        return ConnectionState.AWAITING_AUTHORIZATION

    async def get_connection_status(self) -> XeroConnectionStatus:
        """Connected/disconnected indicator for the admin screen."""
        state = await self.get_connection_state()
        access_token = (
            await self.get_valid_access_token()
            if state == ConnectionState.CONNECTED
            else None
        )
        tokens = await self.credentials.load_tokens()

        return XeroConnectionStatus(
            connected=access_token is not None,
            state=state,
            tenant_id=await self.credentials.get_tenant_id(),
            expires_at=(
                datetime.fromtimestamp(tokens.expires_at, tz=timezone.utc)
                if tokens
                else None
            ),
            encryption_key_source=self.box.key_source,
        )

    async def disconnect(self) -> XeroDisconnectResponse:
        """Remove tokens, tenant, verifier and client ID."""
        await self.credentials.clear_all()
        logger.info("Disconnected from Xero")
        return XeroDisconnectResponse(
            message="Disconnected from Xero.",
            disconnected_at=datetime.now(timezone.utc),
        )

    def _now(self) -> int:
        return int(self.clock())

    def _is_fresh(self, tokens: TokenSet) -> bool:
        return self._now() < tokens.expires_at - settings.XERO_TOKEN_EXPIRY_MARGIN

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self.transport, timeout=settings.XERO_REQUEST_TIMEOUT
        )

    def _generate_state_token(self, nonce: str, now: int) -> str:
        """Generate JWT state token for OAuth flow."""
        payload = XeroStateTokenPayload(
            nonce=nonce, iat=now, exp=now + settings.XERO_AUTH_SESSION_TTL
        )
        return jwt.encode(payload.model_dump(), self.box.signing_key, algorithm="HS256")

    def _validate_state_token(self, token: str) -> XeroStateTokenPayload:
        """Validate and decode JWT state token."""
        try:
            payload = jwt.decode(
                token,
                self.box.signing_key,
                algorithms=["HS256"],
                options={"verify_exp": False, "verify_iat": False},
            )
            state_payload = XeroStateTokenPayload(**payload)
        except (jwt.InvalidTokenError, ValidationError) as e:
            raise IntegrationAuthenticationError(f"Invalid OAuth state token: {e}")

        if self._now() > state_payload.exp:
            raise IntegrationAuthenticationError("OAuth session expired")
        return state_payload

    async def _exchange_code_for_tokens(
        self, code: str, redirect_uri: str, client_id: str, verifier: str
    ) -> XeroTokenResponse:
        """Exchange OAuth authorization code for access tokens."""
        token_data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "client_id": client_id,
            "code_verifier": verifier,
        }

        async with self._http_client() as client:
            try:
                response = await client.post(
                    self.token_url,
                    data=token_data,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
                response.raise_for_status()
                return XeroTokenResponse(**response.json())
            except httpx.HTTPStatusError as e:
                logger.error(f"Xero OAuth token failure: {e.response.text}")
                raise IntegrationAuthenticationError(
                    f"Token exchange failed: {e.response.text}"
                )
            except httpx.RequestError as e:
                logger.error(f"Xero OAuth token error: {e}")
                raise IntegrationConnectionError(f"Token exchange request failed: {e}")
            except (ValueError, TypeError, ValidationError) as e:
                raise IntegrationAuthenticationError(
                    f"Token exchange returned an unusable response: {e}"
                )

    async def _get_tenant_info(self, access_token: str) -> XeroTenantInfo:
        """Get tenant information from Xero connections endpoint."""
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

        async with self._http_client() as client:
            try:
                response = await client.get(self.connections_url, headers=headers)
                response.raise_for_status()
                connections = response.json()
            except httpx.HTTPStatusError as e:
                raise IntegrationConnectionError(
                    f"Failed to get tenant info: {e.response.text}"
                )
            except httpx.RequestError as e:
                raise IntegrationConnectionError(f"Tenant info request failed: {e}")
            except ValueError as e:
                raise IntegrationConnectionError(f"Tenant info was not JSON: {e}")

        if not connections or not isinstance(connections, list):
            raise IntegrationConnectionError("No Xero tenant found for this connection")

        # Single-tenant connector: the first organisation wins
        try:
            return XeroTenantInfo.model_validate(connections[0])
        except ValidationError as e:
            raise IntegrationConnectionError(f"Unexpected tenant info: {e}")

    async def _refresh_with_lock(self, client_id: str) -> Optional[str]:
        async with self._refresh_lock:
            raw = await self.credentials.load_tokens_raw()
            tokens = self.credentials.parse_tokens(raw)
            if not tokens:
                return None

            # Another caller may have refreshed while we waited for the lock
            if self._is_fresh(tokens):
                return tokens.access_token
            if not tokens.can_refresh:
                return None

            if not await self.credentials.acquire_refresh_lease(
                self._now(), settings.XERO_REFRESH_LOCK_TTL
            ):
                return await self._wait_for_refresh(raw)

            try:
                return await self._refresh_access_token(client_id, raw, tokens)
            finally:
                await self.credentials.release_refresh_lease()

    async def _wait_for_refresh(self, previous_raw: Optional[str]) -> Optional[str]:
        """Wait for another worker's refresh and reuse its token."""
        attempts = max(1, int(settings.XERO_REFRESH_LOCK_WAIT / self.refresh_poll_interval))
        for _ in range(attempts):
            await asyncio.sleep(self.refresh_poll_interval)
            raw = await self.credentials.load_tokens_raw()
            if raw == previous_raw:
                continue
            tokens = self.credentials.parse_tokens(raw)
            if tokens and self._is_fresh(tokens):
                return tokens.access_token
            return None

        logger.warning("Timed out waiting for another worker to refresh the Xero token")
        return None

    async def _refresh_access_token(
        self, client_id: str, raw: Optional[str], tokens: TokenSet
    ) -> Optional[str]:
        """Refresh the access token and persist the merged token set."""
        refresh_data = {
            "grant_type": "refresh_token",
            "refresh_token": tokens.refresh_token,
            "client_id": client_id,
        }

        async with self._http_client() as client:
            try:
                response = await client.post(
                    self.token_url,
                    data=refresh_data,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
            except httpx.RequestError as e:
                raise IntegrationTokenExpiredError(f"Token refresh request failed: {e}")

        if response.status_code >= 400:
            raise IntegrationTokenExpiredError(f"Token refresh failed: {response.text}")

        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise IntegrationTokenExpiredError(f"Token refresh failure: {response.text}")

        try:
            refreshed = XeroTokenResponse.model_validate(payload)
            # Fields the provider did not resend (e.g. an unrotated refresh token) are kept
            merged = {**tokens.model_dump(), **refreshed.model_dump(exclude_unset=True)}
            merged["expires_at"] = self._now() + refreshed.expires_in
            new_tokens = TokenSet.model_validate(merged)
        except ValidationError as e:
            raise IntegrationTokenExpiredError(f"Token refresh returned bad data: {e}")

        if not await self.credentials.replace_tokens(raw, new_tokens):
            logger.warning("Xero token set changed during refresh; discarding result")
            return None

        logger.info("Refreshed Xero access token")
        return new_tokens.access_token

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database / host configuration
    DATABASE_URL: str | None = None
    JWT_SECRET: str | None = None

    # Application URLs
    APP_BASE_URL: str = "http://localhost:8001"  # Default for development
    ADMIN_RETURN_URL: str = "/admin/xero"

    # Xero OAuth configuration (PKCE, no client secret)
    XERO_REDIRECT_URI: str | None = None
    XERO_SCOPES: str = (
        "openid profile email offline_access "
        "accounting.transactions accounting.settings"
    )
    XERO_ENCRYPTION_KEY: str | None = None
    XERO_AUTH_SESSION_TTL: int = 1800  # 30 minutes

    # Token lifecycle
    XERO_TOKEN_EXPIRY_MARGIN: int = 60
    XERO_REFRESH_LOCK_TTL: int = 90  # well above XERO_REQUEST_TIMEOUT
    XERO_REFRESH_LOCK_WAIT: float = 10.0

    # Xero API
    XERO_REQUEST_TIMEOUT: float = 30.0
    XERO_DEFAULT_SALES_ACCOUNT: str = "200"
    XERO_INVOICE_REFERENCE_PREFIX: str = "WOO-"

    # Order sync
    SYNC_CLAIM_TTL: int = 900  # 15 minutes

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    @property
    def redirect_uri(self) -> str:
        if self.XERO_REDIRECT_URI:
            return self.XERO_REDIRECT_URI
        return f"{self.APP_BASE_URL.rstrip('/')}/api/v1/xero/callback"


settings = Settings()

"""Environment-driven settings for the billing reconciler."""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings, read from the environment or a local ``.env`` file.

    Only the Supabase connection is mandatory. Without gateway credentials the
    service still starts, but order creation and webhook ownership checks fail
    and the readiness probe reports unhealthy.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="billing-reconciler")
    app_env: str = Field(default="development", description="development, staging or production")
    debug: bool = Field(default=False, description="Serves interactive API docs when set")

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)
    max_request_body_size: int = Field(default=1_048_576, description="Requests above this many bytes get a 413")
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated browser origins allowed to call the API",
    )

    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Service key; bypasses row level security")

    gateway_base_url: str = Field(default="https://api.razorpay.com/v1", description="Gateway REST base URL")
    gateway_key_id: str = Field(default="", description="Basic-auth user for gateway calls")
    gateway_key_secret: str = Field(default="", description="Basic-auth password for gateway calls")
    gateway_timeout_seconds: float = Field(default=10.0, gt=0)
    client_callback_secret: str = Field(
        default="",
        description="HMAC key for checkout callback signatures; empty means the gateway key secret",
    )
    webhook_secret: str = Field(default="", description="HMAC key for gateway webhook deliveries")

    application_tag: str = Field(default="Dine", description="Tag written into order notes to claim ownership")
    default_currency: str = Field(default="INR", description="Currency assumed when a request omits one")

    storage_retry_attempts: int = Field(default=3, ge=1, description="Tries per datastore call, first one included")
    storage_retry_max_wait_seconds: float = Field(default=2.0, ge=0, description="Cap on exponential backoff")

    ownership_cache_ttl_seconds: int = Field(default=0, ge=0, description="0 turns the ownership cache off")
    ownership_cache_size: int = Field(default=1000, ge=1)

    @model_validator(mode="after")
    def default_client_callback_secret(self) -> "Settings":
        """Checkout callbacks are signed with the key secret unless overridden."""
        if not self.client_callback_secret:
            self.client_callback_secret = self.gateway_key_secret
        return self

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_gateway_configured(self) -> bool:
        return bool(self.gateway_key_id and self.gateway_key_secret)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings.

    Tests that change the environment call ``get_settings.cache_clear()``.
    """
    return Settings()

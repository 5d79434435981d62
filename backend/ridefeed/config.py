"""
Application Configuration

Uses Pydantic Settings for type-safe configuration.
Environment names stay compatible with the existing webhook deployment
(EIDFAXI_*, SPORTFENGUR_*, VMIX_*).
"""

from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator, ConfigDict


class Settings(BaseSettings):
    """Application settings with validation."""

    # === Core ===
    debug: bool = Field(
        default=False,
        validation_alias="debug_mode",
        description="Enable debug mode (docs endpoints, verbose logs)"
    )
    log_level: str = Field(default="INFO", description="Logging level")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)

    # === SportFengur API ===
    sportfengur_base_url: str = Field(
        default="https://sportfengur.com/api/v1",
        description="SportFengur API base URL"
    )
    sportfengur_locale: str = Field(default="is")
    sportfengur_username: Optional[str] = Field(
        default=None,
        validation_alias="eidfaxi_username"
    )
    sportfengur_password: Optional[str] = Field(
        default=None,
        validation_alias="eidfaxi_password"
    )
    token_ttl_seconds: int = Field(
        default=3600,
        description="Re-login after this many seconds (0 = never)"
    )
    request_timeout_seconds: float = Field(default=15.0)

    # === Rate Limiting / Retries ===
    min_fetch_interval_ms: int = Field(default=1500)
    fetch_max_retries: int = Field(default=3)
    fetch_retry_base_ms: int = Field(default=750)
    response_cache_size: int = Field(
        default=256,
        description="Last-known-good responses kept for stale fallback"
    )

    # === Webhooks ===
    webhook_secret: Optional[str] = Field(
        default=None,
        validation_alias="sportfengur_webhook_secret"
    )
    webhook_secret_required: bool = Field(default=False)
    dedupe_ttl_ms: int = Field(default=30000)
    event_id_filter: Optional[int] = Field(
        default=None,
        validation_alias="event_id",
        description="Only process webhooks for this event"
    )
    webhook_history_limit: int = Field(default=200)

    # === Live graphics refresh ===
    refresh_debounce_ms: int = Field(
        default=200,
        validation_alias="vmix_debounce_ms"
    )
    refresh_timeout_ms: int = Field(
        default=30000,
        validation_alias="vmix_refresh_timeout_ms"
    )

    # === Operator control ===
    control_api_key: Optional[str] = Field(
        default=None,
        description="Shared key for /config, /control and /cache endpoints"
    )

    @field_validator('sportfengur_base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator('event_id_filter', mode='before')
    @classmethod
    def parse_event_id_filter(cls, v):
        """Anything that is not an integer disables the filter."""
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, int):
            return v
        try:
            return int(str(v).strip())
        except ValueError:
            return None

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


# Global settings instance
settings = Settings()

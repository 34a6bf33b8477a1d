"""Central environment-driven settings shared by all services.

Each service process loads this once at startup. Service-specific behavior is
controlled by environment variables (see `.env.example`).
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class CommonSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "unknown-service"
    log_level: str = "INFO"
    database_url: str
    api_key: str
    otel_exporter_otlp_endpoint: str = ""
    mpesa_environment: str = "sandbox"
    mpesa_consumer_key: str = ""
    mpesa_consumer_secret: str = ""
    mpesa_passkey: str = ""
    mpesa_shortcode: str = "174379"
    mpesa_callback_url: str = "http://localhost:8001/mpesa/callback"
    mpesa_timeout_seconds: float = 10.0
    super_admin_email: str = ""
    organisation_name: str = "TEAM NO STRUGGLE WELFARE GROUP"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = CommonSettings()

"""Central environment-driven settings for the order service.

The process loads this once at startup in the composition root. Behavior is
controlled by environment variables (see `.env.example`).
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "orderpay"
    log_level: str = "INFO"
    database_url: str = "sqlite:///./orderpay.db"
    webhook_shared_secret: str = "dev-webhook-secret"
    webhook_signature_header: str = "X-Signature"
    webhook_tolerance_seconds: int = 300
    webhook_base_url: str = "http://localhost:8000"
    webhook_timeout_seconds: float | None = 10.0
    payment_simulation_delay_seconds: float = 5.0
    tracing_enabled: bool = False
    otel_exporter_otlp_endpoint: str = "http://otel-collector:4318/v1/traces"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

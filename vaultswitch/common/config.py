"""Central environment-driven settings for the switch service.

Loaded once per process. Behavior is controlled by environment variables or
an optional `.env` file in the working directory.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class CommonSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "vaultswitch"
    log_level: str = "INFO"
    log_json: bool = True
    postgres_dsn: str
    api_key: str
    redis_url: str = "redis://redis:6379/0"
    app_url: str = "http://localhost:3000"
    mail_relay_url: str | None = None
    mail_relay_api_key: str | None = None
    mail_from: str = "Digital Legacy Vault <no-reply@localhost>"
    delivery_timeout_seconds: float = 10.0
    clear_token_on_check_in: bool = True
    check_in_conflict_retries: int = 3
    scan_lock_ttl_seconds: int = 3600
    tracing_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://otel-collector:4318/v1/traces"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = CommonSettings()

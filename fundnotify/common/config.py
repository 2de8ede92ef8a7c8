"""Central environment-driven settings for the notifier process.

Loaded once at import. Every value can be overridden through environment
variables or a local `.env` file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class CommonSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "notifier"
    log_level: str = "INFO"
    dismissal_store_dsn: str = "sqlite:///./dismissals.db"
    ledger_api_url: str = "http://ledger-indexer:8080"
    kafka_bootstrap_servers: str = "kafka:9092"
    funding_events_topic: str = "ledger.funding"
    otel_exporter_otlp_endpoint: str = "http://otel-collector:4318/v1/traces"
    # Optional: start a session for this wallet identity on boot.
    recipient_identity: str = ""
    recipient_role: str = "founder"
    query_timeout_seconds: float = 15.0
    project_lookup_timeout_seconds: float = 5.0
    subscribe_timeout_seconds: float = 10.0
    resubscribe_initial_backoff_seconds: float = 1.0
    resubscribe_max_backoff_seconds: float = 30.0
    token_decimals: int = 18
    token_symbol: str = "WND"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = CommonSettings()

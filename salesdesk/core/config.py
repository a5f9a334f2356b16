from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "SalesDesk API"
    app_env: str = "local"
    log_level: str = "INFO"
    seed_fixtures: bool = True
    simulated_latency_enabled: bool = True
    simulated_latency_scale: float = 1.0
    simulated_latency_overrides: dict[str, int] = {}
    recent_activity_limit: int = 10
    metrics_enabled: bool = False
    otel_enabled: bool = False
    otel_service_name: str = "salesdesk-api"
    otel_exporter_otlp_endpoint: str | None = None
    otel_console_exporter: bool = False

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)


@lru_cache
def get_settings() -> Settings:
    return Settings()

"""Configuration system using pydantic-settings with environment variable loading."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BudgetSettings(BaseSettings):
    """Outbound request budget (fixed-window counters)."""

    model_config = SettingsConfigDict(env_prefix="BUDGET_")

    per_minute: int = 20
    per_day: int = 500


class FetchSettings(BaseSettings):
    """Upstream base URL and retry policy."""

    model_config = SettingsConfigDict(env_prefix="FETCH_")

    base_url: str = "https://query1.finance.yahoo.com"
    max_retries: int = Field(default=3, ge=1)  # total attempts, not retries after the first
    retry_base_delay: float = 1.0  # seconds; doubled per attempt
    timeout_seconds: float = 10.0


class ServerSettings(BaseSettings):
    """HTTP tool server configuration."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    host: str = "0.0.0.0"
    port: int = 8080


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    budget: BudgetSettings = BudgetSettings()
    fetch: FetchSettings = FetchSettings()
    server: ServerSettings = ServerSettings()

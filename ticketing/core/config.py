# ticketing/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    APP_NAME: str = "Ticket Authority"
    APP_DESC: str = "Issues, stores and validates transit tickets"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # CORS origins (comma-separated)
    CORS_ORIGINS: str | None = None

    # Authority storage
    LEDGER_PATH: str = Field(default="./data/tickets.csv")
    DATABASE_URL: str = Field(default="sqlite:///./reports.db")

    # Probability of a simulated validation failure; 0 disables the hook
    VALIDATION_FAILURE_RATE: float = Field(default=0.0, ge=0.0, le=1.0)
    # Seed for the simulated-failure generator; unset draws from system entropy
    VALIDATION_FAILURE_SEED: int | None = None

    # Gate
    GATE_ID: str = "001"
    MQTT_HOST: str = "localhost"
    MQTT_PORT: int = 1883
    MQTT_KEEPALIVE: int = 20
    AUTHORITY_URL: str = "http://localhost:8080"
    AUTHORITY_CONNECT_TIMEOUT: float = 2.0
    AUTHORITY_READ_TIMEOUT: float = 5.0
    REPORT_EVERY: int = Field(default=10, ge=1)
    REPORT_WINDOW: int = Field(default=10, ge=0)
    HISTORY_LIMIT: int = Field(default=100, ge=1)
    RECONNECT_DELAY: float = 1.0
    POLL_TIMEOUT: float = 1.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def cors_origins(self) -> list[str]:
        if not self.CORS_ORIGINS:
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]

"""Application configuration settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    PROJECT_NAME: str = "Offline Review"
    VERSION: str = "0.1.0"
    DEBUG: bool = True
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # Facilities backend that owns submissions and canonical readings
    BACKEND_API_URL: str = "http://localhost:3000/api"
    REQUEST_TIMEOUT_SECONDS: float = 25.0

    # Route names tried in order for the canonical reading listing
    READING_ENDPOINT_CANDIDATES: list[str] = [
        "/meter_reading",
        "/readings",
        "/meter-readings",
        "/meterreadings",
    ]

    # Review behaviour
    ANOMALY_THRESHOLD_PERCENT: float = 20.0
    FAILURE_PREVIEW_LIMIT: int = 5
    ADMIN_ROLE: str = "admin"


settings = Settings()

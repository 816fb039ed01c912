"""Application configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./doccollect.db"
    DATABASE_ECHO: bool = False

    # Application
    APP_ENV: str = "development"
    API_V1_PREFIX: str = "/api"

    # Frontend
    FRONTEND_URL: str = "http://localhost:3000"

    # Outreach orchestration
    DEFAULT_FLOW: str = "default"
    DELIVERY_TIMEOUT_SECONDS: float = 30.0
    HISTORY_RETENTION_LIMIT: Optional[int] = 200
    ESCALATION_DEFAULT_COOLDOWN_HOURS: float = 72.0

    # Where outreach state lives: "memory" (per process) or "sql" (DATABASE_URL)
    OUTREACH_STORE: Literal["memory", "sql"] = "memory"

    # Delivery: "simulated" or "console"
    DELIVERY_GATEWAY: str = "simulated"
    SIMULATED_SUCCESS_RATE: float = 0.8
    SIMULATED_DELIVERY_SEED: Optional[int] = None

    # CORS
    @property
    def ALLOWED_ORIGINS(self) -> List[str]:
        if self.APP_ENV == "development":
            return ["*"]  # Allow all origins in development
        return [self.FRONTEND_URL, "http://localhost:3000"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()

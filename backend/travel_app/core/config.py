from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator
from decimal import Decimal
from typing import Any, ClassVar
import json
from pathlib import Path
import os


def _default_env_file() -> str:
    return os.getenv("ENV_FILE", str(Path(__file__).resolve().parents[3] / ".env"))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        env_file=_default_env_file(),
        case_sensitive=True,
    )

    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Travel Booking API"

    # JWT configuration (provide a fallback for local development)
    SECRET_KEY: str = "fallback_secret_for_dev_only"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Database URL
    # Use an absolute path so running the app from different directories
    # (e.g., repo root or backend/) always resolves the same DB file.
    BASE_DIR: ClassVar[Path] = Path(__file__).resolve().parents[2]
    SQLALCHEMY_DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'travel.db'}"

    # Redis connection URL for the realtime bus
    REDIS_URL: str = "redis://localhost:6379/0"
    WS_BUS_ENABLED: bool = False

    # CORS origins
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    CORS_ALLOW_ALL: bool = False

    # Base frontend URL used for payment finish redirects
    FRONTEND_URL: str = "http://localhost:3000"

    # Default currency code used across the application
    DEFAULT_CURRENCY: str = "IDR"

    # Midtrans (Snap + Core API)
    MIDTRANS_SERVER_KEY: str = ""
    MIDTRANS_CLIENT_KEY: str = ""
    MIDTRANS_IS_PRODUCTION: bool = False
    MIDTRANS_TIMEOUT_SECONDS: float = 10.0

    # Refund policy
    REFUND_RATE: Decimal = Decimal("0.5")
    REFUND_MIN_HOURS_BEFORE_TRAVEL: int = 24

    # Listing pagination
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    LOG_LEVEL: str = "INFO"

    @field_validator("CORS_ORIGINS", mode="before")
    def split_origins(cls, v: Any) -> list[str]:
        """Parse comma-separated or JSON list of origins from environment."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                pass
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("FRONTEND_URL", "MIDTRANS_SERVER_KEY", "MIDTRANS_CLIENT_KEY", mode="before")
    def strip_whitespace(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @model_validator(mode="after")
    def allow_all_if_requested(cls, values: "Settings") -> "Settings":
        if values.CORS_ALLOW_ALL:
            values.CORS_ORIGINS = ["*"]
        return values

    @property
    def midtrans_snap_url(self) -> str:
        if self.MIDTRANS_IS_PRODUCTION:
            return "https://app.midtrans.com/snap/v1"
        return "https://app.sandbox.midtrans.com/snap/v1"

    @property
    def midtrans_api_url(self) -> str:
        if self.MIDTRANS_IS_PRODUCTION:
            return "https://api.midtrans.com/v2"
        return "https://api.sandbox.midtrans.com/v2"


def load_settings() -> "Settings":
    return Settings(_env_file=_default_env_file())


settings = load_settings()

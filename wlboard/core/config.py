# wlboard/core/config.py
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "wlboard-dev-secret-change-me"


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Useful env vars (.env):
      - AUTH_ENABLED (true = accounts + allowlist, false = open board)
      - DATA_DIR (where the JSON collections live)
      - JWT_SECRET (signing secret for session tokens)
      - BOOTSTRAP_ADMIN_EMAIL (seeded into the allowlist on first run)

    Everything else has a sensible default for local development.
    """

    PROJECT_NAME: str = "WL Partnership Manager"
    VERSION: str = "2.0.0"
    API_PREFIX: str = "/api"

    HOST: str = "0.0.0.0"
    PORT: int = 3000

    AUTH_ENABLED: bool = True

    # Storage
    DATA_DIR: Path = Path("data")
    STATIC_DIR: Path = Path("static")
    SAVE_INTERVAL_SECONDS: float = 600

    # Session tokens
    JWT_SECRET: str = DEFAULT_JWT_SECRET
    JWT_ALG: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7
    REVOKE_TOKENS_ON_DEACTIVATION: bool = True

    BCRYPT_ROUNDS: int = 12
    BOOTSTRAP_ADMIN_EMAIL: str = "admin@wlsmanager.com"

    # Rate limiting (per client IP)
    API_RATE_LIMIT: int = 100
    API_RATE_WINDOW_SECONDS: float = 15 * 60
    LOGIN_RATE_LIMIT: int = 5
    LOGIN_RATE_WINDOW_SECONDS: float = 15 * 60

    CORS_ORIGINS: list[str] = ["*"]

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()

"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env
file as a fallback. The .env file is gitignored; .env.example is the template.

Pydantic Settings resolves each field in this order:
  1. Environment variables (highest priority)
  2. .env file values
  3. Defaults defined here (lowest priority)

Settings are read once, at application startup, through get_settings(). The
resulting object is handed to build_context() (see app_context.py), which
turns it into the long-lived service handles (engine, token authority, card
cipher, bank client). Components receive those handles explicitly instead of
importing a module-level singleton.

Usage:
    from ledger_api.config import get_settings
    settings = get_settings()
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the Ledger API.

    Required fields (no defaults) MUST be set in .env or environment:
      - AUTH_SECRET: HMAC secret used to sign bearer tokens
      - CARD_ENCRYPTION_KEY: Fernet key for encrypting card CVVs at rest
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Ledger API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    # SQLite for local runs; point at PostgreSQL (asyncpg driver) in production
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/ledger.db"

    # --- Authentication ---
    # REQUIRED: no default, forces a real secret per deployment
    AUTH_SECRET: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # --- Card Encryption ---
    # REQUIRED: Fernet key for encrypting card CVVs at rest
    # Generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
    CARD_ENCRYPTION_KEY: str

    # --- Bank reference service ---
    # Banks are owned by a separate service; {bank_id} is substituted per call
    BANK_SERVICE_URL: str = "http://localhost:5002/api/v1/banks/{bank_id}"
    HTTP_TIMEOUT_SECONDS: float = 5.0

    # --- Ledger ---
    # Compare-and-swap attempts before a balance update gives up with a conflict
    LEDGER_MAX_RETRIES: int = 5

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["*"]


@lru_cache()
def get_settings() -> Settings:
    """
    Return the process-wide Settings instance.

    lru_cache makes this a build-once accessor: the environment is read on
    the first call and every later call returns the same object.
    """
    return Settings()

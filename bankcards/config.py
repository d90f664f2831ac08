"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. The .env file is gitignored; .env.example provides a safe template.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from bankcards.config import settings
    print(settings.SECRET_KEY)
"""

from dataclasses import dataclass

from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class CryptoConfig:
    """Key material and cipher name captured once by the card cipher."""
    key: str
    algorithm: str


class Settings(BaseSettings):
    """
    Central configuration for the Bank Card API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign JWT tokens
      - CARD_ENCRYPTION_KEY: Symmetric key for card numbers at rest
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    APP_NAME: str = "Bank Card Management API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # --- Database ---
    # SQLite for local use; swap to a postgresql+asyncpg URL for production
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/bankcards.db"

    # --- Authentication ---
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # --- Card Encryption ---
    # 16, 24 or 32 UTF-8 bytes (AES-128/192/256). The first 16 bytes double
    # as the CBC IV, so existing ciphertexts stay decryptable.
    CARD_ENCRYPTION_KEY: str
    CARD_ENCRYPTION_ALGORITHM: str = "AES/CBC/PKCS5Padding"

    # --- Bootstrap admin (optional) ---
    BOOTSTRAP_ADMIN_USERNAME: str | None = None
    BOOTSTRAP_ADMIN_PASSWORD: str | None = None
    BOOTSTRAP_ADMIN_EMAIL: str | None = None

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]

    @property
    def crypto(self) -> CryptoConfig:
        return CryptoConfig(
            key=self.CARD_ENCRYPTION_KEY,
            algorithm=self.CARD_ENCRYPTION_ALGORITHM,
        )


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()

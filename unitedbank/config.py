"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. Secrets stay out of source code: the .env file is gitignored.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from unitedbank.config import settings
    print(settings.TRANSFER_LIMIT_CENTS)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the United Bank API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Signs JWT access tokens and admin 2FA session tokens
      - TOTP_ENCRYPTION_KEY: Fernet key for encrypting admin TOTP secrets at rest
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "United Bank API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/unitedbank.db"

    # --- Authentication ---
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # --- Ledger ---
    # 2,000,000.00 per transaction, identical for every tier and category
    TRANSFER_LIMIT_CENTS: int = 200_000_000
    # 150 basis points = 1.5% external transfer fee
    TRANSFER_FEE_BASIS_POINTS: int = 150
    # Routing number assigned to accounts opened at this bank
    ROUTING_NUMBER: str = "021000089"

    # --- Admin access gate ---
    # When False (the default), an empty allowlist or a failed IP lookup
    # blocks admin access instead of allowing it.
    ADMIN_IP_FAIL_OPEN: bool = False
    # Only enable behind a reverse proxy that overwrites X-Forwarded-For
    TRUST_FORWARDED_FOR: bool = False
    PUBLIC_IP_LOOKUP_URL: str = "https://api.ipify.org?format=json"
    ADMIN_2FA_SESSION_MINUTES: int = 30
    TOTP_ISSUER: str = "United Bank Admin"

    # REQUIRED: Fernet key for the admin_2fa.secret_encrypted column
    # Generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
    TOTP_ENCRYPTION_KEY: str

    # --- Outbound email notifications ---
    # Unset disables email delivery (notifications are logged and skipped)
    NOTIFICATION_URL: str | None = None
    NOTIFICATION_API_KEY: str | None = None
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()

"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./firmdesk.db"
    DB_ECHO: bool = False

    # Invitations
    INVITE_EXPIRY_DAYS: int = 7
    MAX_PENDING_INVITES_PER_ORG: int = 50
    # Invitations are bearer tokens: any signed-in account may claim one.
    # Flip this on to require the accepting account's email to match.
    INVITE_REQUIRE_EMAIL_MATCH: bool = False

    # Identity tokens
    EMAIL_CONFIRMATION_EXPIRY_HOURS: int = 24
    PASSWORD_RESET_EXPIRY_MINUTES: int = 15

    # Documents
    MAX_DOCUMENT_SIZE_BYTES: int = 25 * 1024 * 1024  # 25 MB
    LOCAL_STORAGE_PATH: str = "/tmp/firmdesk-documents"


settings = Settings()

"""
Configuration management for the application.
Loads settings from environment variables using Pydantic Settings.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./personelim.sqlite"
    DB_CONNECT_ATTEMPTS: int = 12
    DB_CONNECT_WAIT_SECONDS: int = 5
    DB_ECHO: bool = False

    @property
    def database_url_async(self) -> str:
        """
        Transform DATABASE_URL to use the appropriate async driver.
        - PostgreSQL: postgresql+asyncpg://...
        - SQLite: sqlite+aiosqlite:///...
        """
        if self.DATABASE_URL.startswith("postgresql://"):
            return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif self.DATABASE_URL.startswith("postgres://"):
            return self.DATABASE_URL.replace("postgres://", "postgresql+asyncpg://", 1)
        elif self.DATABASE_URL.startswith("sqlite://"):
            return self.DATABASE_URL.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return self.DATABASE_URL

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days
    JWT_ISSUER: str = "personelim-api"
    JWT_AUDIENCE: str = "personelim-clients"
    MIN_PASSWORD_LENGTH: int = 6

    # Application
    APP_NAME: str = "Personelim API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    # Email Configuration (Postmark)
    POSTMARK_ENABLED: bool = True
    POSTMARK_SERVER_TOKEN: str = ""
    POSTMARK_FROM_EMAIL: str = "noreply@personelim.com"
    POSTMARK_FROM_NAME: str = "Personelim"
    EMAIL_TEST_MODE: bool = False

    # Frontend URL (for email links)
    FRONTEND_URL: str = "http://localhost:5173"

    # Member document storage
    UPLOAD_DIR: str = "uploads"
    MAX_DOCUMENT_SIZE_MB: int = 10

    # Invitations and password reset
    INVITATION_EXPIRE_DAYS: int = 7
    INVITATION_CODE_LENGTH: int = 8
    RESET_CODE_EXPIRE_MINUTES: int = 15

    # Province / district reference data source
    LOCATION_API_URL: str = "https://turkiyeapi.dev/api/v1/provinces"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = True


# Singleton instance - import this in other modules
settings = Settings()

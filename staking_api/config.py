# mypy: disable-error-code="call-arg"
from typing import Optional

from pydantic import PostgresDsn, SecretStr, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # API
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Staking Dashboard API"
    VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Server
    PORT: int = 8000

    # CORS (the first origin doubles as the fallback for unknown origins)
    CORS_ALLOWED_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",  # Vite dev server
        "http://localhost:4173",  # Vite preview
        "https://cabverse-dapp.vercel.app",
    ]

    # Authentication
    JWT_SECRET: Optional[SecretStr] = None
    AUTH_REQUIRED: bool = False

    # Database
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "postgres"
    DB_PASSWORD: SecretStr = SecretStr("postgres")
    DB_NAME: str = "staking"
    DATABASE_URL: Optional[PostgresDsn] = None
    DATABASE_URL_POOLER: Optional[PostgresDsn] = None
    ENABLE_STARTUP_HEALTH_CHECK: bool = False

    # Retry policy for transient connection failures
    DB_RETRY_MAX_RETRIES: int = 3
    DB_RETRY_BASE_DELAY: float = 1.0  # seconds

    @model_validator(mode="after")
    def build_database_url(self) -> "Settings":
        if not self.DATABASE_URL:
            password = (
                self.DB_PASSWORD.get_secret_value()
                if isinstance(self.DB_PASSWORD, SecretStr)
                else self.DB_PASSWORD
            )

            self.DATABASE_URL = PostgresDsn.build(
                scheme="postgresql+asyncpg",
                username=self.DB_USER,
                password=password,
                host=self.DB_HOST,
                port=self.DB_PORT,
                path=self.DB_NAME,
            )
        return self

    @property
    def effective_database_url(self) -> str:
        """Pooled connection string when configured, else the primary one."""
        return str(self.DATABASE_URL_POOLER or self.DATABASE_URL)

    @property
    def run_startup_health_check(self) -> bool:
        return self.ENABLE_STARTUP_HEALTH_CHECK or self.DEBUG

    class Config:
        env_file = ".env"
        case_sensitive = True
        validate_default = True


settings = Settings()

"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    LOG_LEVEL: str = "INFO"

    # Database (postgresql+psycopg://... in deployment, sqlite for local runs)
    DATABASE_URL: str

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 12

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Frontend (invite accept links)
    FRONTEND_URL: str = "http://localhost:3000"

    # Invites
    INVITE_EXPIRY_DAYS: int = 7
    MAX_PENDING_INVITES_PER_ORG: int = 50

    # Dev-only: resolve unauthenticated requests to a read-only demo org
    DEV_DEMO_MODE: bool = False
    DEV_DEMO_ROLE: str = "OWNER"

    # Rate Limiting
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_API: int = 120  # General API, requests per minute (0 disables)
    RATE_LIMIT_INVITE_ACCEPT: str = "10/minute"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets

    @property
    def cookie_secure(self) -> bool:
        """Secure cookies only in production."""
        return self.ENV != "dev"

    @property
    def dev_demo_enabled(self) -> bool:
        """Dev demo bypass is never honoured outside dev."""
        return self.DEV_DEMO_MODE and self.ENV == "dev"


settings = Settings()

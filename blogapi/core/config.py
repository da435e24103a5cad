from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Runtime
    ENVIRONMENT: str = "development"  # "development", "test" or "production"
    LOG_LEVEL: str = "INFO"
    SQL_ECHO: bool = False
    AUTO_CREATE_TABLES: bool = True  # Create missing tables on startup
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: Optional[str] = None
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "blog"
    DB_PASSWORD: str = "blog_password"
    DB_NAME: str = "blog_db"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    # Identity provider tokens
    IDENTITY_TOKEN_SECRET: str = "dev-identity-secret-change-me"  # IMPORTANT: Change in production!
    IDENTITY_TOKEN_ALGORITHM: str = "HS256"
    IDENTITY_TOKEN_ISSUER: Optional[str] = None  # Checked only when set
    IDENTITY_TOKEN_EXPIRE_MINUTES: int = 60

    # Author mapping
    AUTO_PROVISION_AUTHORS: bool = True  # Create a local user on first write by an unknown subject
    PROVISIONED_EMAIL_DOMAIN: str = "identity.local"

    # Pagination
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # URLs
    FRONTEND_URL: str = "http://localhost:3000"

    class Config:
        env_file = ".env"
        extra = "ignore"  # Allow extra fields in .env file


settings = Settings()

"""Settings and configuration."""
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

# Load .env file if it exists
load_dotenv()


class Settings(BaseSettings):
    # Core
    MODE: str = "dev"  # dev, prod
    LOG_LEVEL: str = "INFO"

    # Field encryption
    # ENCRYPTION_SALT is mandatory whenever ENCRYPTION_KEY is set.
    ENCRYPTION_KEY: Optional[str] = None
    ENCRYPTION_SALT: Optional[str] = None

    # Authentication mode (any flag selects simple mode)
    USE_SIMPLE_AUTH: bool = False
    NETLIFY: bool = False
    DISABLE_AUTH: bool = False
    SIMPLE_AUTH_DEFAULT_ROLE: Optional[str] = None

    # Full mode token verification
    JWT_SECRET: Optional[str] = None
    JWT_ISSUER: Optional[str] = None
    JWT_AUDIENCE: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    JWT_COOKIE_NAME: str = "access_token"

    class Config:
        case_sensitive = True
        env_file = ".env"
        extra = "ignore"

    @property
    def simple_auth_enabled(self) -> bool:
        return self.USE_SIMPLE_AUTH or self.NETLIFY or self.DISABLE_AUTH

    @property
    def is_production(self) -> bool:
        return self.MODE.lower() == "prod"


settings = Settings()

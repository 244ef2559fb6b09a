# =====================================================
# FILE: onboarding/core/config.py
# Application Settings
# =====================================================

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings, loaded from environment variables or .env
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # API
    PROJECT_NAME: str = "Onboarding Workflow Engine"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database (MySQL)
    DB_HOST: str = Field("localhost", description="Database host")
    DB_PORT: int = Field(3306, description="Database port")
    DB_NAME: str = Field("onboarding", description="Database name")
    DB_USER: str = Field("onboarding", description="Database user")
    DB_PASSWORD: str = Field("", description="Database password")
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_PRE_PING: bool = True

    # Authentication
    JWT_SECRET_KEY: str = Field("change-me", description="Secret used to verify caller tokens")
    JWT_ALGORITHM: str = "HS256"


settings = Settings()

"""
Application configuration loaded from environment variables.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file = ".env",
        env_file_encoding = "utf-8",
        populate_by_name = True,
        extra = "ignore"
    )

    # Database
    database_url: str = Field(default="sqlite+aiosqlite:///./bluecarbon.db", alias="DATABASE_URL")

    # Ledger mint service
    ledger_base_url: str = Field(default="http://localhost:3001", alias="LEDGER_BASE_URL")
    ledger_api_key: str = Field(default="", alias="LEDGER_API_KEY")
    ledger_cluster: str = Field(default="devnet", alias="LEDGER_CLUSTER")
    ledger_timeout_seconds: float = Field(default=60.0, alias="LEDGER_TIMEOUT_SECONDS", gt=0)

    # Identity provider
    identity_base_url: str = Field(default="http://localhost:54321", alias="IDENTITY_BASE_URL")
    identity_api_key: str = Field(default="", alias="IDENTITY_API_KEY")
    identity_timeout_seconds: float = Field(default=10.0, alias="IDENTITY_TIMEOUT_SECONDS", gt=0)

    # Minting
    max_mint_amount: int = Field(default=1_000_000, alias="MAX_MINT_AMOUNT", ge=1)
    token_symbol: str = Field(default="CCR", alias="TOKEN_SYMBOL")
    token_name: str = Field(default="Carbon Credit Token", alias="TOKEN_NAME")

    # Application
    app_name: str = Field(default="Blue Carbon Registry", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    port: int = Field(default=8000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cors_origins: List[str] = Field(default=["http://localhost:3000"], alias="CORS_ORIGINS")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

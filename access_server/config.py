# access_server/config.py
"""
Application Configuration
Uses pydantic-settings for environment variable management
"""

from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables
    Create a .env file for local development
    """

    # === Application ===
    APP_NAME: str = "WireGuard Access Server"
    APP_VERSION: str = "1.0.0"
    ENV: str = "development"  # development, staging, production
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # === API ===
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # CORS
    CORS_ORIGINS: List[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True

    # === Database ===
    DATABASE_URL: str = "sqlite:///./access_server.db"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # === Security ===
    SESSION_SECRET: str = "change-me-in-production-use-secrets-manager"
    SESSION_MAX_AGE: int = 14 * 24 * 3600  # seconds
    ADMIN_SECRET: str = "change-me-admin-secret"

    # === VPN Network ===
    VPN_NETWORK: str = "10.0.0.0/24"
    VPN_GATEWAY: str = "10.0.0.1"

    # WireGuard interface
    WG_INTERFACE: str = "wg0"
    WG_ENDPOINT: str = "vpn.example.com:51820"
    WG_PUBLIC_KEY: str = ""  # empty = read from the running interface
    WG_DNS: List[str] = ["1.1.1.1"]
    WG_COMMAND_TIMEOUT: float = 5.0  # seconds, per wg(8) invocation

    # Peers managed outside the registry (never pruned by sync)
    WG_STATIC_PEERS: List[str] = []

    # === Reconciliation ===
    SYNC_ON_STARTUP: bool = True
    SYNC_INTERVAL: int = 60  # seconds, 0 disables the periodic pass
    SYNC_PRUNE_ORPHANS: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.ENV.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.ENV.lower() == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance
    Use this to get settings throughout the application
    """
    return Settings()


settings = get_settings()

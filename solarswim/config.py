"""
SolarSwim Admin - Configuration Management
"""
from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables
    """
    model_config = ConfigDict(
        extra='ignore',  # Ignore extra env vars not in model
        env_file=".env",
        case_sensitive=True
    )

    # ========================================================================
    # APPLICATION
    # ========================================================================
    APP_NAME: str = "SolarSwim Admin API"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    API_V1_PREFIX: str = "/api/v1"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # ========================================================================
    # BACKEND (system of record for pricing and memberships)
    # ========================================================================
    BACKEND_API_URL: str = "http://localhost:3001/api/v1"
    BACKEND_API_TOKEN: Optional[str] = None
    BACKEND_TIMEOUT_SECONDS: float = 30.0

    # ========================================================================
    # CORS
    # ========================================================================
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",  # Vite dev server
    ]

    # ========================================================================
    # MONITORING
    # ========================================================================
    LOG_LEVEL: str = "INFO"

    @property
    def backend_base_url(self) -> str:
        """
        Backend URL without a trailing slash
        """
        return self.BACKEND_API_URL.rstrip("/")


# Create global settings instance
settings = Settings()

"""
Application settings.

Read from the environment and an optional .env file.
"""

from functools import lru_cache
from typing import Dict, List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Shared secret callers present as a bearer token
    API_SECRET: Optional[str] = None

    # --- Provider credentials; a missing key disables that provider
    OPENAI_API_KEY: Optional[str] = None
    ANTHROPIC_API_KEY: Optional[str] = None
    GOOGLE_API_KEY: Optional[str] = None

    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    ANTHROPIC_BASE_URL: str = "https://api.anthropic.com/v1"
    ANTHROPIC_VERSION: str = "2023-06-01"
    GOOGLE_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"

    # --- Upstream call policy, identical for every provider
    REQUEST_TIMEOUT_SECONDS: float = 190.0
    MAX_REQUEST_BYTES: int = 50 * 1024 * 1024

    # --- Usage ledger
    LOGS_DIR: str = "/tmp/logs"
    PRICING_FILE: Optional[str] = None

    # --- HTTP server
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    CORS_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    def provider_keys(self) -> Dict[str, Optional[str]]:
        """Credentials by canonical provider id."""
        return {
            "openai": self.OPENAI_API_KEY,
            "anthropic": self.ANTHROPIC_API_KEY,
            "google": self.GOOGLE_API_KEY,
        }


@lru_cache
def get_settings() -> Settings:
    return Settings()

"""Configuration management for the Robinhood session."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .auth import AuthOptions
from .endpoints import API_URL
from .session import Credentials


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Either a token or a username/password pair is needed to authenticate
    robinhood_username: Optional[str] = None
    robinhood_password: Optional[str] = None
    robinhood_auth_token: Optional[str] = None

    robinhood_api_url: str = API_URL
    robinhood_timeout: int = 30
    robinhood_reauth_timeout: float = 300

    log_level: str = "INFO"

    def credentials(self) -> Optional[Credentials]:
        if self.robinhood_username and self.robinhood_password:
            return Credentials(
                username=self.robinhood_username,
                password=self.robinhood_password,
            )
        return None

    def auth_options(self) -> Optional[AuthOptions]:
        """Build authentication options, or None if nothing is configured."""
        options = AuthOptions(
            auth_token=self.robinhood_auth_token,
            credentials=self.credentials(),
        )
        return options if options else None


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()


# Global settings instance (lazy loaded)
_settings: Optional[Settings] = None


def settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = get_settings()
    return _settings

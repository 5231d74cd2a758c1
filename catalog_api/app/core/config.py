"""
Configuration management.

The ``Settings`` dataclass reads configuration from environment
variables.  A ``.env`` file in the working directory is loaded first so
that local development does not require exporting variables by hand.

Two values have no default: the token signing secret
(``JWT_SECRET_KEY``) and the store location (``DATABASE_URL``).
``Settings.from_env`` raises ``ConfigMissing`` when either is absent so
that the process aborts before serving a single request.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from .exceptions import ConfigMissing

load_dotenv()


REQUIRED_VARIABLES = ("JWT_SECRET_KEY", "DATABASE_URL")


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    secret_key: str = field(default_factory=lambda: os.getenv("JWT_SECRET_KEY", ""))
    database_url: str = field(default_factory=lambda: os.getenv("DATABASE_URL", ""))

    project_name: str = field(default_factory=lambda: os.getenv("PROJECT_NAME", "Product Catalog API"))
    api_version: str = field(default_factory=lambda: os.getenv("API_VERSION", "1.0.0"))
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "5000")))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(default_factory=lambda: os.getenv("LOG_FILE") or None)

    # Tokens expire two hours after issue unless overridden.
    access_token_expire_minutes: int = field(
        default_factory=lambda: int(os.getenv("TOKEN_EXPIRE_MINUTES", "120"))
    )
    # Comma-separated list; "*" allows any origin.
    cors_origins: str = field(default_factory=lambda: os.getenv("CORS_ORIGINS", "*"))

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def missing(self) -> List[str]:
        """Names of required variables that have no value."""
        values = {"JWT_SECRET_KEY": self.secret_key, "DATABASE_URL": self.database_url}
        return [name for name in REQUIRED_VARIABLES if not values[name]]

    def validate(self) -> "Settings":
        missing = self.missing()
        if missing:
            raise ConfigMissing(missing)
        return self

    @classmethod
    def from_env(cls) -> "Settings":
        """Read the environment and fail fast on missing required values."""
        return cls().validate()

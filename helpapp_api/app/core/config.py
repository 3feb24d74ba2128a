"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for every field except
the token signing secret: ``JWT_SECRET_KEY`` must be set, otherwise the
token service refuses to start (see ``core.tokens``).
"""

import os
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "HelpApp API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    # All routers are mounted below this prefix, e.g. ``/api/bookings``.
    api_prefix: str = os.getenv("API_PREFIX", "/api")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: Optional[str] = os.getenv("LOG_FILE") or None

    # Token signing.  Only HS256 is implemented; the algorithm is pinned
    # on verification so a token announcing any other ``alg`` is rejected.
    jwt_secret_key: str = os.getenv("JWT_SECRET_KEY", "")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    jwt_issuer: str = os.getenv("JWT_ISSUER", "helpapp-api")
    jwt_audience: str = os.getenv("JWT_AUDIENCE", "helpapp-users")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))

    # Path or connection string for the SQLite database.  A relative path
    # is resolved against the project root by ``core.db``; ``:memory:``
    # keeps everything in the single process-wide connection.
    database_url: str = os.getenv("DATABASE_URL", "helpapp.db")

    # Comma‑separated list of origins allowed by the CORS middleware.
    cors_origins: str = os.getenv("CORS_ORIGINS", "*")

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Because the dataclass
# computes its defaults when this module is imported, environment
# variables must be set before importing it.
settings = Settings()

"""Environment configuration for Amazon Seller MCP.

Environment Variables:
    AMAZON_CLIENT_ID: Login with Amazon application client ID
    AMAZON_CLIENT_SECRET: Login with Amazon application client secret
    OAUTH_REDIRECT_URI: Redirect URI registered for the consent flow
    REDIS_URL: Redis connection URL for token persistence (optional).
        When unset, tokens are kept in process memory only.
    AMAZON_SELLER_MCP_LOG_LEVEL: Logging level (default: INFO)
"""

import logging
import os

from pydantic import BaseModel, Field


class Settings(BaseModel):
    """Runtime settings for the server, CLI and OAuth manager.

    Credentials are optional here; operations that need them raise
    ``ConfigurationError`` at call time instead of failing startup.
    """

    client_id: str | None = Field(default=None, description="LWA client ID")
    client_secret: str | None = Field(default=None, description="LWA client secret")
    redirect_uri: str | None = Field(default=None, description="OAuth redirect URI")
    redis_url: str | None = Field(default=None, description="Redis URL for token storage")
    log_level: str = Field(default="INFO", description="Logging level name")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment.

        Empty strings are treated as unset.
        """
        return cls(
            client_id=os.environ.get("AMAZON_CLIENT_ID") or None,
            client_secret=os.environ.get("AMAZON_CLIENT_SECRET") or None,
            redirect_uri=os.environ.get("OAUTH_REDIRECT_URI") or None,
            redis_url=os.environ.get("REDIS_URL") or None,
            log_level=os.environ.get("AMAZON_SELLER_MCP_LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(settings: Settings) -> None:
    """Configure root logging once for the process.

    Logs go to stderr so the stdio MCP transport stays clean.
    """
    level = getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

"""Data models for Amazon Seller OAuth tokens.

Token bundles are persisted as JSON using camelCase aliases
(``accessToken``, ``refreshToken``, ``expiresOn``, ``region``) so the
stored form stays stable across processes sharing one Redis instance.
"""

import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Region(str, Enum):
    """Supported Selling Partner API regions."""

    US_EAST_1 = "us-east-1"
    EU_WEST_1 = "eu-west-1"
    AP_NORTHEAST_1 = "ap-northeast-1"


DEFAULT_REGION = Region.US_EAST_1


class TokenStatus(str, Enum):
    """State of a user's stored token bundle."""

    VALID = "valid"
    EXPIRED = "expired"
    MISSING = "missing"
    INVALID = "invalid"


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class TokenBundle(BaseModel):
    """A user's access/refresh token pair plus expiry and region.

    Attributes:
        access_token: Short-lived SP-API access token.
        refresh_token: Long-lived refresh token. Without it the bundle is
            never considered authenticated.
        expires_on: Absolute access token expiry in epoch milliseconds.
        region: Marketplace region the seller authorized.
    """

    model_config = ConfigDict(populate_by_name=True)

    access_token: str | None = Field(default=None, alias="accessToken")
    refresh_token: str | None = Field(default=None, alias="refreshToken")
    expires_on: int | None = Field(default=None, alias="expiresOn")
    region: Region = Field(default=DEFAULT_REGION)

    @field_validator("region", mode="before")
    @classmethod
    def _default_unknown_region(cls, value: Any) -> Any:
        """Map absent or unrecognized stored regions to the default region."""
        if isinstance(value, Region):
            return value
        try:
            return Region(value)
        except ValueError:
            return DEFAULT_REGION

    def is_expired(self, now: int | None = None) -> bool:
        """Check whether the access token has expired.

        Args:
            now: Reference time in epoch milliseconds. Defaults to now.

        Returns:
            True if expired or the expiry is unknown.
        """
        return is_expired(self, now_ms() if now is None else now)

    def to_json(self) -> str:
        """Serialize using the persisted (aliased) field names."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


def is_expired(bundle: TokenBundle, now: int) -> bool:
    """Pure expiry predicate: expired when ``expires_on <= now``."""
    if bundle.expires_on is None:
        return True
    return now >= bundle.expires_on


class TokenResponse(BaseModel):
    """Successful reply from the Login with Amazon token endpoint."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    expires_in: int
    refresh_token: str | None = None
    token_type: str | None = None

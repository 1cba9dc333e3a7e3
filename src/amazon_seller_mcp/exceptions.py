"""Common exceptions for the amazon-seller-mcp package."""


class AmazonSellerMCPError(Exception):
    """Base class for errors that tool handlers report as failure text."""


class ConfigurationError(AmazonSellerMCPError):
    """Raised when required OAuth credentials are not configured."""


class NotAuthenticatedError(AmazonSellerMCPError):
    """Raised when a user has no usable access token."""


class TokenExchangeError(AmazonSellerMCPError):
    """Raised when the Login with Amazon token endpoint rejects a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SellingPartnerAPIError(AmazonSellerMCPError):
    """Raised when SP-API returns a non-success status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

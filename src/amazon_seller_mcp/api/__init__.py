"""Selling Partner API client modules."""

from amazon_seller_mcp.api.client import API_ENDPOINTS, SellingPartnerClient, api_base_url
from amazon_seller_mcp.api.query import QueryBuilder, QueryParam

__all__ = [
    "API_ENDPOINTS",
    "QueryBuilder",
    "QueryParam",
    "SellingPartnerClient",
    "api_base_url",
]

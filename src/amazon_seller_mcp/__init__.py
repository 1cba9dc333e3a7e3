"""Amazon Seller MCP Server.

Expose Amazon Selling Partner operations (orders, inventory, reports,
finances, shipments) as MCP tools, authenticating each user through
Login with Amazon.
"""

from amazon_seller_mcp.__version__ import __version__

__all__ = ["__version__"]

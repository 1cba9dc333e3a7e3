"""MCP server implementation for Amazon Seller Central.

Provides 10 tools over the Selling Partner API:

Account Tools (2):
- Get the Seller Central consent URL
- Check connection status and seller account info

Order Tools (3):
- List orders with marketplace, date, status and channel filters
- Get order details with line items
- Confirm shipment with package and tracking details

Inventory Tools (2):
- List FBA inventory summaries
- Acknowledge inventory quantity updates

Report Tools (2):
- List reports
- Create report requests

Finance Tools (1):
- List financial event groups

Transport: Stdio
Authentication: Login with Amazon OAuth with lazy token refresh
"""

from amazon_seller_mcp.server.amazon_seller_server import (
    TOOLS,
    AmazonSellerServer,
    main,
)


def create_server() -> AmazonSellerServer:
    """Create and configure an Amazon Seller MCP server.

    Returns:
        AmazonSellerServer: Configured server instance ready to run.

    Example:
        >>> server = create_server()
        >>> asyncio.run(server.run())
    """
    return AmazonSellerServer()


__all__ = ["create_server", "AmazonSellerServer", "TOOLS", "main"]

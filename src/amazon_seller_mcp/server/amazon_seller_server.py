"""Amazon Seller MCP server.

This MCP server exposes Amazon Selling Partner API operations (orders,
inventory, reports, finances, shipments) as tools. Each tool call names a
``user_id``; the server authenticates that user through Login with Amazon,
refreshes expired access tokens on demand, and formats SP-API JSON
responses as readable text.
"""

import asyncio
import logging
import secrets
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import httpx
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import CallToolResult, TextContent, Tool

from amazon_seller_mcp.api.client import SellingPartnerClient
from amazon_seller_mcp.api.query import QueryBuilder, QueryParam
from amazon_seller_mcp.auth import (
    DEFAULT_REGION,
    InMemoryTokenStore,
    OAuthManager,
    Region,
    TokenStore,
    create_token_store,
)
from amazon_seller_mcp.auth.models import now_ms
from amazon_seller_mcp.config import Settings, configure_logging
from amazon_seller_mcp.exceptions import AmazonSellerMCPError

logger = logging.getLogger(__name__)

SERVER_NAME = "amazon-seller-mcp"

NOT_AUTHENTICATED_MESSAGE = (
    "Not authenticated with Amazon Seller. Please authenticate first using amazon_authenticate."
)

ORDER_STATUSES = [
    "PendingAvailability",
    "Pending",
    "Unshipped",
    "PartiallyShipped",
    "Shipped",
    "Canceled",
    "Unfulfillable",
]
REPORT_PROCESSING_STATUSES = ["SUBMITTED", "IN_PROGRESS", "CANCELLED", "DONE", "DONE_NO_DATA"]

USER_ID_PROPERTY = {"type": "string", "description": "User identifier"}


def _string_list(description: str, enum: list[str] | None = None) -> dict[str, Any]:
    items: dict[str, Any] = {"type": "string"}
    if enum:
        items["enum"] = enum
    return {"type": "array", "items": items, "description": description}


TOOLS: list[Tool] = [
    Tool(
        name="amazon_authenticate",
        description="Get Amazon Seller authentication URL",
        inputSchema={
            "type": "object",
            "properties": {
                "user_id": {
                    "type": "string",
                    "description": "User identifier for this authentication session",
                },
                "region": {
                    "type": "string",
                    "enum": [region.value for region in Region],
                    "description": "Amazon marketplace region",
                    "default": DEFAULT_REGION.value,
                },
                "force_reauth": {
                    "type": "boolean",
                    "description": "Force re-authentication",
                    "default": False,
                },
            },
        },
    ),
    Tool(
        name="amazon_status",
        description="Check Amazon Seller connection status and account info",
        inputSchema={
            "type": "object",
            "properties": {"user_id": USER_ID_PROPERTY},
            "required": ["user_id"],
        },
    ),
    Tool(
        name="amazon_list_orders",
        description="List Amazon orders with optional filtering",
        inputSchema={
            "type": "object",
            "properties": {
                "user_id": USER_ID_PROPERTY,
                "marketplace_ids": _string_list("Marketplace IDs to filter by"),
                "created_after": {
                    "type": "string",
                    "description": "Filter orders created after this date (ISO 8601)",
                },
                "created_before": {
                    "type": "string",
                    "description": "Filter orders created before this date (ISO 8601)",
                },
                "order_statuses": _string_list("Order statuses to filter by", ORDER_STATUSES),
                "fulfillment_channels": _string_list(
                    "Fulfillment channels (AFN=Amazon, MFN=Merchant)", ["AFN", "MFN"]
                ),
                "max_results": {
                    "type": "number",
                    "description": "Maximum orders to return",
                    "default": 50,
                },
            },
            "required": ["user_id", "marketplace_ids"],
        },
    ),
    Tool(
        name="amazon_get_order",
        description="Get detailed information about a specific order",
        inputSchema={
            "type": "object",
            "properties": {
                "user_id": USER_ID_PROPERTY,
                "order_id": {"type": "string", "description": "Amazon order ID"},
                "include_items": {
                    "type": "boolean",
                    "description": "Include order items",
                    "default": True,
                },
            },
            "required": ["user_id", "order_id"],
        },
    ),
    Tool(
        name="amazon_list_inventory",
        description="List inventory items",
        inputSchema={
            "type": "object",
            "properties": {
                "user_id": USER_ID_PROPERTY,
                "marketplace_ids": _string_list("Marketplace IDs"),
                "seller_skus": _string_list("Specific SKUs to retrieve"),
                "granularity_type": {
                    "type": "string",
                    "enum": ["Marketplace"],
                    "description": "Granularity for inventory data",
                    "default": "Marketplace",
                },
                "granularity_id": {
                    "type": "string",
                    "description": "Granularity identifier (marketplace ID)",
                },
                "max_results": {
                    "type": "number",
                    "description": "Maximum items to return",
                    "default": 50,
                },
            },
            "required": ["user_id", "granularity_type", "granularity_id"],
        },
    ),
    Tool(
        name="amazon_update_inventory",
        description="Update inventory quantity for a SKU",
        inputSchema={
            "type": "object",
            "properties": {
                "user_id": USER_ID_PROPERTY,
                "marketplace_id": {"type": "string", "description": "Marketplace ID"},
                "seller_sku": {"type": "string", "description": "Seller SKU"},
                "quantity": {"type": "number", "description": "New quantity"},
            },
            "required": ["user_id", "marketplace_id", "seller_sku", "quantity"],
        },
    ),
    Tool(
        name="amazon_get_reports",
        description="List available reports",
        inputSchema={
            "type": "object",
            "properties": {
                "user_id": USER_ID_PROPERTY,
                "report_types": _string_list("Report types to filter by"),
                "processing_statuses": _string_list(
                    "Processing statuses to filter by", REPORT_PROCESSING_STATUSES
                ),
                "marketplace_ids": _string_list("Marketplace IDs"),
                "created_since": {
                    "type": "string",
                    "description": "Filter reports created since this date (ISO 8601)",
                },
                "max_results": {
                    "type": "number",
                    "description": "Maximum reports to return",
                    "default": 25,
                },
            },
            "required": ["user_id"],
        },
    ),
    Tool(
        name="amazon_create_report",
        description="Create a new report",
        inputSchema={
            "type": "object",
            "properties": {
                "user_id": USER_ID_PROPERTY,
                "report_type": {
                    "type": "string",
                    "description": "Type of report to create (e.g., GET_MERCHANT_LISTINGS_ALL_DATA)",
                },
                "marketplace_ids": _string_list("Marketplace IDs"),
                "data_start_time": {
                    "type": "string",
                    "description": "Start time for report data (ISO 8601)",
                },
                "data_end_time": {
                    "type": "string",
                    "description": "End time for report data (ISO 8601)",
                },
            },
            "required": ["user_id", "report_type", "marketplace_ids"],
        },
    ),
    Tool(
        name="amazon_get_finances",
        description="Get financial data",
        inputSchema={
            "type": "object",
            "properties": {
                "user_id": USER_ID_PROPERTY,
                "max_results_per_page": {
                    "type": "number",
                    "description": "Maximum results per page",
                    "default": 100,
                },
                "posted_after": {
                    "type": "string",
                    "description": "Filter events posted after this date (ISO 8601)",
                },
                "posted_before": {
                    "type": "string",
                    "description": "Filter events posted before this date (ISO 8601)",
                },
            },
            "required": ["user_id"],
        },
    ),
    Tool(
        name="amazon_confirm_shipment",
        description="Confirm shipment for an order",
        inputSchema={
            "type": "object",
            "properties": {
                "user_id": USER_ID_PROPERTY,
                "order_id": {"type": "string", "description": "Amazon order ID"},
                "marketplace_id": {"type": "string", "description": "Marketplace ID"},
                "package_details": {
                    "type": "object",
                    "properties": {
                        "package_reference_id": {
                            "type": "string",
                            "description": "Package reference ID",
                        },
                        "carrier_code": {
                            "type": "string",
                            "description": "Carrier code (e.g., UPS, FEDEX)",
                        },
                        "carrier_name": {"type": "string", "description": "Carrier name"},
                        "shipping_method": {"type": "string", "description": "Shipping method"},
                        "tracking_number": {
                            "type": "string",
                            "description": "Package tracking number",
                        },
                        "ship_date": {"type": "string", "description": "Ship date (ISO 8601)"},
                    },
                    "required": ["package_reference_id"],
                },
            },
            "required": ["user_id", "order_id", "marketplace_id", "package_details"],
        },
    ),
]

TOOLS_BY_NAME = {tool.name: tool for tool in TOOLS}


def _text_result(text: str, is_error: bool = False) -> CallToolResult:
    """Wrap display text as a tool result."""
    return CallToolResult(content=[TextContent(type="text", text=text)], isError=is_error)


def _missing_arguments(name: str, arguments: dict[str, Any]) -> list[str]:
    """Return the required arguments of a tool that are absent or empty."""
    tool = TOOLS_BY_NAME.get(name)
    if tool is None:
        return []
    required = tool.inputSchema.get("required", [])
    return [field for field in required if arguments.get(field) in (None, "", [], {})]


def _format_date(value: str | None) -> str:
    """Render an ISO 8601 timestamp for display."""
    if not value:
        return "N/A"
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def _format_money(money: dict[str, Any] | None, amount_key: str = "Amount") -> str:
    if not money:
        return "N/A"
    return f"{money.get(amount_key, 'N/A')} {money.get('CurrencyCode', '')}".strip()


def _generate_user_id() -> str:
    """Create a user id for callers that did not supply one."""
    return f"seller_{now_ms()}_{secrets.token_hex(5)[:9]}"


def _path_segment(value: str) -> str:
    return quote(str(value), safe="")


class AmazonSellerServer:
    """MCP server for the Amazon Selling Partner API.

    Provides 10 tools: authentication and status, orders, inventory,
    reports, finances, and shipment confirmation.

    Attributes:
        server: MCP Server instance.
        storage: Token store shared by the OAuth manager and API client.
        manager: OAuthManager for consent URLs and token refresh.
        api: SellingPartnerClient for authenticated SP-API calls.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        storage: TokenStore | None = None,
        manager: OAuthManager | None = None,
        api: SellingPartnerClient | None = None,
    ) -> None:
        """Initialize the Amazon Seller MCP server."""
        self.server = Server(SERVER_NAME)
        self.settings = settings or Settings.from_env()
        self.storage = storage if storage is not None else InMemoryTokenStore()
        if manager is None:
            manager = OAuthManager(storage=self.storage, settings=self.settings)
        self.manager = manager
        self.api = api if api is not None else SellingPartnerClient(self.storage)
        self._setup_handlers()

    async def close(self) -> None:
        """Close HTTP clients and the token store."""
        await self.api.close()
        await self.manager.close()
        await self.storage.close()

    def _setup_handlers(self) -> None:
        """Register MCP tool handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            """Return list of available tools."""
            return TOOLS

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> CallToolResult:
            """Handle tool calls."""
            try:
                return await self.handle_call(name, arguments)
            except Exception as e:
                logger.exception(f"Error in {name}")
                return _text_result(f"Error executing {name}: {e}", True)

    async def handle_call(self, name: str, arguments: dict[str, Any] | None) -> CallToolResult:
        """Apply the authentication gate and run a tool.

        Operation errors become failure results. Anything unexpected
        propagates to the MCP boundary.

        Args:
            name: Tool name.
            arguments: Tool arguments.

        Returns:
            Text result with error flag.
        """
        arguments = arguments or {}

        if name == "amazon_authenticate":
            return await self._authenticate(arguments)
        if name == "amazon_status":
            return await self._status(arguments)

        user_id = arguments.get("user_id")
        if not user_id:
            return _text_result("Error: user_id is required for all Amazon operations.", True)

        missing = _missing_arguments(name, arguments)
        if missing:
            return _text_result(f"Error: missing required argument(s): {', '.join(missing)}", True)

        if not await self.manager.is_authenticated(user_id):
            return _text_result(NOT_AUTHENTICATED_MESSAGE, True)

        try:
            return await self._dispatch_tool(name, arguments)
        except (AmazonSellerMCPError, httpx.HTTPError) as e:
            logger.exception(f"Error calling tool {name}")
            return _text_result(f"Error executing {name}: {e}", True)

    async def _dispatch_tool(self, name: str, arguments: dict[str, Any]) -> CallToolResult:
        """Dispatch an authenticated tool call to its handler.

        Raises:
            ValueError: If tool name is not recognized.
        """
        handlers = {
            "amazon_list_orders": self._list_orders,
            "amazon_get_order": self._get_order,
            "amazon_list_inventory": self._list_inventory,
            "amazon_update_inventory": self._update_inventory,
            "amazon_get_reports": self._get_reports,
            "amazon_create_report": self._create_report,
            "amazon_get_finances": self._get_finances,
            "amazon_confirm_shipment": self._confirm_shipment,
        }

        handler = handlers.get(name)
        if handler is None:
            raise ValueError(f"Unknown tool: {name}")

        return await handler(arguments)

    async def _get_seller_account(self, user_id: str) -> dict[str, Any]:
        """Fetch seller name, id and marketplaces for display."""
        response = await self.api.request(user_id, "/sellers/v1/account")
        payload = response.get("payload") or {}
        return {
            "seller_id": payload.get("sellerId"),
            "name": payload.get("name"),
            "marketplace_ids": payload.get("marketplaceIds") or [],
        }

    # =========================================================================
    # Authentication tools
    # =========================================================================

    async def _authenticate(self, arguments: dict[str, Any]) -> CallToolResult:
        """Return a consent URL, or seller details when already authenticated."""
        user_id = arguments.get("user_id") or _generate_user_id()
        region = arguments.get("region") or DEFAULT_REGION.value
        force_reauth = bool(arguments.get("force_reauth", False))

        try:
            if not force_reauth and await self.manager.is_authenticated(user_id):
                try:
                    seller = await self._get_seller_account(user_id)
                except (AmazonSellerMCPError, httpx.HTTPError) as e:
                    logger.warning(f"Could not fetch seller account for {user_id}: {e}")
                    seller = {}
                return _text_result(
                    "Already authenticated with Amazon Seller!\n\n"
                    f"Seller: {seller.get('name') or 'N/A'}\n"
                    f"Seller ID: {seller.get('seller_id') or 'N/A'}\n"
                    f"User ID: {user_id}\n"
                    f"Region: {region}"
                )

            auth_url = self.manager.build_consent_url(user_id, region)
        except AmazonSellerMCPError as e:
            return _text_result(f"Authentication setup failed: {e}", True)

        return _text_result(
            f"To authenticate Amazon Seller access, visit:\n{auth_url}\n\n"
            f"User ID: {user_id}\n"
            f"Region: {region}\n\n"
            "After authorization, you can use other Amazon Seller tools with this user_id."
        )

    async def _status(self, arguments: dict[str, Any]) -> CallToolResult:
        """Report connection status and seller account details."""
        user_id = arguments.get("user_id")
        if not user_id:
            return _text_result("Error: user_id is required", True)

        bundle = await self.manager.ensure_fresh(user_id)
        if bundle is None:
            return _text_result(
                "**Not connected to Amazon Seller**\n\nRun amazon_authenticate to get started."
            )

        try:
            seller = await self._get_seller_account(user_id)
        except (AmazonSellerMCPError, httpx.HTTPError) as e:
            return _text_result(f"Connected but unable to fetch details: {e}")

        return _text_result(
            "**Amazon Seller Connected**\n\n"
            f"Seller: {seller['name'] or 'N/A'}\n"
            f"Seller ID: {seller['seller_id'] or 'N/A'}\n"
            f"User ID: {user_id}\n"
            f"Region: {bundle.region.value}\n"
            f"Marketplaces: {', '.join(seller['marketplace_ids']) or 'N/A'}\n"
            "Status: Authenticated"
        )

    # =========================================================================
    # Orders
    # =========================================================================

    async def _list_orders(self, arguments: dict[str, Any]) -> CallToolResult:
        """List orders matching the given filters."""
        query = (
            QueryBuilder()
            .add(QueryParam.MARKETPLACE_IDS, arguments["marketplace_ids"])
            .add(QueryParam.CREATED_AFTER, arguments.get("created_after"))
            .add(QueryParam.CREATED_BEFORE, arguments.get("created_before"))
            .add(QueryParam.ORDER_STATUSES, arguments.get("order_statuses"))
            .add(QueryParam.FULFILLMENT_CHANNELS, arguments.get("fulfillment_channels"))
            .add(QueryParam.MAX_RESULTS_PER_PAGE, arguments.get("max_results", 50))
        )
        response = await self.api.request(
            arguments["user_id"], query.apply("/orders/v0/orders")
        )

        orders = (response.get("payload") or {}).get("Orders", [])
        entries = []
        for order in orders:
            items = (order.get("NumberOfItemsShipped") or 0) + (
                order.get("NumberOfItemsUnshipped") or 0
            )
            entries.append(
                f"**Order {order.get('AmazonOrderId')}**\n"
                f"   Status: {order.get('OrderStatus')}\n"
                f"   Date: {_format_date(order.get('PurchaseDate'))}\n"
                f"   Total: {_format_money(order.get('OrderTotal'))}\n"
                f"   Channel: {order.get('FulfillmentChannel')}\n"
                f"   Items: {items}"
            )

        order_list = "\n\n".join(entries) or "No orders found"
        return _text_result(f"**Amazon Orders** ({len(orders)} found)\n\n{order_list}")

    async def _get_order(self, arguments: dict[str, Any]) -> CallToolResult:
        """Show one order, optionally with its items."""
        user_id = arguments["user_id"]
        order_path = f"/orders/v0/orders/{_path_segment(arguments['order_id'])}"

        response = await self.api.request(user_id, order_path)
        order = response.get("payload") or {}

        info = [
            f"**Order {order.get('AmazonOrderId')}**",
            f"Status: {order.get('OrderStatus')}",
            f"Purchase Date: {_format_date(order.get('PurchaseDate'))}",
            f"Last Update: {_format_date(order.get('LastUpdateDate'))}",
            f"Total: {_format_money(order.get('OrderTotal'))}",
            f"Channel: {order.get('FulfillmentChannel')}",
            f"Ship Level: {order.get('ShipServiceLevel') or 'N/A'}",
            f"Marketplace: {order.get('MarketplaceId')}",
        ]

        address = order.get("ShippingAddress")
        if address:
            info.append(
                f"Shipping: {address.get('Name') or 'N/A'}, "
                f"{address.get('City') or 'N/A'}, "
                f"{address.get('StateOrRegion') or 'N/A'}"
            )

        if arguments.get("include_items", True):
            try:
                items_response = await self.api.request(user_id, f"{order_path}/orderItems")
                items = (items_response.get("payload") or {}).get("OrderItems", [])
                if items:
                    info.append("\n**Items:**")
                    for item in items:
                        info.append(
                            f"• {item.get('Title')} (SKU: {item.get('SellerSKU')}) - "
                            f"Qty: {item.get('QuantityOrdered')}, "
                            f"Price: {_format_money(item.get('ItemPrice'))}"
                        )
            except (AmazonSellerMCPError, httpx.HTTPError) as e:
                logger.warning(f"Failed to fetch items for order {arguments['order_id']}: {e}")
                info.append("Items: Unable to fetch items")

        return _text_result("\n".join(info))

    async def _confirm_shipment(self, arguments: dict[str, Any]) -> CallToolResult:
        """Confirm shipment of an order package."""
        order_id = arguments["order_id"]
        marketplace_id = arguments["marketplace_id"]
        package = arguments["package_details"] or {}

        package_detail = {
            "packageReferenceId": package.get("package_reference_id"),
            "carrierCode": package.get("carrier_code"),
            "carrierName": package.get("carrier_name"),
            "shippingMethod": package.get("shipping_method"),
            "trackingNumber": package.get("tracking_number"),
            "shipDate": package.get("ship_date")
            or datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        }
        body = {
            "marketplaceId": marketplace_id,
            "packageDetail": {k: v for k, v in package_detail.items() if v is not None},
        }

        await self.api.request(
            arguments["user_id"],
            f"/orders/v0/orders/{_path_segment(order_id)}/shipment",
            "POST",
            body,
        )

        carrier = package.get("carrier_name") or package.get("carrier_code") or "N/A"
        return _text_result(
            "**Shipment Confirmed**\n\n"
            f"Order ID: {order_id}\n"
            f"Marketplace: {marketplace_id}\n"
            f"Package ID: {package.get('package_reference_id')}\n"
            f"Tracking: {package.get('tracking_number') or 'N/A'}\n"
            f"Carrier: {carrier}"
        )

    # =========================================================================
    # Inventory
    # =========================================================================

    async def _list_inventory(self, arguments: dict[str, Any]) -> CallToolResult:
        """List FBA inventory summaries."""
        max_results = int(arguments.get("max_results", 50))
        query = (
            QueryBuilder()
            .add(QueryParam.DETAILS, True)
            .add(QueryParam.GRANULARITY_TYPE, arguments.get("granularity_type", "Marketplace"))
            .add(QueryParam.GRANULARITY_ID, arguments["granularity_id"])
            .add(QueryParam.MARKETPLACE_ID_LIST, arguments.get("marketplace_ids"))
            .add(QueryParam.SELLER_SKUS, arguments.get("seller_skus"))
        )
        response = await self.api.request(
            arguments["user_id"], query.apply("/fba/inventory/v1/summaries")
        )

        summaries = (response.get("payload") or {}).get("inventorySummaries", [])
        shown = summaries[:max_results]
        entries = []
        for item in shown:
            total = item.get("totalQuantity") or 0
            available = (item.get("inventoryDetails") or {}).get("fulfillableQuantity") or 0
            entries.append(
                f"**{item.get('sellerSku')}**\n"
                f"   ASIN: {item.get('asin') or 'N/A'}\n"
                f"   Condition: {item.get('condition') or 'N/A'}\n"
                f"   Total Qty: {total}\n"
                f"   Available: {available}\n"
                f"   Reserved: {total - available}"
            )

        inventory_list = "\n\n".join(entries) or "No inventory found"
        return _text_result(f"**Inventory Summary** ({len(shown)} items)\n\n{inventory_list}")

    async def _update_inventory(self, arguments: dict[str, Any]) -> CallToolResult:
        """Acknowledge an inventory quantity update request."""
        return _text_result(
            "**Inventory Update Initiated**\n\n"
            f"SKU: {arguments['seller_sku']}\n"
            f"New Quantity: {arguments['quantity']}\n"
            f"Marketplace: {arguments['marketplace_id']}\n\n"
            "Note: Full implementation requires feed processing which may take time to complete."
        )

    # =========================================================================
    # Reports
    # =========================================================================

    async def _get_reports(self, arguments: dict[str, Any]) -> CallToolResult:
        """List reports matching the given filters."""
        query = (
            QueryBuilder()
            .add(QueryParam.REPORT_TYPES, arguments.get("report_types"))
            .add(QueryParam.PROCESSING_STATUSES, arguments.get("processing_statuses"))
            .add(QueryParam.MARKETPLACE_ID_LIST, arguments.get("marketplace_ids"))
            .add(QueryParam.CREATED_SINCE, arguments.get("created_since"))
            .add(QueryParam.PAGE_SIZE, arguments.get("max_results", 25))
        )
        response = await self.api.request(
            arguments["user_id"], query.apply("/reports/2021-06-30/reports")
        )

        reports = response.get("reports", [])
        entries = [
            f"**{report.get('reportType')}**\n"
            f"   Report ID: {report.get('reportId')}\n"
            f"   Status: {report.get('processingStatus')}\n"
            f"   Created: {_format_date(report.get('createdTime'))}\n"
            f"   Marketplaces: {', '.join(report.get('marketplaceIds') or []) or 'N/A'}"
            for report in reports
        ]

        report_list = "\n\n".join(entries) or "No reports found"
        return _text_result(f"**Reports** ({len(reports)} found)\n\n{report_list}")

    async def _create_report(self, arguments: dict[str, Any]) -> CallToolResult:
        """Request a new report."""
        report_type = arguments["report_type"]
        marketplace_ids = arguments["marketplace_ids"]

        body: dict[str, Any] = {"reportType": report_type, "marketplaceIds": marketplace_ids}
        if arguments.get("data_start_time"):
            body["dataStartTime"] = arguments["data_start_time"]
        if arguments.get("data_end_time"):
            body["dataEndTime"] = arguments["data_end_time"]

        response = await self.api.request(
            arguments["user_id"], "/reports/2021-06-30/reports", "POST", body
        )

        return _text_result(
            "**Report Created**\n\n"
            f"Report ID: {response.get('reportId')}\n"
            f"Type: {report_type}\n"
            f"Status: {response.get('processingStatus') or 'SUBMITTED'}\n"
            f"Marketplaces: {', '.join(marketplace_ids)}\n\n"
            "Check report status using amazon_get_reports."
        )

    # =========================================================================
    # Finances
    # =========================================================================

    async def _get_finances(self, arguments: dict[str, Any]) -> CallToolResult:
        """List financial event groups."""
        query = (
            QueryBuilder()
            .add(QueryParam.MAX_RESULTS_PER_PAGE, arguments.get("max_results_per_page", 100))
            .add(QueryParam.POSTED_AFTER, arguments.get("posted_after"))
            .add(QueryParam.POSTED_BEFORE, arguments.get("posted_before"))
        )
        response = await self.api.request(
            arguments["user_id"], query.apply("/finances/v0/financialEventGroups")
        )

        groups = (response.get("payload") or {}).get("FinancialEventGroupList", [])
        entries = [
            f"**{group.get('FinancialEventGroupId')}**\n"
            f"   Processing Date: {_format_date(group.get('ProcessingDate'))}\n"
            f"   Transfer Date: {_format_date(group.get('FundTransferDate'))}\n"
            f"   Status: {group.get('ProcessingStatus') or 'N/A'}\n"
            f"   Original Total: {_format_money(group.get('OriginalTotal'), 'CurrencyAmount')}"
            for group in groups
        ]

        finances_list = "\n\n".join(entries) or "No financial events found"
        return _text_result(f"**Financial Events** ({len(groups)} groups)\n\n{finances_list}")

    async def run(self) -> None:
        """Run the MCP server using stdio transport."""
        try:
            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        finally:
            await self.close()


async def serve(settings: Settings | None = None) -> None:
    """Connect token storage and run the server until stdin closes."""
    settings = settings or Settings.from_env()
    storage = await create_token_store(settings.redis_url)
    server = AmazonSellerServer(settings=settings, storage=storage)
    logger.info("Amazon Seller MCP Server ready on stdio")
    await server.run()


def main() -> None:
    """Entry point for the Amazon Seller MCP server."""
    settings = Settings.from_env()
    configure_logging(settings)
    asyncio.run(serve(settings))


if __name__ == "__main__":
    main()

"""Typed query-string builder for SP-API endpoints."""

from collections.abc import Iterable
from enum import Enum
from typing import Any
from urllib.parse import quote, urlencode


class QueryParam(str, Enum):
    """Query parameters understood by the endpoints this server calls."""

    # Orders
    MARKETPLACE_IDS = "MarketplaceIds"
    CREATED_AFTER = "CreatedAfter"
    CREATED_BEFORE = "CreatedBefore"
    ORDER_STATUSES = "OrderStatuses"
    FULFILLMENT_CHANNELS = "FulfillmentChannels"
    MAX_RESULTS_PER_PAGE = "MaxResultsPerPage"
    # FBA inventory
    DETAILS = "details"
    GRANULARITY_TYPE = "granularityType"
    GRANULARITY_ID = "granularityId"
    SELLER_SKUS = "sellerSkus"
    # Reports (MARKETPLACE_ID_LIST is shared with FBA inventory)
    REPORT_TYPES = "reportTypes"
    PROCESSING_STATUSES = "processingStatuses"
    MARKETPLACE_ID_LIST = "marketplaceIds"
    CREATED_SINCE = "createdSince"
    PAGE_SIZE = "pageSize"
    # Finances
    POSTED_AFTER = "PostedAfter"
    POSTED_BEFORE = "PostedBefore"


def _render(value: Any) -> str | None:
    """Render a parameter value, or None when it should be omitted."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value or None
    if isinstance(value, Iterable):
        items = [str(item) for item in value if item is not None and item != ""]
        return ",".join(items) or None
    return str(value)


class QueryBuilder:
    """Accumulates known query parameters in insertion order.

    Example:
        ```python
        query = (
            QueryBuilder()
            .add(QueryParam.MARKETPLACE_IDS, ["ATVPDKIKX0DER"])
            .add(QueryParam.CREATED_AFTER, None)  # skipped
            .add(QueryParam.MAX_RESULTS_PER_PAGE, 50)
        )
        query.apply("/orders/v0/orders")
        # "/orders/v0/orders?MarketplaceIds=ATVPDKIKX0DER&MaxResultsPerPage=50"
        ```
    """

    def __init__(self) -> None:
        self._params: list[tuple[QueryParam, str]] = []

    def add(self, param: QueryParam, value: Any) -> "QueryBuilder":
        """Add a parameter; None and empty values are skipped.

        Sequences are comma-joined and booleans rendered as ``true``/``false``.
        """
        rendered = _render(value)
        if rendered is not None:
            self._params.append((param, rendered))
        return self

    def build(self) -> str:
        """Return the percent-encoded query string (commas kept literal)."""
        pairs = [(param.value, value) for param, value in self._params]
        return urlencode(pairs, safe=",", quote_via=quote)

    def apply(self, path: str) -> str:
        """Append the query string to ``path`` when there is one."""
        query = self.build()
        return f"{path}?{query}" if query else path

    def __len__(self) -> int:
        return len(self._params)

"""Shopify Admin GraphQL client"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
import httpx
import logging

from app.core.config import settings
from app.core.exceptions import ProtectedDataAccessError, RemoteQueryError

logger = logging.getLogger(__name__)

PROTECTED_DATA_SIGNATURES = ("not approved", "protected")

PAGE_QUERY = """
query FetchPage($first: Int!, $after: String, $query: String) {
  %(connection)s(first: $first, after: $after, query: $query) {
    pageInfo {
      hasNextPage
      endCursor
    }
    nodes {
      %(fields)s
    }
  }
}
"""

@dataclass
class Page:
    """One page of a connection"""
    nodes: List[Dict[str, Any]] = field(default_factory=list)
    has_next_page: bool = False
    end_cursor: Optional[str] = None

def _error_messages(errors: Any) -> List[str]:
    if isinstance(errors, str):
        return [errors]
    if isinstance(errors, dict):
        errors = [errors]
    messages = []
    for error in errors or []:
        if isinstance(error, dict):
            messages.append(str(error.get("message") or ""))
        else:
            messages.append(str(error))
    return messages

def is_protected_data_error(message: str) -> bool:
    lowered = message.lower()
    return any(signature in lowered for signature in PROTECTED_DATA_SIGNATURES)

def classify_errors(errors: Any, scope: str = "orders") -> Exception:
    """
    Map a GraphQL errors payload to the exception the caller should raise

    Args:
        errors: The "errors" value of a GraphQL response
        scope: Protected data scope the query touched (orders or customers)

    Returns:
        ProtectedDataAccessError when any message carries a protected-data
        signature, otherwise RemoteQueryError with the first message
    """
    messages = _error_messages(errors)

    for message in messages:
        if is_protected_data_error(message):
            logger.info(f"Protected {scope} data access denied: {message}")
            return ProtectedDataAccessError(scope=scope, detail=message)

    first = next((message for message in messages if message), "Unknown GraphQL error")
    logger.warning(f"Admin GraphQL error: {first}")
    return RemoteQueryError(first)

class ShopifyAdminClient:
    """Thin async wrapper over the Admin GraphQL endpoint of one shop"""

    def __init__(
        self,
        shop: str,
        access_token: str,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.shop = shop
        self.access_token = access_token
        self.api_version = api_version or settings.SHOPIFY_API_VERSION
        self.timeout = timeout or settings.SHOPIFY_HTTP_TIMEOUT
        self.transport = transport

    @property
    def endpoint(self) -> str:
        return f"https://{self.shop}/admin/api/{self.api_version}/graphql.json"

    async def graphql(
        self,
        query: str,
        variables: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Send a query and return the decoded response body"""
        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.endpoint,
                    json=payload,
                    headers={"X-Shopify-Access-Token": self.access_token},
                )
        except httpx.HTTPError as e:
            logger.error(f"Admin API request to {self.shop} failed: {e}")
            raise RemoteQueryError(f"Admin API request failed: {e}")

        if response.status_code != 200:
            logger.warning(f"Admin API returned {response.status_code} for {self.shop}")
            raise RemoteQueryError(
                f"Admin API request failed with status {response.status_code}"
            )

        try:
            return response.json()
        except ValueError:
            raise RemoteQueryError("Admin API returned a non-JSON response")

    async def execute(
        self,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
        scope: str = "orders"
    ) -> Dict[str, Any]:
        """Run a query and return its data, raising on any error payload"""
        body = await self.graphql(query, variables)

        if body.get("errors"):
            raise classify_errors(body["errors"], scope)

        return body.get("data") or {}

    async def fetch_page(
        self,
        connection: str,
        fields: str,
        search: Optional[str] = None,
        cursor: Optional[str] = None,
        first: int = 250,
        scope: Optional[str] = None,
    ) -> Page:
        """
        Fetch one page of a connection

        Args:
            connection: Root connection name (orders, customers, products)
            fields: Node selection set
            search: Shopify search syntax filter
            cursor: endCursor of the previous page
            first: Page size
            scope: Protected data scope, defaults to the connection name
        """
        query = PAGE_QUERY % {"connection": connection, "fields": fields}
        variables = {"first": first, "after": cursor, "query": search}

        data = await self.execute(query, variables, scope=scope or connection)
        payload = data.get(connection) or {}
        page_info = payload.get("pageInfo") or {}

        return Page(
            nodes=payload.get("nodes") or [],
            has_next_page=bool(page_info.get("hasNextPage")),
            end_cursor=page_info.get("endCursor"),
        )

    async def fetch_nodes(
        self,
        ids: Sequence[str],
        fields: str,
        type_name: str = "Customer",
        scope: str = "customers",
    ) -> List[Dict[str, Any]]:
        """Look up nodes by global id, skipping ids that no longer resolve"""
        if not ids:
            return []

        query = (
            "query FetchNodes($ids: [ID!]!) {\n"
            "  nodes(ids: $ids) {\n"
            f"    ... on {type_name} {{\n"
            f"      {fields}\n"
            "    }\n"
            "  }\n"
            "}"
        )
        data = await self.execute(query, {"ids": list(ids)}, scope=scope)
        return [node for node in data.get("nodes") or [] if node]

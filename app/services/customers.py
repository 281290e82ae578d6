"""Customer record selection and formatting shared by lists and exports"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
from pydantic import BaseModel

from app.core.config import settings
from app.services.shopify_client import ShopifyAdminClient

CUSTOMER_FIELDS = """
id
displayName
email
createdAt
numberOfOrders
amountSpent {
  amount
  currencyCode
}
"""

CUSTOMER_ADDRESS_FIELDS = """
defaultAddress {
  country
  countryCodeV2
}
"""

class CustomerRecord(BaseModel):
    id: str
    name: str
    email: str
    country: Optional[str] = None
    created_at: str
    number_of_orders: int
    total_spent: str

def format_created_at(value: Optional[str]) -> str:
    if not value:
        return "N/A"
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        return value

def format_amount_spent(amount_spent: Optional[Dict[str, Any]]) -> str:
    if not amount_spent:
        return "0.00"
    try:
        amount = float(amount_spent.get("amount") or 0)
    except (TypeError, ValueError):
        amount = 0.0
    currency = amount_spent.get("currencyCode") or ""
    return f"{amount:.2f} {currency}".strip()

CUSTOMER_GID_PREFIX = "gid://shopify/Customer/"

def customer_gid(customer_id: str) -> str:
    """Accept bare numeric ids as well as global ids"""
    customer_id = str(customer_id).strip()
    if customer_id.startswith("gid://"):
        return customer_id
    return f"{CUSTOMER_GID_PREFIX}{customer_id}"

def format_customer(node: Dict[str, Any], include_country: bool = False) -> CustomerRecord:
    """Shape an Admin API customer node for display and export"""
    country = None
    if include_country:
        country = (node.get("defaultAddress") or {}).get("country") or "Unknown"

    return CustomerRecord(
        id=node["id"],
        name=node.get("displayName") or "N/A",
        email=node.get("email") or "N/A",
        country=country,
        created_at=format_created_at(node.get("createdAt")),
        number_of_orders=int(node.get("numberOfOrders") or 0),
        total_spent=format_amount_spent(node.get("amountSpent")),
    )

async def fetch_customers_by_ids(
    client: ShopifyAdminClient,
    ids: Sequence[str],
    include_country: bool = False,
    batch_size: Optional[int] = None,
) -> List[CustomerRecord]:
    """Resolve customer ids in batches, ids that no longer exist are dropped"""
    batch_size = batch_size or settings.CUSTOMER_LOOKUP_BATCH_SIZE
    fields = CUSTOMER_FIELDS + (CUSTOMER_ADDRESS_FIELDS if include_country else "")
    unique_ids = list(dict.fromkeys(customer_gid(i) for i in ids if i))

    customers: List[CustomerRecord] = []
    for offset in range(0, len(unique_ids), batch_size):
        nodes = await client.fetch_nodes(unique_ids[offset:offset + batch_size], fields)
        customers.extend(
            format_customer(node, include_country=include_country)
            for node in nodes
            if node.get("id")
        )

    return customers

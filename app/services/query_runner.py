"""
Ad hoc Admin GraphQL queries produced by the AI search

The assistant returns bare selection sets as often as full operations, so
anything that is not already a `query { ... }` block gets wrapped. Results
are reduced to a flat table: the first list found in the response, each
row flattened to dotted keys.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import json
import logging
import re

from app.core.exceptions import ValidationException
from app.services.customers import CUSTOMER_GID_PREFIX
from app.services.shopify_client import ShopifyAdminClient

logger = logging.getLogger(__name__)

QUERY_BLOCK = re.compile(r"^\s*query\s*\{", re.IGNORECASE)
NODE_BLOCK = re.compile(r"node\s*\{")
ID_FIELD = re.compile(r"\bid\b")

@dataclass
class QueryRun:
    query: str
    data: Dict[str, Any]
    rows: List[Dict[str, Any]] = field(default_factory=list)
    customer_ids: List[str] = field(default_factory=list)

def prepare_query(text: Optional[str]) -> str:
    """
    Normalize an AI generated query for execution

    Raises:
        ValidationException: The query is empty
    """
    query = (text or "").strip()
    if not query:
        raise ValidationException("Query cannot be empty")

    # customer rows need ids to be saved as a list later
    if "customers" in query and NODE_BLOCK.search(query) and not ID_FIELD.search(query):
        query = NODE_BLOCK.sub("node { id ", query, count=1)

    if not QUERY_BLOCK.match(query):
        query = f"query {{\n  {query}\n}}"
    return query

def _connection_nodes(value: Dict[str, Any]) -> Optional[List[Any]]:
    if isinstance(value.get("edges"), list):
        return [edge.get("node") for edge in value["edges"] if edge and edge.get("node") is not None]
    if isinstance(value.get("nodes"), list):
        return value["nodes"]
    return None

def find_rows(data: Any) -> List[Any]:
    """First list in the payload, unwrapping connections on the way"""
    if data is None:
        return []
    if isinstance(data, list):
        return data
    if not isinstance(data, dict):
        return []

    direct = _connection_nodes(data)
    if direct is not None:
        return direct

    for value in data.values():
        if isinstance(value, list):
            return value
        if isinstance(value, dict):
            nodes = _connection_nodes(value)
            if nodes is not None:
                return nodes
            found = find_rows(value)
            if found:
                return found
    return []

def flatten_row(item: Any, prefix: str = "") -> Dict[str, Any]:
    if not isinstance(item, dict):
        return {prefix or "value": item}

    flat: Dict[str, Any] = {}
    for key, value in item.items():
        name = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            flat.update(flatten_row(value, name))
        elif isinstance(value, list):
            if all(not isinstance(entry, (dict, list)) for entry in value):
                flat[name] = ", ".join(str(entry) for entry in value)
            else:
                flat[name] = json.dumps(value)
        else:
            flat[name] = value
    return flat

def customer_ids_in(rows: List[Dict[str, Any]]) -> List[str]:
    ids = []
    for row in rows:
        value = row.get("id")
        if isinstance(value, str) and value.startswith(CUSTOMER_GID_PREFIX):
            ids.append(value)
    return list(dict.fromkeys(ids))

async def run_query(client: ShopifyAdminClient, text: Optional[str]) -> QueryRun:
    """
    Execute an AI generated query and tabulate the result

    Raises:
        ValidationException: Empty query
        ProtectedDataAccessError: App lacks protected customer data access
        RemoteQueryError: Any other GraphQL error
    """
    query = prepare_query(text)
    data = await client.execute(query, scope="customers")

    rows = [flatten_row(item) for item in find_rows(data)]
    logger.info(f"AI query for {client.shop} returned {len(rows)} rows")
    return QueryRun(query=query, data=data, rows=rows, customer_ids=customer_ids_in(rows))

"""
Display fields derived from a saved list's stored filters
"""

from typing import Any, Dict, List
import re

from app.models import SavedList

MAX_TAGS = 5
QUERY_PREVIEW_LENGTH = 100

def _values(query_data: Dict[str, Any], key: str) -> List[str]:
    value = query_data.get(key) or []
    return [str(item) for item in value] if isinstance(value, list) else []

def generate_description(query_data: Dict[str, Any]) -> str:
    parts = []

    location = _values(query_data, "location")
    if location:
        more = f" and {len(location) - 2} more" if len(location) > 2 else ""
        parts.append(f"Customers from {', '.join(location[:2])}{more}")

    products = _values(query_data, "products")
    if products:
        parts.append(f"who purchased {', '.join(products[:2])}")

    timing = _values(query_data, "timing")
    if timing:
        parts.append(f"shopping during {', '.join(timing)}")

    device = _values(query_data, "device")
    if device:
        parts.append(f"using {', '.join(device)}")

    if not parts and query_data.get("graphqlQuery"):
        return "AI-generated customer segment based on natural language search"
    if not parts:
        return "Custom customer segment"
    return " ".join(parts)

def generate_criteria(query_data: Dict[str, Any]) -> str:
    criteria = []
    for key, label in (
        ("location", "Location"),
        ("products", "Products"),
        ("timing", "Timing"),
        ("device", "Device"),
        ("payment", "Payment"),
        ("delivery", "Delivery"),
    ):
        values = _values(query_data, key)
        if values:
            criteria.append(f"{label}: {', '.join(values)}")

    amount_spent = query_data.get("amountSpent") or {}
    if amount_spent.get("amount") is not None and amount_spent.get("operator"):
        bound = "at least" if amount_spent["operator"] == "min" else "at most"
        criteria.append(f"Amount spent: {bound} {amount_spent['amount']}")

    if query_data.get("customerCreatedFrom"):
        criteria.append(f"Created from: {query_data['customerCreatedFrom']}")

    if not criteria and query_data.get("graphqlQuery"):
        query = query_data["graphqlQuery"]
        if len(query) > QUERY_PREVIEW_LENGTH:
            query = query[:QUERY_PREVIEW_LENGTH] + "..."
        return f"GraphQL Query: {query}"

    return " | ".join(criteria) if criteria else "Custom filters"

def generate_tags(query_data: Dict[str, Any]) -> List[str]:
    tags = [re.sub(r"\s+", "-", location.lower()) for location in _values(query_data, "location")[:2]]

    if _values(query_data, "products"):
        tags.append("products")
    if _values(query_data, "timing"):
        tags.append("timing")
    tags.extend(device.lower() for device in _values(query_data, "device"))
    if query_data.get("graphqlQuery"):
        tags.append("ai-generated")

    return tags[:MAX_TAGS]

def to_response_fields(saved_list: SavedList) -> Dict[str, Any]:
    """Flatten a row into the fields of SavedListResponse"""
    query_data = saved_list.query_data or {}
    return {
        "id": str(saved_list.id),
        "name": saved_list.list_name,
        "description": generate_description(query_data),
        "customer_count": saved_list.customer_count,
        "created_at": saved_list.created_at.date().isoformat(),
        "last_updated": saved_list.updated_at.date().isoformat(),
        "source": saved_list.source,
        "criteria": generate_criteria(query_data),
        "tags": generate_tags(query_data),
        "status": saved_list.status,
        "filters": query_data,
    }

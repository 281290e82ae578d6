"""
Dashboard metric catalogue

Each card is a MetricSpec over the orders or customers connection. Order
behaviour and timing cards count orders, customer and engagement cards count
distinct customers. Order timestamps are bucketed by their UTC hour and day.
"""

from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from app.services.aggregation import MetricSpec

Record = Dict[str, Any]

ORDER_FIELDS = """
id
createdAt
customer {
  id
}
"""

ORDER_DISCOUNT_FIELDS = """
totalDiscountsSet {
  shopMoney {
    amount
  }
}
"""

ORDER_MARKER_FIELDS = """
tags
note
customAttributes {
  key
  value
}
"""

ORDER_PAYMENT_FIELDS = """
displayFinancialStatus
cancelledAt
paymentGatewayNames
"""

CUSTOMER_FIELDS = """
id
email
createdAt
"""

CUSTOMER_CONSENT_FIELDS = """
tags
emailMarketingConsent {
  marketingState
  marketingOptInLevel
}
"""

COD_STATUSES = {"PENDING", "PARTIALLY_PAID", "AUTHORIZED"}
PREPAID_STATUSES = {"PAID", "PARTIALLY_REFUNDED"}
EMAIL_SUBSCRIBER_TAGS = ("email-subscriber", "newsletter", "subscribed", "email-subscription")
OPTED_IN_LEVELS = {"SINGLE_OPT_IN", "CONFIRMED_OPT_IN", "UNKNOWN"}

# keys

def record_id(record: Record) -> Optional[str]:
    return record.get("id")

def order_customer_id(order: Record) -> Optional[str]:
    return (order.get("customer") or {}).get("id")

# predicates

def always(record: Record) -> bool:
    return True

def created_at_utc(record: Record) -> Optional[datetime]:
    value = record.get("createdAt")
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))

def created_between(start_hour: int, end_hour: int):
    def predicate(order: Record) -> bool:
        created = created_at_utc(order)
        return created is not None and start_hour <= created.hour < end_hour
    return predicate

def created_on_weekend(order: Record) -> bool:
    created = created_at_utc(order)
    # Saturday=5, Sunday=6
    return created is not None and created.weekday() >= 5

def has_discount(order: Record) -> bool:
    money = ((order.get("totalDiscountsSet") or {}).get("shopMoney") or {})
    try:
        amount = float(money.get("amount") or 0)
    except (TypeError, ValueError):
        return False
    return amount > 0 and bool(order_customer_id(order))

def mentions(marker: str):
    """Order tagged, noted or attributed with a marker, case-insensitive"""
    def predicate(order: Record) -> bool:
        if not order_customer_id(order):
            return False
        if any(marker in tag.lower() for tag in order.get("tags") or []):
            return True
        if marker in (order.get("note") or "").lower():
            return True
        for attribute in order.get("customAttributes") or []:
            key = (attribute.get("key") or "").lower()
            value = (attribute.get("value") or "").lower()
            if marker in key or marker in value:
                return True
        return False
    return predicate

def is_email_subscriber(customer: Record) -> bool:
    if not customer.get("id") or not customer.get("email"):
        return False

    tags = [tag.lower() for tag in customer.get("tags") or []]
    if any(marker in tag for tag in tags for marker in EMAIL_SUBSCRIBER_TAGS):
        return True

    consent = customer.get("emailMarketingConsent") or {}
    return (
        consent.get("marketingState") == "SUBSCRIBED"
        or consent.get("marketingOptInLevel") in OPTED_IN_LEVELS
    )

def is_cod(order: Record) -> bool:
    return order.get("displayFinancialStatus") in COD_STATUSES

def is_prepaid(order: Record) -> bool:
    return order.get("displayFinancialStatus") in PREPAID_STATUSES

def is_cancelled(order: Record) -> bool:
    return order.get("cancelledAt") is not None

def is_abandoned_checkout(order: Record) -> bool:
    """Reached a payment gateway but never got paid and was not cancelled"""
    return (
        is_cod(order)
        and not is_cancelled(order)
        and bool(order.get("paymentGatewayNames"))
    )

def has_customer(order: Record) -> bool:
    return bool(order_customer_id(order))

def returned_within(orders: List[Record], start: datetime) -> Set[str]:
    """Customers ordering on or after start who also ordered before it"""
    in_range: Set[str] = set()
    before: Set[str] = set()

    for order in orders:
        customer = order_customer_id(order)
        created = created_at_utc(order)
        if not customer or created is None:
            continue
        if created >= start:
            in_range.add(customer)
        else:
            before.add(customer)

    return in_range & before

# catalogue

TOTAL_CUSTOMERS = MetricSpec("total-customers", "customers", CUSTOMER_FIELDS, always, record_id, cumulative=True)
NEW_CUSTOMERS = MetricSpec("new-customers", "customers", CUSTOMER_FIELDS, always, record_id)
# trend points: customers with two or more orders up to each point
RETURNING_CUSTOMERS = MetricSpec(
    "returning-customers", "orders", ORDER_FIELDS, has_customer, order_customer_id,
    min_occurrences=2, cumulative=True,
)
# customers placing any order in the window, subtracted from the total
ACTIVE_CUSTOMERS = MetricSpec("active-customers", "orders", ORDER_FIELDS, has_customer, order_customer_id)

COD_ORDERS = MetricSpec("cod-orders", "orders", ORDER_FIELDS + ORDER_PAYMENT_FIELDS, is_cod, record_id)
PREPAID_ORDERS = MetricSpec("prepaid-orders", "orders", ORDER_FIELDS + ORDER_PAYMENT_FIELDS, is_prepaid, record_id)
CANCELLED_ORDERS = MetricSpec("cancelled-orders", "orders", ORDER_FIELDS + ORDER_PAYMENT_FIELDS, is_cancelled, record_id)
ABANDONED_CARTS = MetricSpec(
    "abandoned-carts", "orders", ORDER_FIELDS + ORDER_PAYMENT_FIELDS, is_abandoned_checkout, record_id
)

DISCOUNT_USERS = MetricSpec(
    "discount-users", "orders", ORDER_FIELDS + ORDER_DISCOUNT_FIELDS, has_discount, order_customer_id
)
WISHLIST_USERS = MetricSpec(
    "wishlist-users", "orders", ORDER_FIELDS + ORDER_MARKER_FIELDS, mentions("wishlist"), order_customer_id
)
REVIEWERS = MetricSpec(
    "reviewers", "orders", ORDER_FIELDS + ORDER_MARKER_FIELDS, mentions("review"), order_customer_id
)
EMAIL_SUBSCRIBERS = MetricSpec(
    "email-subscribers", "customers", CUSTOMER_FIELDS + CUSTOMER_CONSENT_FIELDS, is_email_subscriber, record_id
)

MORNING_PURCHASES = MetricSpec("morning-purchases", "orders", ORDER_FIELDS, created_between(6, 12), record_id)
AFTERNOON_PURCHASES = MetricSpec("afternoon-purchases", "orders", ORDER_FIELDS, created_between(12, 18), record_id)
EVENING_PURCHASES = MetricSpec("evening-purchases", "orders", ORDER_FIELDS, created_between(18, 24), record_id)
WEEKEND_PURCHASES = MetricSpec("weekend-purchases", "orders", ORDER_FIELDS, created_on_weekend, record_id)

INACTIVE_CUSTOMERS = "inactive-customers"

SECTIONS: Dict[str, List[str]] = {
    "customers-overview": [
        "total-customers", "new-customers", "returning-customers", INACTIVE_CUSTOMERS,
    ],
    "purchase-order-behavior": [
        "cod-orders", "prepaid-orders", "cancelled-orders", "abandoned-carts",
    ],
    "engagement-patterns": [
        "discount-users", "wishlist-users", "reviewers", "email-subscribers",
    ],
    "purchase-timing": [
        "morning-purchases", "afternoon-purchases", "evening-purchases", "weekend-purchases",
    ],
}

METRICS: Dict[str, MetricSpec] = {
    spec.name: spec
    for spec in (
        TOTAL_CUSTOMERS, NEW_CUSTOMERS, RETURNING_CUSTOMERS,
        COD_ORDERS, PREPAID_ORDERS, CANCELLED_ORDERS, ABANDONED_CARTS,
        DISCOUNT_USERS, WISHLIST_USERS, REVIEWERS, EMAIL_SUBSCRIBERS,
        MORNING_PURCHASES, AFTERNOON_PURCHASES, EVENING_PURCHASES, WEEKEND_PURCHASES,
    )
}

VISUAL_ANALYTICS = {
    "customer-segmentation": {
        "cod": COD_ORDERS,
        "prepaid": PREPAID_ORDERS,
        "cancelled": CANCELLED_ORDERS,
        "abandoned": ABANDONED_CARTS,
    },
    "behavioral-breakdown": {
        "discount": DISCOUNT_USERS,
        "wishlist": WISHLIST_USERS,
        "reviewers": REVIEWERS,
        "email": EMAIL_SUBSCRIBERS,
    },
}

def customer_list_spec(card: str) -> Optional[MetricSpec]:
    """
    Spec whose keys are the customers behind a card

    Order-counting cards are re-keyed on the ordering customer.
    """
    if card == INACTIVE_CUSTOMERS:
        return None
    spec = METRICS.get(card)
    if spec is None:
        return None
    if spec.key is record_id and spec.connection == "orders":
        return replace(spec, key=order_customer_id)
    return spec

DEFAULT_VISIBILITY: Dict[str, Any] = {
    "customersOverview": {
        "enabled": True,
        "cards": {
            "totalCustomers": True,
            "newCustomers": True,
            "returningCustomers": True,
            "inactiveCustomers": False,
        },
    },
    "purchaseOrderBehavior": {
        "enabled": True,
        "cards": {
            "codOrders": True,
            "prepaidOrders": True,
            "cancelledOrders": True,
            "abandonedCarts": False,
        },
    },
    "engagementPatterns": {
        "enabled": True,
        "cards": {
            "discountUsers": True,
            "wishlistUsers": True,
            "reviewers": True,
            "emailSubscribers": False,
        },
    },
}

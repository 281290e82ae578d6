"""
Filter categories for audience segments

Each active category contributes the fields it needs to the customers query
and a predicate over one customer node. A customer joins the segment when
every active category accepts it; within a category any selected option is
enough. Order based categories look at the customer's ten latest orders.
"""

from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Set

from app.core.config import settings
from app.services.customers import CUSTOMER_ADDRESS_FIELDS, CUSTOMER_FIELDS
from app.services.date_ranges import store_timezone
from .schemas import FilterSelection

Customer = Dict[str, Any]
Predicate = Callable[[Customer], bool]

REGION_COUNTRIES: Dict[str, List[str]] = {
    "North America": ["United States", "Canada", "Mexico"],
    "Europe": [
        "United Kingdom", "Germany", "France", "Italy", "Spain", "Netherlands",
        "Belgium", "Switzerland", "Austria", "Sweden", "Norway", "Denmark",
        "Finland", "Poland", "Portugal", "Greece", "Ireland",
    ],
    "Asia": [
        "India", "Japan", "China", "South Korea", "Singapore", "Thailand",
        "Malaysia", "Indonesia", "Philippines", "Vietnam",
    ],
    "South America": ["Brazil", "Argentina", "Chile", "Colombia", "Peru", "Venezuela"],
}

POPULAR_COUNTRIES = [
    "United States", "Canada", "United Kingdom", "Australia", "India",
    "Germany", "France", "Japan", "Brazil", "Mexico",
]

TIMING_PERIODS = {
    "Morning (6am-12pm)": (6, 12),
    "Afternoon (12pm-6pm)": (12, 18),
    "Evening (6pm-12am)": (18, 24),
    "Night (12am-6am)": (0, 6),
}
WEEKDAYS = "Weekdays"
WEEKENDS = "Weekends"
HOLIDAYS = "Holidays"
# (month, day) in UTC
FIXED_HOLIDAYS = {(1, 1), (7, 4), (12, 25)}

PREPAID = "Prepaid"
CASH_ON_DELIVERY = "Cash on Delivery"
PREPAID_STATUSES = {"PAID"}
COD_STATUSES = {"PENDING", "AUTHORIZED", "PARTIALLY_PAID"}

PAYMENT_GATEWAYS: Dict[str, List[str]] = {
    "Credit Card": [
        "shopify_payments", "stripe", "authorize_net", "braintree",
        "first_data", "cybersource", "worldpay", "adyen",
    ],
    "PayPal": ["paypal", "paypal_express"],
    "Apple Pay": ["apple_pay", "shopify_payments"],
    "Google Pay": ["google_pay", "shopify_payments"],
    "Shop Pay": ["shopify_payments"],
    "Amazon Pay": ["amazon_payments"],
    "Bank Transfer": ["manual", "bank_transfer"],
    "Gift Card": ["gift_card"],
    "Store Credit": ["store_credit"],
    "Klarna": ["klarna"],
    "Afterpay": ["afterpay"],
    "Affirm": ["affirm"],
    "Sezzle": ["sezzle"],
}

FREE_SHIPPING = "Free Shipping"
DELIVERY_PATTERNS: Dict[str, List[str]] = {
    "Standard Shipping": ["standard", "regular", "ground", "economy"],
    "Express Shipping": ["express", "expedited", "priority", "fast"],
    FREE_SHIPPING: ["free", "complimentary"],
    "Local Pickup": ["pickup", "local", "store pickup", "in-store"],
    "Same-day Delivery": ["same day", "same-day", "today", "instant"],
    "International Shipping": ["international", "global", "worldwide"],
    "Scheduled Delivery": ["scheduled", "appointment", "delivery window"],
}

STATIC_SECTIONS = [
    {
        "id": "location",
        "title": "Geographic Location",
        "options": POPULAR_COUNTRIES + list(REGION_COUNTRIES),
    },
    {
        "id": "timing",
        "title": "Shopping Timing",
        "options": list(TIMING_PERIODS) + [WEEKDAYS, WEEKENDS, HOLIDAYS],
    },
    {
        "id": "device",
        "title": "Device & Platform",
        "options": ["Desktop", "Mobile", "Tablet", "iOS", "Android", "Windows", "Mac"],
    },
    {
        "id": "payment",
        "title": "Payment Methods",
        "options": [PREPAID, CASH_ON_DELIVERY] + list(PAYMENT_GATEWAYS),
    },
    {
        "id": "delivery",
        "title": "Delivery Preferences",
        "options": list(DELIVERY_PATTERNS),
    },
]

PRODUCT_ORDER_FIELDS = """
lineItems(first: 10) {
  nodes {
    product {
      id
      title
      productType
    }
  }
}
"""

TIMING_ORDER_FIELDS = "createdAt"

PAYMENT_ORDER_FIELDS = """
paymentGatewayNames
displayFinancialStatus
"""

DELIVERY_ORDER_FIELDS = """
shippingLines(first: 5) {
  nodes {
    title
    originalPriceSet {
      shopMoney {
        amount
      }
    }
  }
}
"""

ORDER_FIELDS_BY_CATEGORY = {
    "products": PRODUCT_ORDER_FIELDS,
    "timing": TIMING_ORDER_FIELDS,
    "payment": PAYMENT_ORDER_FIELDS,
    "delivery": DELIVERY_ORDER_FIELDS,
}

def _nodes(value: Any) -> List[Dict[str, Any]]:
    """Accept both connection shapes, {nodes: []} and {edges: [{node}]}"""
    if isinstance(value, list):
        return [item for item in value if item]
    if not isinstance(value, dict):
        return []
    if "nodes" in value:
        return [node for node in value.get("nodes") or [] if node]
    return [edge.get("node") for edge in value.get("edges") or [] if edge and edge.get("node")]

def customer_orders(customer: Customer) -> List[Dict[str, Any]]:
    return _nodes(customer.get("orders"))

def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))

# query shape

def customer_fields(selection: FilterSelection) -> str:
    """Customer selection set with the order sub-selection the filters need"""
    order_fields = [
        fragment.strip()
        for category, fragment in ORDER_FIELDS_BY_CATEGORY.items()
        if getattr(selection, category)
    ]
    fields = CUSTOMER_FIELDS + CUSTOMER_ADDRESS_FIELDS
    if order_fields:
        fields += (
            "orders(first: 10, sortKey: CREATED_AT, reverse: true) {\n"
            "  nodes {\n"
            + "\n".join(order_fields)
            + "\n  }\n}\n"
        )
    return fields

def page_size(selection: FilterSelection) -> int:
    """Smaller pages when each customer carries an order sub-selection"""
    if any(getattr(selection, category) for category in ORDER_FIELDS_BY_CATEGORY):
        return settings.SEGMENT_ORDER_PAGE_SIZE
    return settings.SEGMENT_PAGE_SIZE

# location

def expand_locations(selected: Iterable[str]) -> Set[str]:
    countries: Set[str] = set()
    for value in selected:
        countries.update(REGION_COUNTRIES.get(value, [value]))
    return countries

def location_predicate(selected: List[str]) -> Predicate:
    countries = expand_locations(selected)

    def predicate(customer: Customer) -> bool:
        country = (customer.get("defaultAddress") or {}).get("country")
        return bool(country) and country in countries
    return predicate

# products

def purchased_products(customer: Customer) -> List[Dict[str, Any]]:
    products = []
    for order in customer_orders(customer):
        for line_item in _nodes(order.get("lineItems")):
            product = line_item.get("product")
            if product:
                products.append(product)
    return products

def products_predicate(selected: List[str]) -> Predicate:
    """Selected values match product titles or product types"""
    wanted = set(selected)

    def predicate(customer: Customer) -> bool:
        for product in purchased_products(customer):
            if product.get("title") in wanted or product.get("productType") in wanted:
                return True
        return False
    return predicate

# timing

def time_period(hour: int) -> str:
    for label, (start, end) in TIMING_PERIODS.items():
        if start <= hour < end:
            return label
    return "Night (12am-6am)"

def _timing_matches(option: str, created: datetime) -> bool:
    if option in TIMING_PERIODS:
        return time_period(created.hour) == option
    if option == WEEKDAYS:
        return created.weekday() < 5
    if option == WEEKENDS:
        return created.weekday() >= 5
    if option == HOLIDAYS:
        return (created.month, created.day) in FIXED_HOLIDAYS
    # options without order data behind them, such as sale events
    return False

def timing_predicate(selected: List[str]) -> Predicate:
    """Order hours and weekdays are read in UTC"""
    def predicate(customer: Customer) -> bool:
        for order in customer_orders(customer):
            if not order.get("createdAt"):
                continue
            created = _parse_timestamp(order["createdAt"])
            if any(_timing_matches(option, created) for option in selected):
                return True
        return False
    return predicate

# payment

def payment_gateways(methods: Iterable[str]) -> Set[str]:
    gateways: Set[str] = set()
    for method in methods:
        gateways.update(PAYMENT_GATEWAYS.get(method, [method.lower()]))
    return gateways

def payment_predicate(selected: List[str]) -> Predicate:
    """
    Prepaid and cash on delivery are read from the financial status,
    every other option from the gateway names
    """
    want_prepaid = PREPAID in selected
    want_cod = CASH_ON_DELIVERY in selected
    gateways = payment_gateways(m for m in selected if m not in (PREPAID, CASH_ON_DELIVERY))

    def predicate(customer: Customer) -> bool:
        for order in customer_orders(customer):
            status = order.get("displayFinancialStatus") or ""
            if want_prepaid and status in PREPAID_STATUSES:
                return True
            if want_cod and status in COD_STATUSES:
                return True
            names = {name.lower() for name in order.get("paymentGatewayNames") or []}
            if gateways & names:
                return True
        return False
    return predicate

# delivery

def _shipping_amount(shipping_line: Dict[str, Any]) -> float:
    money = ((shipping_line.get("originalPriceSet") or {}).get("shopMoney") or {})
    try:
        return float(money.get("amount") or 0)
    except (TypeError, ValueError):
        return 0.0

def delivery_matches(title: str, method: str) -> bool:
    if not title:
        return False
    lowered = title.lower()
    if any(pattern in lowered for pattern in DELIVERY_PATTERNS.get(method, [])):
        return True
    return lowered == method.lower()

def delivery_predicate(selected: List[str]) -> Predicate:
    def predicate(customer: Customer) -> bool:
        for order in customer_orders(customer):
            for shipping_line in _nodes(order.get("shippingLines")):
                title = shipping_line.get("title") or ""
                for method in selected:
                    if method == FREE_SHIPPING and _shipping_amount(shipping_line) == 0:
                        return True
                    if delivery_matches(title, method):
                        return True
        return False
    return predicate

# customer attributes

def amount_spent_predicate(amount: float, operator: str) -> Predicate:
    """Customers without spend data count as having spent zero"""
    def predicate(customer: Customer) -> bool:
        try:
            spent = float((customer.get("amountSpent") or {}).get("amount") or 0)
        except (TypeError, ValueError):
            spent = 0.0
        if operator == "min":
            return spent >= amount
        return spent <= amount
    return predicate

def created_from_predicate(created_from: str) -> Predicate:
    """Created on or after the given day in the store's calendar"""
    threshold = date.fromisoformat(created_from)
    zone = store_timezone()

    def predicate(customer: Customer) -> bool:
        value = customer.get("createdAt")
        if not value:
            return False
        return _parse_timestamp(value).astimezone(zone).date() >= threshold
    return predicate

def build_predicates(selection: FilterSelection) -> List[Predicate]:
    """
    One predicate per active category

    Device options are kept on the selection for display but have no data
    behind them in the Admin API, so they never narrow the segment.
    """
    predicates: List[Predicate] = []

    if selection.location:
        predicates.append(location_predicate(selection.location))
    if selection.products:
        predicates.append(products_predicate(selection.products))
    if selection.timing:
        predicates.append(timing_predicate(selection.timing))
    if selection.payment:
        predicates.append(payment_predicate(selection.payment))
    if selection.delivery:
        predicates.append(delivery_predicate(selection.delivery))
    if selection.amount_spent is not None and selection.amount_spent.is_active:
        predicates.append(
            amount_spent_predicate(selection.amount_spent.amount, selection.amount_spent.operator)
        )
    if selection.customer_created_from:
        predicates.append(created_from_predicate(selection.customer_created_from))

    return predicates

def matches_all(customer: Customer, predicates: List[Predicate]) -> bool:
    return all(predicate(customer) for predicate in predicates)

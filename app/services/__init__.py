"""Services package"""

from .shopify_client import ShopifyAdminClient
from .ai_chat import AIChatService
from .export import ExportService

__all__ = [
    "ShopifyAdminClient",
    "AIChatService",
    "ExportService",
]

"""Models package initialization"""

from .base import Base
from .shop import ShopSession
from .saved_list import SavedList, ListSource, ListStatus
from .chat import ChatSession, ChatMessage, MessageRole
from .dashboard_preference import DashboardPreference

__all__ = [
    "Base",
    "ShopSession",
    "SavedList",
    "ListSource",
    "ListStatus",
    "ChatSession",
    "ChatMessage",
    "MessageRole",
    "DashboardPreference",
]

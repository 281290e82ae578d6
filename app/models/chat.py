"""Chat models"""

from sqlalchemy import Column, String, Text, ForeignKey, Enum, Uuid
from sqlalchemy.orm import relationship
import uuid
import enum

from app.models.base import Base, TimestampedModel, ShopScopedModel

class MessageRole(str, enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"

class ChatSession(Base, ShopScopedModel, TimestampedModel):
    """AI search conversation, created on the first user message"""

    __tablename__ = "chat_sessions"

    # Client generated session id, also sent to the AI webhook
    id = Column(String(64), primary_key=True)
    title = Column(String(200))

    # Relationships
    messages = relationship(
        "ChatMessage",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="ChatMessage.created_at",
        lazy="selectin",
    )

class ChatMessage(Base, TimestampedModel):
    """Chat messages"""

    __tablename__ = "chat_messages"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(String(64), ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(Enum(MessageRole), nullable=False)
    content = Column(Text, nullable=False)
    query = Column(Text)

    # Relationships
    session = relationship("ChatSession", back_populates="messages")

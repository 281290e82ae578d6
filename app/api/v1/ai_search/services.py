"""AI search business logic"""

from typing import List, Optional, Tuple
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException, ValidationException
from app.models import ChatMessage, ChatSession, MessageRole
from app.models.base import utcnow
from app.services.ai_chat import AIChatService, decode_chat_reply
from app.services.customers import fetch_customers_by_ids
from app.services.export import ExportService
from app.services.query_runner import QueryRun, run_query
from app.services.shopify_client import ShopifyAdminClient
from .schemas import (
    AIExportRequest,
    ChatMessageSchema,
    ChatRequest,
    ChatResponse,
    ChatSessionDetail,
    ChatSessionSummary,
)

logger = logging.getLogger(__name__)

TITLE_LENGTH = 60

def message_schema(message: ChatMessage) -> ChatMessageSchema:
    return ChatMessageSchema(
        id=str(message.id),
        role=message.role.value,
        content=message.content,
        query=message.query,
        timestamp=message.created_at,
    )

class AISearchService:
    """Service for the AI chat, its history and query execution"""

    def __init__(self, db: Optional[AsyncSession] = None, chat: Optional[AIChatService] = None):
        self.db = db
        self.chat = chat or AIChatService()

    async def _owned_session(self, shop: str, session_id: str) -> Optional[ChatSession]:
        session = await self.db.get(ChatSession, session_id)
        if session and session.shop != shop:
            raise NotFoundException("Chat session not found")
        return session

    async def send(self, shop: str, request: ChatRequest) -> ChatResponse:
        """
        Relay a message and record both sides of the exchange

        The session row is created with the first message. Nothing is stored
        when the webhook fails.

        Raises:
            AIServiceNotConfiguredException: No webhook configured
            AIServiceError: Webhook unreachable or answered with an error
        """
        message = request.message.strip()
        session = await self._owned_session(shop, request.session_id)
        asked_at = utcnow()

        raw = await self.chat.send_message(message, request.session_id, shop)
        reply = decode_chat_reply(raw)

        if session is None:
            session = ChatSession(id=request.session_id, shop=shop, title=message[:TITLE_LENGTH])
            self.db.add(session)

        self.db.add(ChatMessage(
            session_id=session.id,
            role=MessageRole.USER,
            content=message,
            created_at=asked_at,
        ))
        answer = ChatMessage(
            session_id=session.id,
            role=MessageRole.ASSISTANT,
            content=reply.reply,
            query=reply.query,
            created_at=utcnow(),
        )
        self.db.add(answer)
        session.updated_at = utcnow()

        await self.db.commit()
        await self.db.refresh(answer)

        logger.info(f"AI chat reply ({reply.kind}) for {shop} in session {session.id}")
        return ChatResponse(session_id=session.id, response=reply, message=message_schema(answer))

    async def list_sessions(self, shop: str) -> List[ChatSessionSummary]:
        result = await self.db.execute(
            select(ChatSession)
            .where(ChatSession.shop == shop)
            .order_by(ChatSession.updated_at.desc())
        )
        return [
            ChatSessionSummary(
                id=session.id,
                title=session.title,
                message_count=len(session.messages),
                created_at=session.created_at,
                updated_at=session.updated_at,
            )
            for session in result.scalars().all()
        ]

    async def get_session(self, shop: str, session_id: str) -> ChatSessionDetail:
        session = await self._owned_session(shop, session_id)
        if session is None:
            raise NotFoundException("Chat session not found")

        return ChatSessionDetail(
            id=session.id,
            title=session.title,
            messages=[message_schema(message) for message in session.messages],
        )

    async def delete_session(self, shop: str, session_id: str) -> None:
        session = await self._owned_session(shop, session_id)
        if session is None:
            raise NotFoundException("Chat session not found")

        await self.db.delete(session)
        await self.db.commit()
        logger.info(f"Deleted chat session {session_id} for {shop}")

    async def execute_query(self, client: ShopifyAdminClient, query: Optional[str]) -> QueryRun:
        return await run_query(client, query)

    async def export(self, client: ShopifyAdminClient, request: AIExportRequest) -> Tuple[str, str, str]:
        """
        Render the customers behind an AI query

        Raises:
            ValidationException: Neither a query nor customer ids were given
        """
        if request.customer_ids:
            ids = request.customer_ids
        elif request.query and request.query.strip():
            ids = (await run_query(client, request.query)).customer_ids
        else:
            raise ValidationException("A query or customer ids are required")

        customers = await fetch_customers_by_ids(client, ids)
        return ExportService().render(
            customers,
            request.format,
            filename=request.filename or "ai-search-results",
            title="AI Search Results",
        )

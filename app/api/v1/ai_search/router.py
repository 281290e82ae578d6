"""AI search API routes"""

from typing import List
from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import get_current_shop
from app.middleware.rate_limit import ai_chat_limiter
from app.services.export import export_headers
from app.services.shopify_client import ShopifyAdminClient
from app.utils.dependencies import get_admin_client
from .schemas import (
    AIExportRequest,
    ChatRequest,
    ChatResponse,
    ChatSessionDetail,
    ChatSessionSummary,
    ExecuteQueryRequest,
    ExecuteQueryResponse,
)
from .services import AISearchService

router = APIRouter()

@router.post("/chat", response_model=ChatResponse, summary="Ask the AI assistant")
@ai_chat_limiter
async def chat(
    request: Request,
    payload: ChatRequest,
    current_shop: dict = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db)
):
    """
    Relay a message to the AI workflow

    The reply is either structured (with an optional query and a
    clarification flag) or plain legacy text.
    """
    service = AISearchService(db)
    return await service.send(current_shop["shop"], payload)

@router.get("/sessions", response_model=List[ChatSessionSummary], summary="List chat sessions")
async def list_sessions(
    current_shop: dict = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db)
):
    return await AISearchService(db).list_sessions(current_shop["shop"])

@router.get("/sessions/{session_id}", response_model=ChatSessionDetail, summary="Get a chat session")
async def get_session(
    session_id: str,
    current_shop: dict = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db)
):
    return await AISearchService(db).get_session(current_shop["shop"], session_id)

@router.delete("/sessions/{session_id}", summary="Delete a chat session")
async def delete_session(
    session_id: str,
    current_shop: dict = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db)
):
    await AISearchService(db).delete_session(current_shop["shop"], session_id)
    return {"success": True, "message": "Chat session deleted"}

@router.post("/execute-query", response_model=ExecuteQueryResponse, summary="Run an AI generated query")
async def execute_query(
    payload: ExecuteQueryRequest,
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    run = await AISearchService().execute_query(client, payload.query)
    return ExecuteQueryResponse(
        query=run.query,
        data=run.data,
        rows=run.rows,
        row_count=len(run.rows),
        customer_ids=run.customer_ids,
    )

@router.post("/export", summary="Download the customers behind an AI query")
async def export_results(
    payload: AIExportRequest,
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    content, media_type, filename = await AISearchService().export(client, payload)
    return Response(content=content, media_type=media_type, headers=export_headers(filename))

"""
AI search schemas
"""

from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional

from app.services.ai_chat import ChatReply
from app.services.export import ExportFormat

class ChatRequest(BaseModel):
    """One merchant message for the AI assistant"""
    message: str = Field(..., max_length=4000)
    session_id: str = Field(..., alias="sessionId", min_length=1, max_length=64)

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "message": "Customers who spent more than 500 last month",
                "sessionId": "session-1718000000000"
            }
        }
    }

    @field_validator('message')
    @classmethod
    def validate_message(cls, v):
        if not v.strip():
            raise ValueError("Message is required")
        return v

class ChatMessageSchema(BaseModel):
    id: str
    role: str
    content: str
    query: Optional[str] = None
    timestamp: datetime

class ChatResponse(BaseModel):
    success: bool = True
    session_id: str
    response: ChatReply
    message: ChatMessageSchema

class ChatSessionSummary(BaseModel):
    id: str
    title: Optional[str] = None
    message_count: int
    created_at: datetime
    updated_at: datetime

class ChatSessionDetail(BaseModel):
    id: str
    title: Optional[str] = None
    messages: List[ChatMessageSchema]

class ExecuteQueryRequest(BaseModel):
    query: Optional[str] = None

class ExecuteQueryResponse(BaseModel):
    success: bool = True
    query: str
    data: Dict[str, Any]
    rows: List[Dict[str, Any]]
    row_count: int
    customer_ids: List[str]

class AIExportRequest(BaseModel):
    """Export either the customers an AI query returns or explicit ids"""
    query: Optional[str] = None
    customer_ids: Optional[List[str]] = Field(None, alias="customerIds")
    format: ExportFormat = ExportFormat.CSV
    filename: Optional[str] = Field(None, max_length=100)

    model_config = {"populate_by_name": True}

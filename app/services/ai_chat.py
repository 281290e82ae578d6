"""
AI chat webhook client and reply decoding

The workflow webhook answers with plain text. Newer workflows put a JSON
envelope in that text ({"schema_version", "reply", "query",
"needs_clarification"}), older ones send free text or an envelope without a
version. decode_chat_reply turns any of these into one tagged ChatReply.
"""

from typing import Annotated, Any, Literal, Optional, Union
import json
import re
import httpx
import logging
from pydantic import BaseModel, Field, ValidationError, field_validator

from app.core.config import settings
from app.core.exceptions import AIServiceError, AIServiceNotConfiguredException

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 1
ERROR_BODY_LIMIT = 500

FENCE_OPEN = re.compile(r"^```(json)?\s*")
FENCE_CLOSE = re.compile(r"\s*```$")

class ChatEnvelope(BaseModel):
    """Structured webhook payload, schema_version 0 means the legacy unversioned shape"""
    schema_version: int = 0
    reply: str
    query: Optional[Any] = None
    needs_clarification: bool = False

    @field_validator("reply")
    @classmethod
    def reply_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("reply is empty")
        return value

class StructuredReply(BaseModel):
    kind: Literal["structured"] = "structured"
    schema_version: int
    reply: str
    query: Optional[str] = None
    needs_clarification: bool = False

class PlainReply(BaseModel):
    kind: Literal["plain"] = "plain"
    reply: str
    query: Optional[str] = None

ChatReply = Annotated[Union[StructuredReply, PlainReply], Field(discriminator="kind")]

def strip_code_fence(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = FENCE_CLOSE.sub("", FENCE_OPEN.sub("", cleaned))
    return cleaned

def normalize_query(query: Any) -> Optional[str]:
    """
    Clean up the query the workflow extracted

    Blank and "null" mean no query. JSON queries (filter objects) are
    pretty-printed with a two space indent, anything else is kept verbatim.
    """
    if query is None:
        return None
    if isinstance(query, (dict, list)):
        return json.dumps(query, indent=2)

    text = str(query)
    if not text.strip() or text.strip() == "null":
        return None

    stripped = text.strip()
    if stripped[0] in "{[":
        try:
            return json.dumps(json.loads(stripped), indent=2)
        except json.JSONDecodeError:
            return text
    return text

def decode_chat_reply(raw: str) -> Union[StructuredReply, PlainReply]:
    """Decode raw webhook text into a structured or plain reply"""
    cleaned = strip_code_fence(raw)

    if cleaned.startswith("{") and '"reply"' in cleaned:
        try:
            envelope = ChatEnvelope.model_validate_json(cleaned)
        except ValidationError:
            logger.info("Webhook reply looked like JSON but is not an envelope, treating as text")
        else:
            if envelope.schema_version > CURRENT_SCHEMA_VERSION:
                logger.warning(
                    f"Webhook reply schema_version {envelope.schema_version} is newer than "
                    f"{CURRENT_SCHEMA_VERSION}, reading known fields only"
                )
            return StructuredReply(
                schema_version=envelope.schema_version,
                reply=envelope.reply,
                query=normalize_query(envelope.query),
                needs_clarification=envelope.needs_clarification,
            )

    return PlainReply(reply=raw.strip())

class AIChatService:
    """Relays merchant messages to the AI workflow webhook"""

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url if webhook_url is not None else settings.AI_WEBHOOK_URL
        self.timeout = timeout or settings.AI_WEBHOOK_TIMEOUT
        self.transport = transport

    async def send_message(self, message: str, session_id: str, shop_id: str) -> str:
        """
        Post one message to the webhook

        Returns:
            The trimmed response text

        Raises:
            AIServiceNotConfiguredException: If no webhook URL is set
            AIServiceError: On transport failure or a non-2xx answer
        """
        if not self.webhook_url:
            raise AIServiceNotConfiguredException()

        payload = {
            "message": message.strip(),
            "sessionId": session_id,
            "shopId": shop_id,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.webhook_url, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"AI webhook call failed for session {session_id}: {e}")
            raise AIServiceError(f"Failed to connect to AI service: {e}")

        if not response.is_success:
            body = response.text or response.reason_phrase
            if len(body) > ERROR_BODY_LIMIT:
                body = body[:ERROR_BODY_LIMIT] + "..."
            logger.error(f"AI webhook returned {response.status_code} for session {session_id}")
            raise AIServiceError(
                f"Webhook request failed with status {response.status_code}: {body}"
            )

        return response.text.strip()

"""Chat API routes: one-shot and streamed turns."""

import logging
from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from sarthi.api.deps import Coordinator
from sarthi.models import FinalResponse, HistoryMessage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


class ChatRequest(BaseModel):
    """Request body for chat endpoints."""

    user_id: str = Field(..., min_length=1, description="Stable user identifier")
    message: str = Field(..., min_length=1, description="User's message")
    history: list[HistoryMessage] = Field(default_factory=list, description="Prior messages, oldest first")
    language: str = Field("en", description="Requested reply language")
    user_context: dict[str, Any] | None = Field(
        None, description="Optional context such as language_override or wellness_score"
    )


@router.post("", response_model=FinalResponse)
async def chat(request: ChatRequest, coordinator: Coordinator) -> FinalResponse:
    """Send a message and receive the pipeline's reply."""
    response = await coordinator.submit_turn(
        user_id=request.user_id,
        message=request.message,
        history=request.history,
        language=request.language,
        user_context=request.user_context,
    )
    logger.info(
        "Chat message processed",
        extra={
            "intent": response.intent.value,
            "is_crisis": response.is_crisis,
            "tools_used": response.tools_used,
        },
    )
    return response


@router.post("/stream")
async def chat_stream(request: ChatRequest, coordinator: Coordinator) -> StreamingResponse:
    """Stream the reply as Server-Sent Events.

    Emits one ``data: {"content", "done", "error"}`` event per chunk and
    ends with ``data: [DONE]``.
    """

    async def event_stream() -> AsyncIterator[str]:
        async for chunk in coordinator.stream_turn(
            user_id=request.user_id,
            message=request.message,
            history=request.history,
            language=request.language,
            user_context=request.user_context,
        ):
            yield f"data: {chunk.model_dump_json()}\n\n"
        yield "data: [DONE]\n\n"

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )

"""Per-user memory routes: context summary, history and erasure."""

import logging

from fastapi import APIRouter, Query, Response, status

from sarthi.api.deps import Coordinator
from sarthi.core.exceptions import NotFoundError
from sarthi.models import ContextSummary, TurnRecord

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}/context", response_model=ContextSummary)
async def get_context(user_id: str, coordinator: Coordinator) -> ContextSummary:
    """Rolling context summary for a user."""
    summary = await coordinator.get_user_context(user_id)
    if summary is None:
        raise NotFoundError("User context", user_id)
    return summary


@router.get("/{user_id}/history", response_model=list[TurnRecord])
async def get_history(
    user_id: str,
    coordinator: Coordinator,
    limit: int = Query(10, ge=1, le=100),
) -> list[TurnRecord]:
    """Most recent turns first."""
    return await coordinator.get_recent_history(user_id, limit)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user_data(user_id: str, coordinator: Coordinator) -> Response:
    """Erase everything remembered about a user."""
    await coordinator.clear_user_data(user_id)
    logger.info("User data erased", extra={"user_id": user_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""
Advisory assistant endpoints (/api/ai).

Generator outages come back as 200 responses with is_fallback=true.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import Identity, get_identity
from app.database import get_db
from app.schemas import (
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    MenuSummaryResponse,
    RecommendationRequest,
    RecommendationResponse,
)
from app.services.assistant import get_text_generator
from app.services.assistant.advisor import AdvisoryAssistant
from app.services.assistant.base import BaseTextGenerator

router = APIRouter(
    prefix="/api/ai",
    tags=["Assistant"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)


def get_assistant(
    db: AsyncSession = Depends(get_db),
    generator: BaseTextGenerator = Depends(get_text_generator),
) -> AdvisoryAssistant:
    return AdvisoryAssistant(db, generator)


@router.post("/chat", response_model=ChatResponse, summary="Chat With The Virtual Waiter")
async def chat(
    data: ChatRequest,
    identity: Optional[Identity] = Depends(get_identity),
    assistant: AdvisoryAssistant = Depends(get_assistant),
) -> ChatResponse:
    return await assistant.chat(
        data.restaurant_id,
        data.message,
        identity,
        history=data.conversation_history,
    )


@router.get(
    "/menu-summary/{restaurant_id}",
    response_model=MenuSummaryResponse,
    summary="Menu Summary",
)
async def menu_summary(
    restaurant_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    assistant: AdvisoryAssistant = Depends(get_assistant),
) -> MenuSummaryResponse:
    return await assistant.get_menu_summary(restaurant_id, identity)


@router.post(
    "/recommendations",
    response_model=RecommendationResponse,
    summary="Menu Recommendations",
)
async def recommendations(
    data: RecommendationRequest,
    identity: Optional[Identity] = Depends(get_identity),
    assistant: AdvisoryAssistant = Depends(get_assistant),
) -> RecommendationResponse:
    return await assistant.get_recommendations(data.restaurant_id, identity, data.preferences)

"""API endpoints for the scheduling assistant."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException

from meetbot import __version__
from meetbot.errors import MeetbotError, ProviderTimeoutError
from meetbot.models.api import HealthResponse, ScheduleRequest, ScheduleResponse
from meetbot.services.conversation import ConversationService, get_conversation_service
from meetbot.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/schedule", response_model=ScheduleResponse, tags=["Scheduling"])
async def handle_schedule(
    request: ScheduleRequest,
    service: ConversationService = Depends(get_conversation_service),
) -> ScheduleResponse:
    """Answer a scheduling question, letting the model look up meetings."""
    try:
        result = await service.process_message(request.message)
    except ValueError as e:
        logger.warning(f"Message validation error: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ProviderTimeoutError as e:
        logger.error(f"Scheduling request timed out: {e}")
        raise HTTPException(status_code=504, detail=str(e)) from e
    except MeetbotError as e:
        logger.error(f"Scheduling request failed: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail=str(e)) from e

    logger.info(f"Generated response in {result.rounds} rounds: {result.text[:50]}...")
    return ScheduleResponse(response=result.text, rounds=result.rounds, tool_calls=result.tool_calls)


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
    )

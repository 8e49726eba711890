from fastapi import APIRouter, Depends, Request

from app.dependencies import get_current_user_id, get_suggestion_engine
from app.models.response import SuggestionResponse
from app.services.matching import SuggestionEngine
from app.utils.logging_config import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.get("/", response_model=SuggestionResponse)
async def get_suggestions(
    request: Request,
    user_id: int = Depends(get_current_user_id),
    engine: SuggestionEngine = Depends(get_suggestion_engine),
):
    """Ranked co-founder suggestions for the caller"""
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.info(f"Computing suggestions for user {user_id}", extra={"request_id": request_id})
    return await engine.get_suggestions(user_id)

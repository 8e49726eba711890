from fastapi import APIRouter, Depends, Request

from app.dependencies import get_current_user_id, get_profile_store
from app.models.models import DeveloperProfile
from app.models.schemas import SaveProfileRequest
from app.services.stores import ProfileStore
from app.utils.exceptions import ExceptionContext, NotFoundError, ValidationError
from app.utils.logging_config import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.post("/save")
async def save_profile(
    payload: SaveProfileRequest,
    request: Request,
    user_id: int = Depends(get_current_user_id),
    store: ProfileStore = Depends(get_profile_store),
):
    """Save (or replace) the caller's generated profile"""
    if not payload.profile_data:
        raise ValidationError("Profile data is required", field="profileData")

    request_id = getattr(request.state, 'request_id', 'unknown')
    profile = DeveloperProfile.from_document(payload.profile_data)
    if profile is not None and not profile.is_analyzed:
        logger.warning(
            f"User {user_id} saved a profile without a successful analysis; it will not be matched",
            extra={"request_id": request_id}
        )

    with ExceptionContext("save_profile", logger, request_id=request_id, user_id=user_id):
        await store.save_profile(user_id, payload.profile_data)

    return {"success": True, "message": "Profile saved successfully"}


@router.get("/saved")
async def get_saved_profile(
    user_id: int = Depends(get_current_user_id),
    store: ProfileStore = Depends(get_profile_store),
):
    """Fetch the caller's saved profile"""
    with ExceptionContext("fetch_profile", logger, user_id=user_id):
        profile_data = await store.get_profile(user_id)
    if not profile_data:
        raise NotFoundError("No saved profile found", resource="profile")
    return {"profile": profile_data}


@router.delete("/saved")
async def delete_saved_profile(
    user_id: int = Depends(get_current_user_id),
    store: ProfileStore = Depends(get_profile_store),
):
    """Delete the caller's saved profile"""
    with ExceptionContext("delete_profile", logger, user_id=user_id):
        deleted = await store.delete_profile(user_id)
    if not deleted:
        raise NotFoundError("No saved profile found to delete", resource="profile")
    return {"success": True, "message": "Profile deleted successfully."}

from fastapi import APIRouter, Depends, File, Request, UploadFile

from app.dependencies import get_current_user_id, get_cv_matcher, get_cv_store
from app.helpers.parsing import extract_cv_text
from app.models.response import CVMatchResponse
from app.services.cv_matcher import CVJobMatcher
from app.services.stores import CVStore
from app.utils.exceptions import ExceptionContext, NotFoundError, ValidationError
from app.utils.logging_config import get_logger, log_api_call

router = APIRouter()
logger = get_logger(__name__)

MAX_CV_BYTES = 5 * 1024 * 1024
MIN_CV_TEXT_LENGTH = 50


@router.post("/upload", status_code=201)
@log_api_call("upload_cv")
async def upload_cv(
    request: Request,
    cvFile: UploadFile = File(...),
    user_id: int = Depends(get_current_user_id),
    store: CVStore = Depends(get_cv_store),
):
    """Upload or replace the caller's CV (PDF or DOCX)"""
    data = await cvFile.read()
    if not data:
        raise ValidationError("No CV file uploaded.", field="cvFile")
    if len(data) > MAX_CV_BYTES:
        raise ValidationError("CV file exceeds the 5MB limit.", field="cvFile", value=len(data))

    cv_text = extract_cv_text(data, cvFile.content_type, cvFile.filename)
    if len(cv_text.strip()) < MIN_CV_TEXT_LENGTH:
        raise ValidationError("Could not extract sufficient text from the CV.", field="cvFile")

    request_id = getattr(request.state, 'request_id', 'unknown')
    with ExceptionContext("save_cv", logger, request_id=request_id, user_id=user_id):
        saved = await store.save_cv(user_id, cv_text, cvFile.filename)

    return {
        "message": "CV uploaded and processed successfully.",
        "cv": {"originalFilename": saved.original_filename, "updatedAt": saved.updated_at},
    }


@router.get("/info")
async def get_cv_info(
    user_id: int = Depends(get_current_user_id),
    store: CVStore = Depends(get_cv_store),
):
    """Metadata about the caller's stored CV"""
    with ExceptionContext("fetch_cv_info", logger, user_id=user_id):
        cv = await store.get_cv(user_id)
    if cv is None:
        raise NotFoundError("No CV on file.", resource="cv")
    return {"cv": {"originalFilename": cv.original_filename, "updatedAt": cv.updated_at}}


@router.get("/match", response_model=CVMatchResponse)
@log_api_call("match_cv_to_jobs")
async def match_cv_to_jobs(
    user_id: int = Depends(get_current_user_id),
    matcher: CVJobMatcher = Depends(get_cv_matcher),
):
    """Jobs ranked for the caller's CV: text search recall, then LLM re-rank"""
    return await matcher.match_for_user(user_id)

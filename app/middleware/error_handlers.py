"""
Request middleware for the Co-founder Match API: error envelopes, request logging and timing
"""
import time
import traceback
import uuid
from datetime import datetime
from typing import Any, Dict

from fastapi import Request, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from pydantic import ValidationError

from app.utils.exceptions import CofounderMatchError, map_to_http_exception
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


def _request_context(request: Request, request_id: str, **extra) -> Dict[str, Any]:
    return {"request_id": request_id, "method": request.method, "path": request.url.path, **extra}


def error_response(request_id: str, status_code: int, detail: Any) -> JSONResponse:
    """JSON error envelope shared by every failure path"""
    if not isinstance(detail, dict):
        detail = {"message": str(detail)}

    body = {
        "success": False,
        "timestamp": datetime.utcnow().isoformat(),
        "request_id": request_id,
        "status_code": status_code,
        **detail
    }
    return JSONResponse(status_code=status_code, content=body, headers={"X-Request-ID": request_id})


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Turns exceptions escaping the routers into JSON error envelopes"""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        label = f"{request.method} {request.url.path}"

        try:
            response = await call_next(request)
        except CofounderMatchError as exc:
            http_exc = map_to_http_exception(exc)
            context = _request_context(request, request_id, error_code=exc.error_code, details=exc.details)

            if http_exc.status_code >= 500:
                logger.error(f"{exc.__class__.__name__} in {label}: {exc.message}", extra=context)
                # store and model failures are not shown to the client
                detail = {"error": {"error_type": exc.__class__.__name__, "error_code": exc.error_code},
                          "message": GENERIC_ERROR_MESSAGE}
            else:
                logger.warning(f"{exc.__class__.__name__} in {label}: {exc.message}", extra=context)
                detail = http_exc.detail
            return error_response(request_id, http_exc.status_code, detail)

        except RequestValidationError as exc:
            logger.warning(f"Request validation failed in {label}", extra=_request_context(request, request_id))
            return error_response(request_id, 422, {
                "error": "Validation failed",
                "message": "Request data validation failed",
                "validation_errors": jsonable_encoder(exc.errors()),
            })

        except ValidationError as exc:
            # a stored document no longer fits its response model
            logger.error(f"Model validation failed in {label}: {exc}", extra=_request_context(request, request_id))
            return error_response(request_id, 500, {
                "error": "Data validation failed",
                "message": GENERIC_ERROR_MESSAGE,
            })

        except HTTPException as exc:
            logger.warning(f"HTTP {exc.status_code} in {label}: {exc.detail}", extra=_request_context(request, request_id))
            return error_response(request_id, exc.status_code, exc.detail)

        except Exception as exc:
            logger.error(
                f"Unhandled exception in {label}: {exc}",
                extra=_request_context(request, request_id, traceback=traceback.format_exc()),
                exc_info=True
            )
            return error_response(request_id, 500, {"error": "Internal server error", "message": GENERIC_ERROR_MESSAGE})

        response.headers["X-Request-ID"] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One log line per request with caller, status and duration"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        request_id = getattr(request.state, 'request_id', 'unknown')
        caller = request.headers.get("x-user-id", "anonymous")

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"{request.method} {request.url.path} failed for user {caller} after {time.time() - start_time:.3f}s",
                extra={"request_id": request_id, "exception": str(exc)}
            )
            raise

        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} for user {caller} "
            f"in {time.time() - start_time:.3f}s",
            extra={"request_id": request_id, "status_code": response.status_code}
        )
        return response


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Flags slow requests and reports processing time in a header"""

    def __init__(self, app, slow_request_threshold: float = 2.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        processing_time = time.time() - start_time

        if processing_time > self.slow_request_threshold:
            # CV matching waits on the LLM, so this fires often on /api/cv/match
            logger.warning(
                f"Slow request: {request.method} {request.url.path} took {processing_time:.3f}s",
                extra={
                    "request_id": getattr(request.state, 'request_id', 'unknown'),
                    "threshold": self.slow_request_threshold
                }
            )

        response.headers["X-Processing-Time"] = f"{processing_time:.3f}"
        return response

"""
Custom Exception Classes for the Co-founder Match API
"""
from typing import Dict, Any
from fastapi import HTTPException


class CofounderMatchError(Exception):
    """Base exception for the Co-founder Match API"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        cause: Exception = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/response"""
        result = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class ValidationError(CofounderMatchError):
    """Raised when request data validation fails"""

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if field:
            details['field'] = field
        if value is not None:
            details['invalid_value'] = str(value)
        super().__init__(message, error_code="VALIDATION_ERROR", details=details, **kwargs)


class NotFoundError(CofounderMatchError):
    """Raised when a requested record does not exist"""

    def __init__(self, message: str, resource: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if resource:
            details['resource'] = resource
        super().__init__(message, error_code="NOT_FOUND", details=details, **kwargs)


class DatabaseError(CofounderMatchError):
    """Raised when database operations fail"""

    def __init__(self, message: str, operation: str = None, collection: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if operation:
            details['operation'] = operation
        if collection:
            details['collection'] = collection
        super().__init__(message, error_code="DATABASE_ERROR", details=details, **kwargs)


class ModelError(CofounderMatchError):
    """Raised when an LLM call fails or returns unusable output"""

    def __init__(self, message: str, model_name: str = None, model_type: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if model_name:
            details['model_name'] = model_name
        if model_type:
            details['model_type'] = model_type
        super().__init__(message, error_code="MODEL_ERROR", details=details, **kwargs)


class ProcessingError(CofounderMatchError):
    """Raised when CV or job spreadsheet processing fails"""

    def __init__(self, message: str, document_id: str = None, document_type: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if document_id:
            details['document_id'] = document_id
        if document_type:
            details['document_type'] = document_type
        super().__init__(message, error_code="PROCESSING_ERROR", details=details, **kwargs)


class ConfigurationError(CofounderMatchError):
    """Raised when configuration is invalid or missing"""

    def __init__(self, message: str, config_key: str = None, config_value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if config_key:
            details['config_key'] = config_key
        if config_value is not None:
            details['config_value'] = str(config_value)
        super().__init__(message, error_code="CONFIGURATION_ERROR", details=details, **kwargs)


class AuthenticationError(CofounderMatchError):
    """Raised when the caller cannot be identified"""

    def __init__(self, message: str = "Authentication required", **kwargs):
        super().__init__(message, error_code="AUTHENTICATION_ERROR", **kwargs)


class ExternalServiceError(CofounderMatchError):
    """Raised when external service calls fail"""

    def __init__(self, message: str, service_name: str = None, status_code: int = None, **kwargs):
        details = kwargs.pop('details', {})
        if service_name:
            details['service_name'] = service_name
        if status_code:
            details['status_code'] = status_code
        super().__init__(message, error_code="EXTERNAL_SERVICE_ERROR", details=details, **kwargs)


class BusinessLogicError(CofounderMatchError):
    """Raised when a request breaks a business rule (duplicate connection, self connection)"""

    def __init__(self, message: str, rule: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if rule:
            details['business_rule'] = rule
        super().__init__(message, error_code="BUSINESS_LOGIC_ERROR", details=details, **kwargs)


STATUS_CODE_MAPPING = {
    ValidationError: 400,
    ConfigurationError: 400,
    BusinessLogicError: 400,
    AuthenticationError: 401,
    NotFoundError: 404,
    DatabaseError: 500,
    ModelError: 500,
    ProcessingError: 500,
    ExternalServiceError: 502,
}


def map_to_http_exception(exc: CofounderMatchError) -> HTTPException:
    """Map custom exceptions to HTTP exceptions"""

    status_code = STATUS_CODE_MAPPING.get(type(exc), 500)

    detail = {
        "error": exc.to_dict(),
        "message": exc.message
    }

    return HTTPException(status_code=status_code, detail=detail)


class ExceptionContext:
    """Context manager for handling exceptions with additional context"""

    def __init__(self, operation: str, logger=None, **context):
        self.operation = operation
        self.logger = logger
        self.context = context

    def __enter__(self):
        if self.logger:
            self.logger.debug(f"Starting operation: {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            if self.logger:
                self.logger.error(
                    f"Operation failed: {self.operation} - {exc_val}",
                    extra={**self.context, "exception_type": exc_type.__name__}
                )

            # Re-raise custom exceptions and HTTP exceptions as-is
            if isinstance(exc_val, (CofounderMatchError, HTTPException)):
                return False

            # Anything else escaping a store call is a database failure
            raise DatabaseError(
                f"Database error in {self.operation}: {str(exc_val)}",
                operation=self.operation,
                details=dict(self.context),
                cause=exc_val
            ) from exc_val
        else:
            if self.logger:
                self.logger.debug(f"Operation completed: {self.operation}", extra=self.context)

        return False

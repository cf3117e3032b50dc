"""
Engine exceptions and error handling.

The engine is transport-agnostic: every error carries an HTTP status hint
that the calling API layer maps to a response. ``register_error_handlers``
does that mapping for a FastAPI application owned by the caller.
"""

from typing import Any, Dict, Optional
from fastapi import Request, status
from fastapi.responses import JSONResponse

from .logging import get_logger

logger = get_logger(__name__)


# Custom Exceptions

class GradingEngineError(Exception):
    """Base exception for answer grading errors"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for per-item batch reporting"""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class InvalidReference(GradingEngineError):
    """Raised when a question has no usable reference answer"""

    def __init__(self, question_id: str):
        super().__init__(
            message=f"Question '{question_id}' has no usable reference answer",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"question_id": question_id}
        )


class InvalidIdentifier(GradingEngineError):
    """Raised for a malformed question, user or section identifier"""

    def __init__(self, field: str, value: Any):
        super().__init__(
            message=f"Invalid {field}: {value!r}",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"field": field, "value": str(value)}
        )


class NotFound(GradingEngineError):
    """Raised when a referenced question, section or submission does not exist"""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource.capitalize()} '{identifier}' not found",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": identifier}
        )


class TranscriptionError(GradingEngineError):
    """Base class for terminal transcription pipeline failures"""

    kind = "transcription_failed"

    def __init__(self, message: str, status_code: int, error: Optional[str] = None):
        details = {"kind": self.kind}
        if error:
            details["error"] = error
        super().__init__(message=message, status_code=status_code, details=details)


class TranscodeFailed(TranscriptionError):
    """Raised when audio cannot be converted to canonical PCM"""

    kind = "transcode_failed"

    def __init__(self, error: str):
        super().__init__(
            message=f"Audio could not be transcoded: {error}",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error=error
        )


class BackendUnavailable(TranscriptionError):
    """Raised when the transcription backend fails or times out"""

    kind = "backend_unavailable"

    def __init__(self, error: str):
        super().__init__(
            message=f"Transcription backend unavailable: {error}",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error=error
        )


class EmptyTranscript(TranscriptionError):
    """Raised when transcription produced no usable text"""

    kind = "empty_transcript"

    def __init__(self):
        super().__init__(
            message="Could not transcribe audio properly",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
        )


class ValidationError(GradingEngineError):
    """Raised for caller errors"""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details
        )


# Error Responses

def create_error_response(
    error: Exception,
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    include_details: bool = True
) -> JSONResponse:
    """Create standardized error response"""

    error_data = {
        "error": {
            "type": error.__class__.__name__,
            "message": str(error),
        }
    }

    if isinstance(error, GradingEngineError) and include_details:
        error_data["error"]["details"] = error.details

    log = logger.error if status_code >= 500 else logger.warning
    log(
        f"Grading error: {error}",
        extra_data={
            "error_type": error.__class__.__name__,
            "status_code": status_code,
            **(error.details if isinstance(error, GradingEngineError) else {})
        }
    )

    return JSONResponse(
        status_code=status_code,
        content=error_data
    )


async def grading_error_handler(request: Request, exc: GradingEngineError) -> JSONResponse:
    """Handle GradingEngineError exceptions"""
    return create_error_response(exc, exc.status_code)


def register_error_handlers(app) -> None:
    """Register engine error handlers with a FastAPI app"""
    app.add_exception_handler(GradingEngineError, grading_error_handler)

"""
API error taxonomy and exception handlers.

Every error response has the shape {"errors": ["human readable message", ...]}.
"""
import logging
from typing import Any, Iterable, List, Optional, Union

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

INVALID_EMAIL = "Invalid email"
PASSWORD_TOO_SHORT = "Password must be at least 10 characters long."
TITLE_TOO_SHORT = "Title needs to be at least 1 character long"
INVALID_TODO_ID = "Invalid todo ID format"
UNKNOWN_TODO_FIELDS = "You provided invalid data, only title, description, and completed are allowed"


# PUBLIC_INTERFACE
class TodoApiException(Exception):
    """Base exception for the API; carries a status code and error messages."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, messages: Union[str, Iterable[str], None] = None, status_code: Optional[int] = None):
        if messages is None:
            messages = [self.default_message]
        elif isinstance(messages, str):
            messages = [messages]
        self.messages: List[str] = list(messages)
        if status_code is not None:
            self.status_code = status_code
        super().__init__("; ".join(self.messages))

    def to_dict(self) -> dict:
        return {"errors": self.messages}


class ValidationFailed(TodoApiException):
    status_code = 400
    default_message = "Invalid request"


class Unauthorized(TodoApiException):
    status_code = 401
    default_message = "Unauthorized"


class InvalidCredentials(TodoApiException):
    """Same message for unknown email and wrong password."""
    status_code = 401
    default_message = "Invalid credentials"


class NotFound(TodoApiException):
    status_code = 404
    default_message = "Not found"


class Conflict(TodoApiException):
    status_code = 409
    default_message = "Conflict"


class InternalError(TodoApiException):
    status_code = 500
    default_message = "Internal server error"


def _message_for(error: dict) -> str:
    """Turn one pydantic error into the message a client sees."""
    error_type = error.get("type", "")
    loc = error.get("loc") or ()
    field = loc[-1] if loc else "body"

    if error_type == "extra_forbidden":
        return UNKNOWN_TODO_FIELDS
    if error_type == "uuid_parsing" or (loc and loc[0] == "path" and field == "todo_id"):
        return INVALID_TODO_ID
    if error_type == "missing":
        return f"{field} is required"
    if error_type == "json_invalid":
        return "Request body must be valid JSON"

    message = str(error.get("msg", "Invalid value"))
    if error_type == "value_error" and message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return message


# PUBLIC_INTERFACE
def validation_messages(errors: Iterable[Any]) -> List[str]:
    """Human-readable messages for a list of pydantic errors, deduplicated in order."""
    messages: List[str] = []
    for error in errors:
        message = _message_for(error)
        if message not in messages:
            messages.append(message)
    return messages


# === Exception handlers ===

async def todo_api_exception_handler(request: Request, exc: TodoApiException) -> JSONResponse:
    """Convert TodoApiException to JSON response."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report request validation failures as 400 with a list of messages."""
    messages = validation_messages(exc.errors())
    logger.debug(f"Rejected {request.method} {request.url.path}: {messages}")
    return JSONResponse(status_code=400, content={"errors": messages})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions with the generic 500 body."""
    logger.exception(f"Unexpected error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content=InternalError().to_dict())

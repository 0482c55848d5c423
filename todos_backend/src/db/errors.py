"""
Typed storage errors.

Driver-level integrity errors are classified once, here, into an ErrorKind so
that callers can branch on the exception type instead of poking at driver
internals.
"""
import enum
from typing import Optional

from sqlalchemy.exc import IntegrityError


# PUBLIC_INTERFACE
class ErrorKind(str, enum.Enum):
    """Category of a failed storage write."""
    UNIQUE_VIOLATION = "unique_violation"
    FOREIGN_KEY_VIOLATION = "foreign_key_violation"
    CHECK_VIOLATION = "check_violation"
    OTHER = "other"


# PUBLIC_INTERFACE
class InvalidInputError(ValueError):
    """Raised before any write when an argument can never be stored."""


# PUBLIC_INTERFACE
class StoreError(Exception):
    """Base class for failed storage operations."""

    kind = ErrorKind.OTHER

    def __init__(self, message: str, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


# PUBLIC_INTERFACE
class ConflictError(StoreError):
    """A uniqueness constraint rejected the write."""
    kind = ErrorKind.UNIQUE_VIOLATION


# PUBLIC_INTERFACE
class ReferentialError(StoreError):
    """A foreign key pointed at a row that does not exist."""
    kind = ErrorKind.FOREIGN_KEY_VIOLATION


# PUBLIC_INTERFACE
class ConstraintError(StoreError):
    """A CHECK constraint rejected the write."""
    kind = ErrorKind.CHECK_VIOLATION


# SQLSTATE codes (Postgres) and message fragments (SQLite) per kind
_SQLSTATE_KINDS = {
    "23505": ErrorKind.UNIQUE_VIOLATION,
    "23503": ErrorKind.FOREIGN_KEY_VIOLATION,
    "23514": ErrorKind.CHECK_VIOLATION,
}
_MESSAGE_KINDS = (
    ("unique constraint", ErrorKind.UNIQUE_VIOLATION),
    ("foreign key constraint", ErrorKind.FOREIGN_KEY_VIOLATION),
    ("check constraint", ErrorKind.CHECK_VIOLATION),
)
_ERROR_CLASSES = {
    ErrorKind.UNIQUE_VIOLATION: ConflictError,
    ErrorKind.FOREIGN_KEY_VIOLATION: ReferentialError,
    ErrorKind.CHECK_VIOLATION: ConstraintError,
}


# PUBLIC_INTERFACE
def classify_integrity_error(exc: IntegrityError) -> ErrorKind:
    """Map a driver integrity error to an ErrorKind."""
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _SQLSTATE_KINDS:
        return _SQLSTATE_KINDS[sqlstate]

    text = str(orig).lower()
    for fragment, kind in _MESSAGE_KINDS:
        if fragment in text:
            return kind
    return ErrorKind.OTHER


# PUBLIC_INTERFACE
def store_error_from(exc: IntegrityError) -> StoreError:
    """Build the typed StoreError matching an integrity error."""
    kind = classify_integrity_error(exc)
    error_cls = _ERROR_CLASSES.get(kind, StoreError)
    return error_cls(str(exc.orig), kind=kind)

import datetime
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import AliasGenerator, BaseModel, ConfigDict, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from src.api.errors import INVALID_EMAIL, PASSWORD_TOO_SHORT, TITLE_TOO_SHORT

MIN_PASSWORD_LENGTH = 10
MAX_EMAIL_LENGTH = 256
MAX_TITLE_LENGTH = 500
MAX_DESCRIPTION_LENGTH = 1000

# ==== Auth Schemas ====


# PUBLIC_INTERFACE
class Credentials(BaseModel):
    """Signup and login input."""
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        if len(value) > MAX_EMAIL_LENGTH:
            raise ValueError(INVALID_EMAIL)
        try:
            validate_email(value, check_deliverability=False)
        except EmailNotValidError:
            raise ValueError(INVALID_EMAIL)
        # Stored exactly as given; lookups are case-sensitive.
        return value

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(PASSWORD_TOO_SHORT)
        return value


# PUBLIC_INTERFACE
class UserRead(BaseModel):
    """Public view of a user (never includes the password hash)."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str


# PUBLIC_INTERFACE
class AuthResponse(BaseModel):
    message: str
    user: UserRead


# PUBLIC_INTERFACE
class MessageResponse(BaseModel):
    message: str


# ==== Todo Schemas ====

def _check_title(value: Optional[str]) -> str:
    if value is None or len(value) < 1:
        raise ValueError(TITLE_TOO_SHORT)
    if len(value) > MAX_TITLE_LENGTH:
        raise ValueError(f"Title must be at most {MAX_TITLE_LENGTH} characters long")
    return value


def _check_description(value: Optional[str]) -> Optional[str]:
    if value is not None and len(value) > MAX_DESCRIPTION_LENGTH:
        raise ValueError(f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters long")
    return value


# PUBLIC_INTERFACE
class TodoCreate(BaseModel):
    """Input schema for creating a todo."""
    title: str
    description: Optional[str] = None
    completed: Optional[bool] = False

    @field_validator("title")
    @classmethod
    def check_title(cls, value: str) -> str:
        return _check_title(value)

    @field_validator("description")
    @classmethod
    def check_description(cls, value: Optional[str]) -> Optional[str]:
        return _check_description(value)


# PUBLIC_INTERFACE
class TodoUpdate(BaseModel):
    """Partial update; only the keys actually sent are applied."""
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[bool] = None

    @field_validator("title")
    @classmethod
    def check_title(cls, value: Optional[str]) -> str:
        return _check_title(value)

    @field_validator("description")
    @classmethod
    def check_description(cls, value: Optional[str]) -> Optional[str]:
        return _check_description(value)

    @field_validator("completed")
    @classmethod
    def check_completed(cls, value: Optional[bool]) -> bool:
        if value is None:
            raise ValueError("Completed must be true or false")
        return value


# PUBLIC_INTERFACE
class TodoRead(BaseModel):
    """Returned data for a todo, serialized with camelCase keys."""
    model_config = ConfigDict(from_attributes=True, alias_generator=AliasGenerator(serialization_alias=to_camel))

    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    completed: bool
    created_at: datetime.datetime
    updated_at: datetime.datetime

    @field_serializer("created_at", "updated_at")
    def serialize_timestamp(self, value: datetime.datetime) -> str:
        # SQLite hands back naive values; they are stored in UTC
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        return value.isoformat()

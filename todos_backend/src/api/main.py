import logging
import uuid
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, FastAPI, Depends, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dotenv import load_dotenv

from src.api.core import (
    LOG_LEVEL, COOKIE_SECURE,
    cors_origins_list, create_token_issuer,
    get_current_user_id, get_token_issuer, get_cookie_secure,
    set_session_cookie, clear_session_cookie,
)
from src.api.errors import (
    TodoApiException, ValidationFailed, InvalidCredentials, Unauthorized,
    NotFound, Conflict, InternalError,
    todo_api_exception_handler, request_validation_exception_handler, unhandled_exception_handler,
)
from src.api.schemas import (
    Credentials, AuthResponse, MessageResponse, UserRead,
    TodoCreate, TodoUpdate, TodoRead,
)
from src.auth.passwords import password_hasher
from src.auth.tokens import TokenIssuer
from src.db import queries
from src.db.db import get_db, create_db_engine, create_session_factory, init_db
from src.db.errors import ConflictError, InvalidInputError, StoreError

# Load .env for DB/JWT settings
load_dotenv()

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Liveness"},
    {"name": "auth", "description": "Signup, login and logout"},
    {"name": "users", "description": "The authenticated user"},
    {"name": "todos", "description": "Create, list, update and delete your todos"},
]

TODO_NOT_FOUND = "Todo not found"


def _internal_error(action: str) -> InternalError:
    logger.exception(f"Storage failure while {action}")
    return InternalError()


# --- Authentication Endpoints ---

auth_router = APIRouter(prefix="/auth", tags=["auth"])


# PUBLIC_INTERFACE
@auth_router.post("/signup", response_model=AuthResponse, summary="Register a new user")
def signup(
    payload: Credentials,
    response: Response,
    db: Session = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
    secure: bool = Depends(get_cookie_secure),
):
    """Register a new user and start a session. Email must be unique."""
    try:
        user_id = queries.insert_user(db, payload.email, payload.password)
    except ConflictError:
        raise Conflict("Email already exists")
    except InvalidInputError as e:
        raise ValidationFailed(str(e))
    except (StoreError, SQLAlchemyError):
        raise _internal_error("registering a user")

    set_session_cookie(response, issuer.issue(user_id), issuer.expires_in, secure=secure)
    return {"message": "User registered successfully", "user": {"id": user_id, "email": payload.email}}


# PUBLIC_INTERFACE
@auth_router.post("/login", response_model=AuthResponse, summary="Log in with email and password")
def login(
    payload: Credentials,
    response: Response,
    db: Session = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
    secure: bool = Depends(get_cookie_secure),
):
    """
    Authenticate and receive a session cookie.
    Unknown email and wrong password get the same 401.
    """
    try:
        user = queries.get_user_by_email(db, payload.email)
    except SQLAlchemyError:
        raise _internal_error("looking up a user")

    if user is None or not password_hasher.verify(payload.password, user.password_hash):
        logger.info("Failed login attempt")
        raise InvalidCredentials()

    if password_hasher.needs_rehash(user.password_hash):
        try:
            queries.update_password_hash(db, user, password_hasher.hash(payload.password))
        except (StoreError, SQLAlchemyError):
            logger.exception(f"Could not upgrade password hash for user {user.id}")

    set_session_cookie(response, issuer.issue(user.id), issuer.expires_in, secure=secure)
    return {"message": "Login successful", "user": {"id": user.id, "email": user.email}}


# PUBLIC_INTERFACE
@auth_router.post("/logout", response_model=MessageResponse, summary="Log out")
def logout(response: Response, secure: bool = Depends(get_cookie_secure)):
    """Clear the session cookie."""
    clear_session_cookie(response, secure=secure)
    return {"message": "Logout successful"}


# --- Protected Endpoints ---

protected_router = APIRouter(prefix="/protected")


# PUBLIC_INTERFACE
@protected_router.get("/me", response_model=UserRead, tags=["users"], summary="Get current user info")
def read_current_user(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Get id and email of the authenticated user."""
    try:
        user = queries.get_user_by_id(db, user_id)
    except SQLAlchemyError:
        raise _internal_error("fetching the current user")
    if user is None:
        # token outlived its user
        raise Unauthorized()
    return {"id": user.id, "email": user.email}


# PUBLIC_INTERFACE
@protected_router.post("/todos", response_model=TodoRead, status_code=201, tags=["todos"], summary="Create a todo")
def create_todo(payload: TodoCreate, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Create a todo belonging to the authenticated user."""
    try:
        return queries.insert_todo(db, user_id, payload.title, payload.description, payload.completed)
    except InvalidInputError as e:
        raise ValidationFailed(str(e))
    except (StoreError, SQLAlchemyError):
        raise _internal_error("creating a todo")


# PUBLIC_INTERFACE
@protected_router.get("/todos", response_model=List[TodoRead], tags=["todos"], summary="List my todos")
def list_todos(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """List the authenticated user's todos, newest first."""
    try:
        return queries.get_todos_by_user_id(db, user_id)
    except SQLAlchemyError:
        raise _internal_error("listing todos")


# PUBLIC_INTERFACE
@protected_router.patch("/todos/{todo_id}", response_model=TodoRead, tags=["todos"], summary="Update a todo")
def update_todo(
    todo_id: uuid.UUID,
    payload: TodoUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Apply the sent fields to one of your todos."""
    try:
        todo = queries.update_todo(db, str(todo_id), user_id, payload.model_dump(exclude_unset=True))
    except InvalidInputError as e:
        raise ValidationFailed(str(e))
    except (StoreError, SQLAlchemyError):
        raise _internal_error("updating a todo")
    if todo is None:
        raise NotFound(TODO_NOT_FOUND)
    return todo


# PUBLIC_INTERFACE
@protected_router.delete("/todos/{todo_id}", response_model=TodoRead, tags=["todos"], summary="Delete a todo")
def delete_todo(todo_id: uuid.UUID, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Delete one of your todos and return it as it was."""
    try:
        todo = queries.delete_todo(db, str(todo_id), user_id=user_id)
    except (StoreError, SQLAlchemyError):
        raise _internal_error("deleting a todo")
    if todo is None:
        raise NotFound(TODO_NOT_FOUND)
    return todo


# --- Application ---

@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db(app.state.engine)
    logger.info("Database tables ready")
    yield
    app.state.engine.dispose()


# PUBLIC_INTERFACE
def create_app(
    database_url: Optional[str] = None,
    token_issuer: Optional[TokenIssuer] = None,
    cookie_secure: Optional[bool] = None,
) -> FastAPI:
    """
    Build the API with its own storage handle, token issuer and cookie policy.
    Defaults come from DATABASE_URL, JWT_* and ENVIRONMENT environment variables.
    """
    app = FastAPI(
        title="Todos Backend API",
        description="FastAPI backend for per-user todos (signup, login, session cookie, CRUD).",
        version="1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.engine = create_db_engine(database_url)
    app.state.session_factory = create_session_factory(app.state.engine)
    app.state.token_issuer = token_issuer or create_token_issuer()
    app.state.cookie_secure = COOKIE_SECURE if cookie_secure is None else cookie_secure

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(TodoApiException, todo_api_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/health", tags=["health"])
    def health_check():
        """Health check."""
        return {"status": "healthy"}

    app.include_router(auth_router)
    app.include_router(protected_router)
    return app


app = create_app()

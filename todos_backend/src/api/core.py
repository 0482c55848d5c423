import os
import logging
from typing import List

from fastapi import Request, Response
from dotenv import load_dotenv

from src.api.errors import Unauthorized
from src.auth.tokens import TokenIssuer

load_dotenv()

logger = logging.getLogger(__name__)

# === Security config from env ===
ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", 60))
SESSION_COOKIE_NAME = os.environ.get("SESSION_COOKIE_NAME", "authToken")
ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")
COOKIE_SECURE = ENVIRONMENT == "production"
CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "http://localhost:3000")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


# PUBLIC_INTERFACE
def cors_origins_list() -> List[str]:
    """Parse CORS_ORIGINS (comma-separated) into a list."""
    return [origin.strip() for origin in CORS_ORIGINS.split(",") if origin.strip()]


# PUBLIC_INTERFACE
def create_token_issuer() -> TokenIssuer:
    """Build the token issuer from JWT_* environment variables."""
    secret = os.environ.get("JWT_SECRET_KEY")
    if not secret:
        raise ValueError("JWT_SECRET_KEY environment variable must be set in your .env file (see .env.example)")
    return TokenIssuer(secret, algorithm=ALGORITHM, expires_minutes=ACCESS_TOKEN_EXPIRE_MINUTES)


# ==== Session cookie ====

# PUBLIC_INTERFACE
def set_session_cookie(response: Response, token: str, max_age: int, secure: bool = COOKIE_SECURE) -> None:
    """Deliver the session token as an http-only, same-site cookie."""
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=max_age,
        httponly=True,
        secure=secure,
        samesite="lax",
        path="/",
    )


# PUBLIC_INTERFACE
def clear_session_cookie(response: Response, secure: bool = COOKIE_SECURE) -> None:
    """Tell the client to drop its session cookie. Nothing is revoked server-side."""
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        httponly=True,
        secure=secure,
        samesite="lax",
        path="/",
    )


# PUBLIC_INTERFACE
def get_cookie_secure(request: Request) -> bool:
    """Whether this app's session cookies carry the Secure flag."""
    return request.app.state.cookie_secure


# ==== Session gate ====

# PUBLIC_INTERFACE
def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


# PUBLIC_INTERFACE
def get_current_user_id(request: Request) -> str:
    """
    Resolve the acting user id from the session cookie.

    Each request is evaluated from scratch: a cookie whose token verifies
    authenticates the request, anything else is rejected with 401 before any
    store operation runs.
    """
    token = request.cookies.get(SESSION_COOKIE_NAME)
    user_id = get_token_issuer(request).verify(token)
    if user_id is None:
        if token:
            logger.debug(f"Rejected session cookie on {request.method} {request.url.path}")
        raise Unauthorized()
    return user_id

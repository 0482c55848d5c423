import datetime
import logging
from typing import Optional

from jose import JWTError, ExpiredSignatureError, jwt

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class TokenIssuer:
    """
    Mints and verifies signed session tokens.

    A token is a JWT whose `sub` claim is the user id and whose `exp` claim is
    fixed at issuance. Nothing is stored server-side; logging out only means
    the client drops the token.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", expires_minutes: int = 60):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self.secret = secret
        self.algorithm = algorithm
        self.expires_delta = datetime.timedelta(minutes=expires_minutes)

    @property
    def expires_in(self) -> int:
        """Validity window in seconds."""
        return int(self.expires_delta.total_seconds())

    # PUBLIC_INTERFACE
    def issue(self, user_id: str) -> str:
        """Generate a signed token for the given user id."""
        now = datetime.datetime.now(datetime.timezone.utc)
        claims = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + self.expires_delta,
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    # PUBLIC_INTERFACE
    def verify(self, token: Optional[str]) -> Optional[str]:
        """Return the user id carried by a valid token, or None."""
        if not token:
            return None
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            logger.info("Session token has expired")
            return None
        except JWTError as e:
            logger.warning(f"Session token rejected: {e}")
            return None

        user_id = payload.get("sub")
        if not user_id or not isinstance(user_id, str):
            logger.warning("Session token missing 'sub' claim")
            return None
        return user_id

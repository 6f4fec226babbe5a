"""
Authentication context for the client session.
Holds the signed-in user and verifies session tokens issued by the auth provider.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol
import logging

from jose import JWTError, jwt

from realestate.config import Settings
from realestate.utils.exceptions import InvalidTokenError, UnauthenticatedError

logger = logging.getLogger(__name__)


class AuthContext(Protocol):
    """Answers who is signed in right now."""

    def current_user_id(self) -> Optional[str]: ...


def require_user(auth: AuthContext) -> str:
    """
    Return the signed-in user id.

    Raises:
        UnauthenticatedError: If nobody is signed in
    """
    user_id = auth.current_user_id()
    if not user_id:
        raise UnauthenticatedError()
    return user_id


class SessionAuthContext:
    """Mutable holder of the signed-in user for this client session."""

    def __init__(self, user_id: Optional[str] = None):
        self._user_id = user_id

    def current_user_id(self) -> Optional[str]:
        return self._user_id

    def sign_in(self, user_id: str) -> None:
        if not user_id:
            raise UnauthenticatedError("User id is required to sign in")
        self._user_id = user_id
        logger.info(f"User {user_id} signed in")

    def sign_out(self) -> None:
        if self._user_id:
            logger.info(f"User {self._user_id} signed out")
        self._user_id = None


def create_session_token(
    user_id: str,
    settings: Settings,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a signed session token for a user.

    Args:
        user_id: Auth provider user id
        settings: Settings holding the signing key and algorithm
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT string
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.session_token_expire_minutes))

    to_encode = {
        "sub": user_id,
        "exp": expire,
        "iat": now,
        "type": "session"
    }

    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_session_token(token: str, settings: Settings) -> str:
    """
    Verify a session token and return its user id.

    Raises:
        InvalidTokenError: If the token is malformed, expired or of the wrong type
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise InvalidTokenError(f"Invalid session token: {e}") from e

    if payload.get("type") != "session":
        raise InvalidTokenError("Invalid token type. Expected session")

    user_id = payload.get("sub")
    if not user_id:
        raise InvalidTokenError("Invalid token payload")

    return user_id

import logging
from typing import Optional

from fastapi import Request
from jose import jwt, JWTError
from sqlmodel import Session, select

from opsdesk.core.config import get_settings
from opsdesk.models import User

settings = get_settings()
logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def get_token(request: Request) -> Optional[str]:
    """Extracts a bearer token from the access_token cookie or Authorization header."""
    token = request.cookies.get("access_token")
    if not token:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header.split(" ", 1)[1]

    if token and token.startswith("Bearer "):
        token = token[7:]
    return token or None


def get_user_from_token(token: str) -> Optional[dict]:
    """Decodes a JWT token and extracts user info."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
        username: str = payload.get("sub")
        if username is None:
            return None
        return {"username": username, "role": payload.get("role")}
    except JWTError:
        return None


def resolve_identity(request: Request, db: Session) -> Optional[User]:
    """Resolves the acting user for a request.

    Why: Tokens are issued by the session layer, not by this service; we only
    verify them. Requests without a valid token fall back to the configured
    default operator, or stay anonymous if there is none.

    Args:
        request: Incoming request carrying the token.
        db: Database session for the user lookup.

    Returns:
        The acting User, or None for an anonymous request.
    """
    token = get_token(request)
    if token:
        user_data = get_user_from_token(token)
        if user_data:
            user = db.exec(select(User).where(User.username == user_data["username"])).first()
            if user and user.is_active:
                return user
            logger.warning(f"Token for unknown or inactive user {user_data['username']}")

    if settings.REQUIRE_AUTH or not settings.DEFAULT_OPERATOR:
        return None
    return db.exec(select(User).where(User.username == settings.DEFAULT_OPERATOR)).first()

"""Authentication for the marketplace API.

Implements stateless JWT sessions, bcrypt password hashing and the session
guards that sit in front of the routes:

- ``authorize_user``: the request must carry a valid, non-revoked token
- ``authorize_guest``: the request must NOT carry one
- ``attach_login_status``: never rejects, resolves the user or a guest
- ``blacklist_token``: revokes the token the request carries
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import bcrypt
import jwt
from fastapi import Depends, status
from fastapi.security import APIKeyHeader
from pydantic import ValidationError

from app.core.config import settings, DEFAULT_JWT_SECRET
from app.core.errors import HttpError
from app.core.logging import get_logger
from app.domain.user import User, UserState
from app.infrastructure.redis import TokenBlacklist, get_token_blacklist

logger = get_logger(__name__)

# JWT Configuration from settings
SECRET_KEY = settings.jwt_secret_key
ALGORITHM = settings.jwt_algorithm
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72

# Production security check
if settings.environment == "production":
    if SECRET_KEY == DEFAULT_JWT_SECRET:
        raise ValueError("JWT_SECRET_KEY must be set to a secure value in production!")
    if len(SECRET_KEY) < 32:
        logger.warning("JWT_SECRET_KEY should be at least 32 characters for security")

# The token is sent in the Authorization header, bare or as "Bearer <token>"
token_header = APIKeyHeader(name="Authorization", auto_error=False)


def hash_password(password: str) -> str:
    """Hash a password with bcrypt using the configured number of rounds."""
    salt = bcrypt.gensalt(rounds=settings.salt_rounds)
    return bcrypt.hashpw(password.encode("utf-8")[:BCRYPT_MAX_BYTES], salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(
            password.encode("utf-8")[:BCRYPT_MAX_BYTES],
            password_hash.encode("utf-8"),
        )
    except ValueError:
        # Stored value is not a bcrypt hash
        logger.warning("Password check against a malformed hash")
        return False


def create_access_token(
    user: Union[User, UserState],
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create a JWT access token for the user.

    Args:
        user: Stored user or session state to encode
        expires_delta: Token lifetime (default: ACCESS_TOKEN_EXPIRE_MINUTES)

    Returns:
        Encoded JWT token

    Example:
        >>> token = create_access_token(user)
        >>> decode_token(token).username == user.username
        True
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    issued_at = datetime.now(timezone.utc)
    expire = issued_at + expires_delta

    payload = {
        "_id": str(user.id),
        "username": user.username,
        "palette": user.palette,
        "theme": user.theme,
        "iat": issued_at,
        "exp": expire,
    }

    token = jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)

    logger.info(
        f"Access token created for user {user.username}",
        extra={"user_id": str(user.id)}
    )

    return token


def decode_token(token: str) -> UserState:
    """Decode and validate a JWT token.

    Raises:
        HttpError: 401 if the token is malformed, tampered with or expired
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user = UserState.model_validate(payload)
        if not user.id or not user.username:
            raise jwt.InvalidTokenError("Token carries no user")
        return user

    except jwt.ExpiredSignatureError:
        logger.debug("Expired token attempted")
        raise HttpError("Invalid token", status.HTTP_401_UNAUTHORIZED)

    except (jwt.InvalidTokenError, ValidationError) as e:
        logger.debug(f"Invalid token attempted: {e}")
        raise HttpError("Invalid token", status.HTTP_401_UNAUTHORIZED)


def token_expiry(token: str) -> Optional[datetime]:
    """Return the UTC expiry of a token, or None if it cannot be read."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM], options={"verify_exp": False})
    except jwt.InvalidTokenError:
        return None

    exp = payload.get("exp")
    return datetime.fromtimestamp(exp, tz=timezone.utc) if isinstance(exp, (int, float)) else None


def extract_token(authorization: Optional[str]) -> str:
    """Strip an optional ``Bearer`` scheme from the Authorization header."""
    if not authorization:
        return ""

    scheme, _, credentials = authorization.strip().partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()

    return authorization.strip()


def resolve_user(token: str, blacklist: TokenBlacklist) -> Optional[UserState]:
    """Return the session user for a token, or None if it is missing, revoked or invalid."""
    if not token or token in blacklist:
        return None

    try:
        return decode_token(token)
    except HttpError:
        return None


async def authorize_user(
    authorization: Optional[str] = Depends(token_header),
    blacklist: TokenBlacklist = Depends(get_token_blacklist),
) -> UserState:
    """Session guard: only logged-in users pass.

    Example:
        >>> @router.get("/user")
        >>> def me(user: UserState = Depends(authorize_user)):
        ...     return user
    """
    user = resolve_user(extract_token(authorization), blacklist)

    if user is None:
        raise HttpError("Invalid token", status.HTTP_401_UNAUTHORIZED)

    logger.debug(f"User authenticated: {user.username}", extra={"user_id": user.id})
    return user


async def authorize_guest(
    authorization: Optional[str] = Depends(token_header),
    blacklist: TokenBlacklist = Depends(get_token_blacklist),
) -> None:
    """Session guard: only requests without a valid session pass."""
    user = resolve_user(extract_token(authorization), blacklist)

    if user is not None:
        logger.info(f"Logged in user {user.username} hit a guest-only route", extra={"user_id": user.id})
        raise HttpError("You must be logged out to perform this action", status.HTTP_403_FORBIDDEN)


async def attach_login_status(
    authorization: Optional[str] = Depends(token_header),
    blacklist: TokenBlacklist = Depends(get_token_blacklist),
) -> UserState:
    """Resolve the session user without rejecting; guests get an empty state."""
    user = resolve_user(extract_token(authorization), blacklist)
    return user if user is not None else UserState.guest()


async def blacklist_token(
    authorization: Optional[str] = Depends(token_header),
    blacklist: TokenBlacklist = Depends(get_token_blacklist),
) -> str:
    """Revoke the token carried by the request.

    Any header value is revoked, valid or not; put ``authorize_user`` in
    front to only accept valid sessions.
    """
    token = extract_token(authorization)
    blacklist.add(token, expires_at=token_expiry(token))
    logger.info("Token revoked")
    return token

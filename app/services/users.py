"""Account registration, login and preferences."""
from typing import Optional

from fastapi import status
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.auth import hash_password, verify_password
from app.core.errors import HttpError
from app.core.logging import get_logger
from app.domain.user import Credentials, Palette, Theme, User

logger = get_logger(__name__)


def find_user_by_username(session: Session, username: str) -> Optional[User]:
    return session.exec(select(User).where(User.username == username)).first()


def find_user_by_id(session: Session, user_id: str) -> Optional[User]:
    return session.get(User, user_id)


def register(session: Session, credentials: Credentials) -> User:
    """Create an account with a hashed password.

    Raises:
        HttpError: 400 if the username is taken
    """
    if find_user_by_username(session, credentials.username) is not None:
        raise HttpError("Username already exists", status.HTTP_400_BAD_REQUEST)

    user = User(username=credentials.username, password=hash_password(credentials.password))
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        # Lost a race against another registration of the same name
        session.rollback()
        raise HttpError("Username already exists", status.HTTP_400_BAD_REQUEST)

    session.refresh(user)
    logger.info(f"User registered: {user.username}", extra={"user_id": user.id})
    return user


def login(session: Session, username: str, password: str) -> User:
    """Return the stored user if the credentials match.

    Raises:
        HttpError: 401 for an unknown username or a wrong password
    """
    user = find_user_by_username(session, username)

    if user is None:
        logger.warning(f"Login attempt for non-existent user: {username}")
        raise HttpError("Wrong username or password", status.HTTP_401_UNAUTHORIZED)

    if not verify_password(password, user.password):
        logger.warning(f"Invalid password for user: {username}", extra={"user_id": user.id})
        raise HttpError("Wrong username or password", status.HTTP_401_UNAUTHORIZED)

    logger.info(f"User logged in: {username}", extra={"user_id": user.id})
    return user


def _get_existing_user(session: Session, user_id: str) -> User:
    user = find_user_by_id(session, user_id)
    if user is None:
        raise HttpError("User does not exist", status.HTTP_404_NOT_FOUND)
    return user


def change_theme(session: Session, user_id: str, theme: str) -> User:
    try:
        value = Theme(theme).value
    except ValueError:
        raise HttpError("Invalid theme", status.HTTP_400_BAD_REQUEST)

    user = _get_existing_user(session, user_id)
    user.theme = value
    session.add(user)
    session.commit()
    return user


def change_palette(session: Session, user_id: str, palette: str) -> User:
    try:
        value = Palette(palette).value
    except ValueError:
        raise HttpError("Invalid palette", status.HTTP_400_BAD_REQUEST)

    user = _get_existing_user(session, user_id)
    user.palette = value
    session.add(user)
    session.commit()
    return user

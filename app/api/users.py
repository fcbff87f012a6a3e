"""User routes: registration, login/logout, profile and preferences."""
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session

from app.core.auth import authorize_guest, authorize_user, blacklist_token, create_access_token
from app.core.errors import HttpError
from app.core.logging import get_logger, LogTimer
from app.domain.transaction import TransactionView
from app.domain.user import (
    AuthResponse,
    Credentials,
    LoginRequest,
    PaletteUpdate,
    ThemeUpdate,
    User,
    UserState,
    UserView,
)
from app.infrastructure.database import get_session
from app.services import transactions, users

logger = get_logger(__name__)
router = APIRouter(prefix="/user", tags=["user"])


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        id=user.id,
        username=user.username,
        palette=user.palette,
        theme=user.theme,
        access_token=create_access_token(user),
    )


@router.get("", response_model=UserView)
def get_profile(
    current_user: UserState = Depends(authorize_user),
    session: Session = Depends(get_session),
):
    """Return the logged-in user's account data.

    Requires: Authentication
    """
    user = users.find_user_by_id(session, current_user.id)
    if user is None:
        raise HttpError("User does not exist", status.HTTP_404_NOT_FOUND)
    return UserView.from_user(user)


@router.get("/transactions", response_model=List[TransactionView])
def get_transactions(
    current_user: UserState = Depends(authorize_user),
    session: Session = Depends(get_session),
):
    """Return the logged-in user's purchases with product name and price.

    Requires: Authentication
    """
    return transactions.get_user_transactions(session, current_user.id)


@router.get("/{username}")
def user_exists(username: str, session: Session = Depends(get_session)):
    """Answer 200 if the username is taken, 404 otherwise."""
    if users.find_user_by_username(session, username) is None:
        raise HttpError("User does not exist", status.HTTP_404_NOT_FOUND)
    return {}


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(authorize_guest)],
)
def register(credentials: Credentials, session: Session = Depends(get_session)):
    """Create an account and log it in.

    Requires: no active session

    Example:
        POST /user/register
        {"username": "jsmith", "password": "secure123"}
    """
    with LogTimer(logger, "user_registration"):
        user = users.register(session, credentials)
        return _auth_response(user)


@router.post("/login", response_model=AuthResponse, dependencies=[Depends(authorize_guest)])
def login(req: LoginRequest, session: Session = Depends(get_session)):
    """Authenticate and return an access token.

    Requires: no active session
    """
    with LogTimer(logger, "user_authentication"):
        user = users.login(session, req.username, req.password)
        return _auth_response(user)


@router.delete(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(authorize_user), Depends(blacklist_token)],
)
def logout():
    """Revoke the current access token.

    Requires: Authentication
    """
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/theme")
def change_theme(
    req: ThemeUpdate,
    current_user: UserState = Depends(authorize_user),
    session: Session = Depends(get_session),
):
    """Requires: Authentication"""
    user = users.change_theme(session, current_user.id, req.theme)
    return {"theme": user.theme}


@router.put("/palette")
def change_palette(
    req: PaletteUpdate,
    current_user: UserState = Depends(authorize_user),
    session: Session = Depends(get_session),
):
    """Requires: Authentication"""
    user = users.change_palette(session, current_user.id, req.palette)
    return {"palette": user.palette}

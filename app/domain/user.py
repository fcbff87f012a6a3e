"""Domain models for users and authentication."""
import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field as PydanticField, field_validator
from sqlmodel import Field, SQLModel

from app.domain.common import new_id

USERNAME_PATTERN = re.compile(r"^[a-z][a-z0-9]+$", re.IGNORECASE)


class Palette(str, Enum):
    """Accent colour palettes a user can pick for the storefront UI."""
    BLUE = "blue"
    INDIGO = "indigo"
    DEEP_PURPLE = "deepPurple"
    GREEN = "green"
    AMBER = "amber"
    PINK = "pink"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class User(SQLModel, table=True):
    """Registered account.

    Attributes:
        id: Unique identifier for the user
        username: Public, unique login name
        password: bcrypt hash of the password (never the plain text)
        palette: Preferred UI palette
        theme: Preferred UI theme

    The products a user created and the products a user bought are not
    stored here; they are derived from the ``products`` and
    ``transactions`` tables.
    """
    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)
    username: str = Field(index=True, unique=True, max_length=10)
    password: str
    palette: str = Field(default=Palette.DEEP_PURPLE.value)
    theme: str = Field(default=Theme.LIGHT.value)


class Credentials(BaseModel):
    """Registration payload, validated against the account rules.

    Attributes:
        username: 5-10 alphanumeric characters starting with a letter
        password: at least six characters
    """
    username: Optional[str] = PydanticField(default=None, validate_default=True)
    password: Optional[str] = PydanticField(default=None, validate_default=True)

    @field_validator("username", mode="before")
    @classmethod
    def validate_username(cls, value: Any) -> str:
        value = str(value).strip() if value is not None else ""
        if not value:
            raise ValueError("Username is required")
        if len(value) < 5:
            raise ValueError("Username must be at least five characters")
        if len(value) > 10:
            raise ValueError("Username must be no more than ten characters")
        if not USERNAME_PATTERN.match(value):
            raise ValueError("Username must start with a letter and can only contain alphanumeric characters")
        return value

    @field_validator("password", mode="before")
    @classmethod
    def validate_password(cls, value: Any) -> str:
        value = str(value).strip() if value is not None else ""
        if not value:
            raise ValueError("Password is required")
        if len(value) < 6:
            raise ValueError("Password must be at least six characters")
        return value

    class Config:
        json_schema_extra = {
            "example": {
                "username": "jsmith",
                "password": "secure123"
            }
        }


class LoginRequest(BaseModel):
    """Login credentials; checked against the stored account, not the rules."""
    username: str = ""
    password: str = ""


class ThemeUpdate(BaseModel):
    theme: Optional[str] = PydanticField(default=None, validate_default=True)

    @field_validator("theme", mode="before")
    @classmethod
    def validate_theme(cls, value: Any) -> str:
        try:
            return Theme(value).value
        except ValueError:
            raise ValueError("Invalid theme")


class PaletteUpdate(BaseModel):
    palette: Optional[str] = PydanticField(default=None, validate_default=True)

    @field_validator("palette", mode="before")
    @classmethod
    def validate_palette(cls, value: Any) -> str:
        try:
            return Palette(value).value
        except ValueError:
            raise ValueError("Invalid palette")


class UserState(BaseModel):
    """Session user decoded from the access token.

    Guests are represented by an empty ``id`` and ``username`` with the
    default palette and theme.

    Attributes:
        id: User ID (``_id`` on the wire and in the token)
        username: Username
        palette: UI palette at the time the token was issued
        theme: UI theme at the time the token was issued
    """
    id: str = PydanticField(default="", alias="_id")
    username: str = ""
    palette: str = Palette.DEEP_PURPLE.value
    theme: str = Theme.LIGHT.value

    class Config:
        populate_by_name = True

    @property
    def is_logged(self) -> bool:
        return self.username != ""

    @classmethod
    def guest(cls) -> "UserState":
        return cls()

    @classmethod
    def from_user(cls, user: User) -> "UserState":
        return cls(id=user.id, username=user.username, palette=user.palette, theme=user.theme)


class UserView(UserState):
    """Public account data returned by the user endpoints."""


class AuthResponse(UserView):
    """Account data plus a freshly issued access token."""
    access_token: str = PydanticField(alias="accessToken")

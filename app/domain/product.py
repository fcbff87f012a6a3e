"""Domain models for products and catalogue listings."""
import math
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field as PydanticField, field_validator
from sqlmodel import Field, SQLModel

from app.domain.common import new_id, utcnow, UTCDateTime

NAME_MIN_LENGTH = 5
NAME_MAX_LENGTH = 100
MIN_PRICE = 0.01


class Product(SQLModel, table=True):
    """A digital product put up for sale by its owner.

    Attributes:
        id: Unique identifier for the product
        name: Display name (5-100 characters)
        price: Price, always stored with two decimals
        image: Image URL
        owner_id: ID of the user who created the product
        created_at: Creation time, the default listing order

    Buyers are derived from the ``transactions`` table.
    """
    __tablename__ = "products"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(index=True, max_length=NAME_MAX_LENGTH)
    price: float
    image: str
    owner_id: str = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, index=True)


def _clean_name(value: Any) -> str:
    value = str(value).strip() if value is not None else ""
    if not value:
        raise ValueError("Product name is required")
    if len(value) < NAME_MIN_LENGTH:
        raise ValueError("Product name must be at least five characters")
    if len(value) > NAME_MAX_LENGTH:
        raise ValueError("Product name must be no more than 100 characters")
    return value


def _clean_price(value: Any) -> float:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError("Price is required")
    if isinstance(value, bool):
        raise ValueError("Price must be a number")
    try:
        price = float(value)
    except (TypeError, ValueError, OverflowError):
        raise ValueError("Price must be a number")
    if not math.isfinite(price):
        raise ValueError("Price must be a number")
    if price < MIN_PRICE:
        raise ValueError("Price must be at least 0.01$")
    return round(price, 2)


class ProductInput(BaseModel):
    """Payload for creating a product.

    The name and image are trimmed and the price is fixed to the second
    decimal before anything is stored.
    """
    name: Optional[str] = PydanticField(default=None, validate_default=True)
    price: Optional[float] = PydanticField(default=None, validate_default=True)
    image: Optional[str] = PydanticField(default=None, validate_default=True)

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, value: Any) -> str:
        return _clean_name(value)

    @field_validator("price", mode="before")
    @classmethod
    def validate_price(cls, value: Any) -> float:
        return _clean_price(value)

    @field_validator("image", mode="before")
    @classmethod
    def validate_image(cls, value: Any) -> str:
        value = str(value).strip() if value is not None else ""
        if not value:
            raise ValueError("Image is required")
        return value

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Pixel icon pack",
                "price": 4.99,
                "image": "https://cdn.example.com/icons.png"
            }
        }


class ProductUpdate(BaseModel):
    """Partial edit of a product. Only the name and price can change."""
    name: Optional[str] = None
    price: Optional[float] = None

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, value: Any) -> Optional[str]:
        return None if value is None else _clean_name(value)

    @field_validator("price", mode="before")
    @classmethod
    def validate_price(cls, value: Any) -> Optional[float]:
        return None if value is None else _clean_price(value)


class SortField(str, Enum):
    NAME = "name"
    PRICE = "price"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ProductView(BaseModel):
    """Product as listed in the catalogue."""
    id: str = PydanticField(alias="_id")
    name: str
    price: float
    image: str

    class Config:
        populate_by_name = True

    @classmethod
    def from_product(cls, product: Product) -> "ProductView":
        return cls(id=product.id, name=product.name, price=product.price, image=product.image)


class ProductDetail(ProductView):
    """Single product page, with the viewer's relation to it."""
    has_bought: bool = PydanticField(default=False, alias="hasBought")
    is_owner: bool = PydanticField(default=False, alias="isOwner")
    is_logged: bool = PydanticField(default=False, alias="isLogged")


class ProductPage(BaseModel):
    """A (possibly paginated) list of products plus the total match count."""
    products: List[ProductView]
    total: int


class ProductRef(BaseModel):
    """Acknowledgement returned by mutations: just the product id."""
    id: str

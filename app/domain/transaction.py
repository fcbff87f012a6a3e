"""Domain models for purchase transactions."""
from datetime import datetime
from typing import Union

from pydantic import BaseModel, Field as PydanticField
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from app.domain.common import new_id, utcnow, UTCDateTime


class Transaction(SQLModel, table=True):
    """Record of a purchase.

    One row per (buyer, product) pair: the unique constraint is what makes a
    second purchase of the same product impossible even when two requests
    race past the guards.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        UniqueConstraint("buyer_id", "product_id", name="uq_transactions_buyer_product"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    buyer_id: str = Field(foreign_key="users.id", index=True)
    product_id: str = Field(foreign_key="products.id", index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class TransactionProduct(BaseModel):
    """The populated product of a transaction: id, name and price only."""
    id: str = PydanticField(alias="_id")
    name: str
    price: float

    class Config:
        populate_by_name = True


class TransactionView(BaseModel):
    """Transaction as returned to its buyer.

    ``product`` is the populated product, or its bare id when the caller
    asked not to populate.
    """
    id: str = PydanticField(alias="_id")
    buyer: str
    product: Union[TransactionProduct, str]
    created_at: datetime = PydanticField(alias="createdAt")
    updated_at: datetime = PydanticField(alias="updatedAt")

    class Config:
        populate_by_name = True

"""Product catalogue and purchases.

Purchase invariants enforced here:
- a user cannot buy a product they created
- a user cannot buy the same product twice
- a purchase is a single write (the transaction row), so the buyer's bought
  products and the product's buyers can never disagree
"""
from typing import List, Mapping, Optional

from fastapi import status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.config import settings
from app.core.errors import HttpError
from app.core.logging import get_logger, LogTimer
from app.domain.product import Product, ProductInput, ProductUpdate, SortField, SortOrder
from app.domain.transaction import Transaction
from app.domain.user import User
from app.services import transactions

logger = get_logger(__name__)

# {"name": "asc"} / {"price": "desc"}
SortOptions = Mapping[str, str]

# Largest OFFSET / LIMIT a 64-bit SQL integer can hold
MAX_ROWS = 2 ** 63 - 1


def _order_by(sort: Optional[SortOptions]) -> list:
    """Translate sort options into ORDER BY clauses.

    Names sort case-insensitively. Listing order falls back to creation
    order so pages never overlap.
    """
    clauses = []

    for field, direction in (sort or {}).items():
        try:
            sort_field = SortField(field)
            sort_order = SortOrder(str(direction).lower())
        except ValueError:
            raise HttpError("Invalid option", status.HTTP_400_BAD_REQUEST)

        column = func.lower(Product.name) if sort_field is SortField.NAME else Product.price
        clauses.append(column.asc() if sort_order is SortOrder.ASC else column.desc())

    clauses.extend([Product.created_at.asc(), Product.id.asc()])
    return clauses


def _paginate(statement, page: int, limit: Optional[int]):
    """Apply page/limit. Page 0 means no pagination at all."""
    if page < 0:
        raise HttpError("Invalid option", status.HTTP_400_BAD_REQUEST)
    if page == 0:
        return statement

    limit = limit or settings.products_per_page
    offset = limit * (page - 1)
    if limit < 0 or limit > MAX_ROWS or offset > MAX_ROWS:
        raise HttpError("Invalid option", status.HTTP_400_BAD_REQUEST)

    return statement.offset(offset).limit(limit)


def _name_filter(name: str):
    """Case-insensitive substring match; wildcards in ``name`` are literal."""
    return func.lower(Product.name).contains(name.lower(), autoescape=True)


def find_product_by_id(session: Session, product_id: Optional[str]) -> Optional[Product]:
    """Return the product with the given id, or None if there isn't one."""
    if not product_id:
        return None
    return session.get(Product, str(product_id))


def get_user_products(
    session: Session,
    user_id: str,
    sort: Optional[SortOptions] = None,
    page: int = 0,
    limit: Optional[int] = None,
) -> List[Product]:
    """Return the products created by the user, optionally sorted and paginated.

    If ``page`` is given but not ``limit``, ``PRODUCTS_PER_PAGE`` is used.
    """
    statement = select(Product).where(Product.owner_id == user_id).order_by(*_order_by(sort))
    return list(session.exec(_paginate(statement, page, limit)).all())


def get_user_products_count(session: Session, user_id: str) -> int:
    statement = select(func.count()).select_from(Product).where(Product.owner_id == user_id)
    return session.exec(statement).one()


def create_product(session: Session, product: ProductInput, user_id: str) -> Product:
    """Store a new product owned by the user.

    Raises:
        HttpError: 404 if the user does not exist
    """
    user = session.get(User, user_id)
    if user is None:
        raise HttpError("User does not exist", status.HTTP_404_NOT_FOUND)

    new_product = Product(
        name=product.name,
        price=product.price,
        image=product.image,
        owner_id=user.id,
    )
    session.add(new_product)
    session.commit()
    session.refresh(new_product)

    logger.info(
        f"Product created: {new_product.name}",
        extra={"user_id": user.id, "product_id": new_product.id}
    )
    return new_product


def edit_product(session: Session, product_id: str, product: ProductUpdate) -> Optional[Product]:
    """Apply the provided fields to the product.

    Returns the updated product, or None if it does not exist.
    """
    current = find_product_by_id(session, product_id)
    if current is None:
        return None

    for field, value in product.model_dump(exclude_none=True).items():
        setattr(current, field, value)

    session.add(current)
    session.commit()
    session.refresh(current)

    logger.info("Product edited", extra={"product_id": current.id})
    return current


def delete_product(session: Session, product_id: str) -> Product:
    """Delete the product together with its transactions.

    This also removes it from its owner's products and from every buyer's
    bought products, since both are derived from these rows.

    Raises:
        HttpError: 404 if the product does not exist
    """
    product = find_product_by_id(session, product_id)
    if product is None:
        raise HttpError("Product does not exist", status.HTTP_404_NOT_FOUND)

    with LogTimer(logger, "delete_product"):
        try:
            related = session.exec(select(Transaction).where(Transaction.product_id == product.id)).all()
            for transaction in related:
                session.delete(transaction)
            # Transactions reference the product, remove them first
            session.flush()
            session.delete(product)
            session.commit()
        except Exception:
            session.rollback()
            raise

    logger.info("Product deleted", extra={"product_id": product.id})
    return product


def find_all_products(
    session: Session,
    sort: Optional[SortOptions] = None,
    page: int = 0,
    limit: Optional[int] = None,
) -> List[Product]:
    """Return all products, optionally sorted and paginated.

    Without arguments this is simply every product. ``page`` defaults to 0,
    meaning no pagination unless a page is explicitly given.
    """
    statement = select(Product).order_by(*_order_by(sort))
    return list(session.exec(_paginate(statement, page, limit)).all())


def search_products_by_name(
    session: Session,
    name: str,
    sort: Optional[SortOptions] = None,
    page: int = 0,
    limit: Optional[int] = None,
) -> List[Product]:
    """Return products whose names contain ``name`` (case insensitive)."""
    statement = select(Product).where(_name_filter(name or "")).order_by(*_order_by(sort))
    return list(session.exec(_paginate(statement, page, limit)).all())


def get_product_count(session: Session, name: str = "") -> int:
    """Return the number of products, or of products whose name contains ``name``."""
    statement = select(func.count()).select_from(Product)
    if name:
        statement = statement.where(_name_filter(name))
    return session.exec(statement).one()


def buy_product(session: Session, user_id: str, product_id: str) -> Product:
    """Buy the product for the user and record the transaction.

    Raises:
        HttpError: 404 if the product or the user does not exist,
            403 if the user already bought the product or created it
    """
    with LogTimer(logger, "buy_product"):
        product = find_product_by_id(session, product_id)
        if product is None:
            raise HttpError("Product does not exist", status.HTTP_404_NOT_FOUND)

        user = session.get(User, user_id)
        if user is None:
            raise HttpError("User does not exist", status.HTTP_404_NOT_FOUND)

        if check_if_user_has_bought_the_product(session, user.id, product.id):
            raise HttpError("You have already bought this product", status.HTTP_403_FORBIDDEN)

        if user.id == product.owner_id:
            raise HttpError("You cannot buy a product that you have created", status.HTTP_403_FORBIDDEN)

        try:
            transactions.create_transaction(session, product.id, user.id)
        except IntegrityError:
            logger.warning(
                "Concurrent duplicate purchase rejected",
                extra={"user_id": user.id, "product_id": product.id}
            )
            raise HttpError("You have already bought this product", status.HTTP_403_FORBIDDEN)

    logger.info(
        f"User {user.username} bought {product.name}",
        extra={"user_id": user.id, "product_id": product.id}
    )
    return product


def check_if_user_has_bought_the_product(session: Session, user_id: str, product_id: str) -> bool:
    """Return True if the user has bought the product. Unknown users never have."""
    if not user_id or not product_id:
        return False

    statement = select(Transaction.id).where(
        Transaction.buyer_id == user_id,
        Transaction.product_id == product_id,
    )
    return session.exec(statement).first() is not None


def check_if_user_is_the_owner_of_the_product(session: Session, user_id: str, product_id: str) -> bool:
    """Return True if the user created the product.

    Raises:
        HttpError: 404 if the product does not exist
    """
    product = find_product_by_id(session, product_id)
    if product is None:
        raise HttpError("Product does not exist", status.HTTP_404_NOT_FOUND)
    return product.owner_id == user_id


def list_buyers(session: Session, product_id: str) -> List[User]:
    """Users who bought the product, in purchase order."""
    statement = (
        select(User)
        .join(Transaction, Transaction.buyer_id == User.id)
        .where(Transaction.product_id == product_id)
        .order_by(Transaction.created_at, Transaction.id)
    )
    return list(session.exec(statement).all())


def list_bought_products(session: Session, user_id: str) -> List[Product]:
    """Products the user bought, in purchase order."""
    statement = (
        select(Product)
        .join(Transaction, Transaction.product_id == Product.id)
        .where(Transaction.buyer_id == user_id)
        .order_by(Transaction.created_at, Transaction.id)
    )
    return list(session.exec(statement).all())

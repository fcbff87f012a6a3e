"""Product routes: catalogue listings, product pages, editing and buying."""
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.api.guards import attach_product, authorize_buyer, authorize_owner, check_owner, check_purchase
from app.core.auth import attach_login_status, authorize_user
from app.core.errors import HttpError
from app.core.logging import get_logger
from app.domain.product import (
    Product,
    ProductDetail,
    ProductInput,
    ProductPage,
    ProductRef,
    ProductUpdate,
    ProductView,
)
from app.domain.user import UserState
from app.infrastructure.database import get_session
from app.services import products
from app.services.products import SortOptions

logger = get_logger(__name__)
router = APIRouter(prefix="/product", tags=["product"])


def _sort_options(by: Optional[str], sort: Optional[str]) -> Optional[SortOptions]:
    """Sorting needs both the field (``by``) and the direction (``sort``)."""
    if by and sort:
        return {by: sort}
    return None


def _page_number(page: Optional[str]) -> int:
    """Anything that is not an integer means "no pagination"."""
    try:
        return int(page) if page is not None else 0
    except ValueError:
        return 0


def _page(items, total: int) -> ProductPage:
    return ProductPage(products=[ProductView.from_product(p) for p in items], total=total)


@router.get("/own", response_model=ProductPage)
def get_own_products(
    by: Optional[str] = None,
    sort: Optional[str] = None,
    page: Optional[str] = None,
    user: UserState = Depends(authorize_user),
    session: Session = Depends(get_session),
):
    """List the products created by the logged-in user.

    Requires: Authentication

    Example:
        GET /product/own?by=price&sort=desc&page=1
    """
    items = products.get_user_products(session, user.id, _sort_options(by, sort), _page_number(page))
    return _page(items, products.get_user_products_count(session, user.id))


@router.get("/all", response_model=ProductPage)
def get_all_products(
    by: Optional[str] = None,
    sort: Optional[str] = None,
    page: Optional[str] = None,
    session: Session = Depends(get_session),
):
    """List the whole catalogue."""
    items = products.find_all_products(session, _sort_options(by, sort), _page_number(page))
    return _page(items, products.get_product_count(session))


@router.get("/search", response_model=ProductPage)
def search_products(
    name: str = "",
    by: Optional[str] = None,
    sort: Optional[str] = None,
    page: Optional[str] = None,
    session: Session = Depends(get_session),
):
    """List products whose name contains ``name``, ignoring case."""
    items = products.search_products_by_name(session, name, _sort_options(by, sort), _page_number(page))
    return _page(items, products.get_product_count(session, name))


@router.get("/{product_id}/isOwner", response_model=ProductView)
def get_owned_product(product: Product = Depends(authorize_owner)):
    """Return the product only to its creator, e.g. to prefill the edit form."""
    return ProductView.from_product(product)


@router.get("/{product_id}", response_model=ProductDetail)
def get_product(
    product: Product = Depends(attach_product),
    user: UserState = Depends(attach_login_status),
    has_bought: bool = Depends(check_purchase),
    is_owner: bool = Depends(check_owner),
):
    """Product page, with the viewer's relation to the product."""
    return ProductDetail(
        id=product.id,
        name=product.name,
        price=product.price,
        image=product.image,
        has_bought=has_bought,
        is_owner=is_owner,
        is_logged=user.is_logged,
    )


@router.post("", response_model=ProductView, status_code=status.HTTP_201_CREATED)
def create_product(
    product: ProductInput,
    user: UserState = Depends(authorize_user),
    session: Session = Depends(get_session),
):
    """Put a new product up for sale.

    Requires: Authentication

    Example:
        POST /product
        {"name": "Pixel icon pack", "price": 4.99, "image": "https://..."}
    """
    return ProductView.from_product(products.create_product(session, product, user.id))


@router.put(
    "/{product_id}",
    response_model=ProductRef,
    dependencies=[Depends(authorize_user), Depends(authorize_owner)],
)
def edit_product(product_id: str, changes: ProductUpdate, session: Session = Depends(get_session)):
    """Change the name and/or price of a product.

    Requires: Authentication, ownership
    """
    product = products.edit_product(session, product_id, changes)
    if product is None:
        raise HttpError("Product does not exist", status.HTTP_404_NOT_FOUND)
    return ProductRef(id=product.id)


@router.delete(
    "/{product_id}",
    response_model=ProductRef,
    dependencies=[Depends(authorize_user), Depends(authorize_owner)],
)
def delete_product(product_id: str, session: Session = Depends(get_session)):
    """Remove a product and every purchase of it.

    Requires: Authentication, ownership
    """
    product = products.delete_product(session, product_id)
    return ProductRef(id=product.id)


@router.post(
    "/{product_id}/buy",
    response_model=ProductRef,
    dependencies=[Depends(authorize_user)],
)
def buy_product(
    product: Product = Depends(authorize_buyer),
    user: UserState = Depends(authorize_user),
    session: Session = Depends(get_session),
):
    """Buy a product.

    Requires: Authentication, not the creator, not bought before
    """
    bought = products.buy_product(session, user.id, product.id)
    return ProductRef(id=bought.id)

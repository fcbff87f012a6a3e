"""Product guards placed in front of the product routes.

Each guard is a FastAPI dependency that either rejects the request with an
``HttpError`` or passes its result down the chain. Dependencies are cached
per request, so the product is loaded once however many guards ask for it.

Typical chains:
    attach_product -> check_purchase -> check_owner    (product page)
    authorize_user -> authorize_owner                  (edit / delete)
    authorize_user -> authorize_buyer                  (buy)
"""
from fastapi import Depends, status
from sqlmodel import Session

from app.core.auth import attach_login_status
from app.core.errors import HttpError
from app.core.logging import get_logger
from app.domain.product import Product
from app.domain.user import UserState
from app.infrastructure.database import get_session
from app.services import products

logger = get_logger(__name__)


def attach_product(product_id: str, session: Session = Depends(get_session)) -> Product:
    """Load the product named by the ``product_id`` path parameter.

    Raises:
        HttpError: 404 if the product does not exist
    """
    product = products.find_product_by_id(session, product_id)
    if product is None:
        raise HttpError("Product does not exist", status.HTTP_404_NOT_FOUND)
    return product


def authorize_owner(
    product: Product = Depends(attach_product),
    user: UserState = Depends(attach_login_status),
) -> Product:
    """Only the creator of the product passes.

    To merely find out whether the user is the creator, use ``check_owner``.

    Raises:
        HttpError: 403 if the user is not the creator
    """
    if product.owner_id != user.id:
        logger.info(
            "Non-owner rejected",
            extra={"user_id": user.id, "product_id": product.id}
        )
        raise HttpError(
            "You must be the creator of the product to perform this action",
            status.HTTP_403_FORBIDDEN
        )
    return product


def check_owner(
    product: Product = Depends(attach_product),
    user: UserState = Depends(attach_login_status),
) -> bool:
    """Whether the user created the product. Never rejects an existing product."""
    return bool(user.id) and product.owner_id == user.id


def check_purchase(
    product: Product = Depends(attach_product),
    user: UserState = Depends(attach_login_status),
    session: Session = Depends(get_session),
) -> bool:
    """Whether the user has bought the product. Guests never have.

    To abort requests from users who already bought it, use ``authorize_buyer``.
    """
    return products.check_if_user_has_bought_the_product(session, user.id, product.id)


def authorize_buyer(
    product: Product = Depends(attach_product),
    user: UserState = Depends(attach_login_status),
    has_bought: bool = Depends(check_purchase),
    is_owner: bool = Depends(check_owner),
) -> Product:
    """Only users allowed to buy the product pass.

    A previous purchase is reported before ownership.

    Raises:
        HttpError: 403 if the user already bought or created the product
    """
    if has_bought:
        raise HttpError("You have already bought the item", status.HTTP_403_FORBIDDEN)

    if is_owner:
        raise HttpError("You cannot buy a product that you have created", status.HTTP_403_FORBIDDEN)

    logger.debug("Purchase authorized", extra={"user_id": user.id, "product_id": product.id})
    return product

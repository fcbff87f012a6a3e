"""Transaction records, one per purchase."""
from typing import List

from sqlmodel import Session, select

from app.core.logging import get_logger
from app.domain.product import Product
from app.domain.transaction import Transaction, TransactionProduct, TransactionView

logger = get_logger(__name__)


def create_transaction(session: Session, product_id: str, buyer_id: str) -> Transaction:
    """Record that ``buyer_id`` bought ``product_id``. Generally called when buying a product.

    Raises:
        sqlalchemy.exc.IntegrityError: if the buyer already has a transaction
            for this product (the session is rolled back first)
    """
    transaction = Transaction(product_id=product_id, buyer_id=buyer_id)
    session.add(transaction)
    try:
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(transaction)
    logger.info(
        f"Transaction {transaction.id} recorded",
        extra={"user_id": buyer_id, "product_id": product_id}
    )
    return transaction


def get_user_transactions(session: Session, user_id: str, populate: bool = True) -> List[TransactionView]:
    """Return the buyer's transactions, oldest first.

    With ``populate`` each product is expanded to its id, name and price;
    otherwise only the product id is returned.
    """
    if not populate:
        rows = session.exec(
            select(Transaction)
            .where(Transaction.buyer_id == user_id)
            .order_by(Transaction.created_at, Transaction.id)
        ).all()
        return [
            TransactionView(
                id=t.id,
                buyer=t.buyer_id,
                product=t.product_id,
                created_at=t.created_at,
                updated_at=t.updated_at,
            )
            for t in rows
        ]

    rows = session.exec(
        select(Transaction, Product)
        .join(Product, Product.id == Transaction.product_id)
        .where(Transaction.buyer_id == user_id)
        .order_by(Transaction.created_at, Transaction.id)
    ).all()

    return [
        TransactionView(
            id=t.id,
            buyer=t.buyer_id,
            product=TransactionProduct(id=p.id, name=p.name, price=p.price),
            created_at=t.created_at,
            updated_at=t.updated_at,
        )
        for t, p in rows
    ]

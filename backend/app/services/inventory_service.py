# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/app/services/inventory_service.py
"""
Inventory Invariants (authoritative)

Stock model:
- Product.stock is the on-hand quantity, stored directly on the product row.
- Sales subtract, purchases add. Nothing else moves stock except a direct
  product edit.

Business invariants:
- Stock may never go negative. Sale decrements are a single conditional
  UPDATE (stock = stock - q WHERE stock >= q); zero affected rows means
  another request consumed the stock first and the sale is rejected.
- Movements never commit on their own; the caller's unit of work commits
  or rolls back all line items together.

Low stock:
- A product is low on stock when stock <= min_stock_level.
"""

from sqlalchemy import func, update

from ..extensions import db
from ..errors import InsufficientStockError, NotFoundError
from ..models import Product
from ..models.transactions import TRANSACTION_TYPE_SALE
from .concurrency import lock_for_update


def get_business_product(
    business_id: int,
    product_id,
    *,
    require_active: bool = True,
    lock: bool = False,
) -> Product:
    """Load a product of the business or raise NotFoundError."""
    query = db.session.query(Product).filter(
        Product.id == product_id,
        Product.business_id == business_id,
    )
    if require_active:
        query = query.filter(Product.is_active.is_(True))
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if not product:
        raise NotFoundError(f"Product with ID {product_id} not found", details={"productId": product_id})
    return product


def _insufficient(product: Product, requested: int) -> InsufficientStockError:
    return InsufficientStockError(
        f"Insufficient stock for product {product.name}. "
        f"Available: {product.stock}, Requested: {requested}",
        details={"productId": product.id, "available": product.stock, "requested": requested},
    )


def check_available(product: Product, quantity: int) -> None:
    if product.stock < quantity:
        raise _insufficient(product, quantity)


def decrement_stock(product: Product, quantity: int) -> None:
    """Conditional decrement; raises InsufficientStockError if it would go negative."""
    result = db.session.execute(
        update(Product)
        .where(Product.id == product.id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    db.session.refresh(product, ["stock"])
    if not result.rowcount:
        raise _insufficient(product, quantity)


def increment_stock(product: Product, quantity: int) -> None:
    db.session.execute(
        update(Product)
        .where(Product.id == product.id)
        .values(stock=Product.stock + quantity)
        .execution_options(synchronize_session=False)
    )
    db.session.refresh(product, ["stock"])


def apply_stock_movement(product: Product, quantity: int, transaction_type: str) -> None:
    """Sale: stock -= quantity (checked). Purchase: stock += quantity."""
    if transaction_type == TRANSACTION_TYPE_SALE:
        check_available(product, quantity)
        decrement_stock(product, quantity)
    else:
        increment_stock(product, quantity)


def _low_stock_query(business_id: int):
    return db.session.query(Product).filter(
        Product.business_id == business_id,
        Product.is_active.is_(True),
        Product.stock <= Product.min_stock_level,
    )


def list_low_stock(business_id: int) -> list[Product]:
    return _low_stock_query(business_id).order_by(Product.stock.asc(), Product.name.asc()).all()


def count_low_stock(business_id: int) -> int:
    return _low_stock_query(business_id).with_entities(func.count(Product.id)).scalar() or 0

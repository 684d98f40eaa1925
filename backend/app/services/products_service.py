# backend/app/services/products_service.py
"""
Products Service

MULTI-TENANT: All product operations are business-scoped.
- every function takes business_id explicitly
- lookups outside the business raise NotFoundError
- products are deactivated, never deleted
"""
from __future__ import annotations

from sqlalchemy import func

from ..errors import NotFoundError
from ..extensions import db
from ..models import Product
from ..validation import ConflictError
from .inventory_service import get_business_product

PRODUCT_MUTABLE_FIELDS = {
    "name", "category", "description", "price", "stock", "min_stock_level",
    "hsn", "cgst", "sgst", "is_active",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_unique_name(business_id: int, name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Product.id).filter(
        Product.business_id == business_id,
        Product.is_active.is_(True),
        func.lower(Product.name) == name.lower(),
    )
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError(f"Product '{name}' already exists")


def list_products(
    business_id: int,
    *,
    search: str | None = None,
    category: str | None = None,
    is_active: bool | None = True,
    low_stock: bool = False,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Product], int]:
    """
    Business-scoped product listing, ordered by name.

    is_active=None lists active and inactive products.
    """
    query = db.session.query(Product).filter(Product.business_id == business_id)

    if is_active is not None:
        query = query.filter(Product.is_active.is_(is_active))
    if search:
        query = query.filter(Product.name.ilike(f"%{search.strip()}%"))
    if category:
        query = query.filter(Product.category == category)
    if low_stock:
        query = query.filter(Product.stock <= Product.min_stock_level)

    total = query.count()
    products = (
        query.order_by(Product.name.asc(), Product.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return products, total


def list_categories(business_id: int) -> list[str]:
    rows = (
        db.session.query(Product.category)
        .filter(Product.business_id == business_id, Product.is_active.is_(True))
        .distinct()
        .order_by(Product.category.asc())
        .all()
    )
    return [category for (category,) in rows]


def get_product(business_id: int, product_id: int) -> Product:
    return get_business_product(business_id, product_id, require_active=False)


def create_product(*, business_id: int, patch: dict) -> Product:
    """
    Create product using a validated patch dict.

    Raises:
        ConflictError: an active product with the same name exists
    """
    _ensure_unique_name(business_id, patch["name"])

    product = Product(business_id=business_id)
    apply_product_patch(product, patch)
    db.session.add(product)
    db.session.commit()
    return product


def update_product(*, business_id: int, product_id: int, patch: dict) -> Product:
    product = get_product(business_id, product_id)

    if "name" in patch and patch["name"].lower() != product.name.lower():
        _ensure_unique_name(business_id, patch["name"], exclude_id=product.id)

    apply_product_patch(product, patch)
    db.session.commit()
    return product


def deactivate_product(*, business_id: int, product_id: int) -> Product:
    product = get_product(business_id, product_id)
    if not product.is_active:
        raise NotFoundError(f"Product with ID {product_id} not found")
    product.is_active = False
    db.session.commit()
    return product

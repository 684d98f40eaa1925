# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/app/routes/products.py
"""
Product management routes.

MULTI-TENANT: All product operations are scoped to the caller's business.
The business_id is derived from g.business_id (set by @require_business).
"""
from flask import Blueprint, request, g, current_app

from ..errors import ServiceError
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    coerce_bool,
    ValidationError,
    ConflictError,
)
from ..decorators import require_business
from ..responses import success, failure, pagination, page_params
from ..services import products_service
from ..services.inventory_service import list_low_stock

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "category", "description", "price", "stock",
        "minStockLevel", "HSN", "cgst", "sgst", "isActive",
    },
    required_on_create={"name", "category", "price"},
    field_aliases={"minStockLevel": "min_stock_level", "HSN": "hsn", "isActive": "is_active"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_business
def list_products():
    """
    List products with optional filters and pagination.

    Query params:
    - search: name substring (case-insensitive)
    - category: exact category
    - isActive: true/false (default true)
    - lowStock: true to keep only stock <= minStockLevel
    - page, limit
    """
    try:
        page, limit = page_params(request.args)
        is_active = request.args.get("isActive")
        items, total = products_service.list_products(
            g.business_id,
            search=request.args.get("search"),
            category=request.args.get("category"),
            is_active=True if is_active is None else coerce_bool(is_active),
            low_stock=coerce_bool(request.args.get("lowStock", "false")),
            page=page,
            limit=limit,
        )
    except ValidationError as e:
        return failure(str(e), 400)

    return success({
        "products": [p.to_dict() for p in items],
        "pagination": pagination(page, limit, total),
    })


@products_bp.get("/categories")
@require_business
def list_categories():
    return success({"categories": products_service.list_categories(g.business_id)})


@products_bp.get("/low-stock")
@require_business
def low_stock_products():
    """Active products at or below their minimum stock level."""
    products = list_low_stock(g.business_id)
    return success({"products": [p.to_dict() for p in products]})


@products_bp.get("/<int:product_id>")
@require_business
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(g.business_id, product_id)
    except ServiceError as e:
        return failure(e.message, e.status_code, e.details)
    return success({"product": product.to_dict()})


@products_bp.post("")
@require_business
def create_product_route():
    """
    Create a new product in the caller's business.

    Returns:
        201: product created
        400: validation failed
        409: an active product with this name already exists
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return failure(str(e), 400)

    try:
        created = products_service.create_product(business_id=g.business_id, patch=patch)
    except ConflictError as e:
        return failure(str(e), 409)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return failure("Internal server error", 500)

    return success({"product": created.to_dict()}, message="Product created successfully", status=201)


@products_bp.put("/<int:product_id>")
@require_business
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return failure(str(e), 400)

    try:
        updated = products_service.update_product(
            business_id=g.business_id, product_id=product_id, patch=patch
        )
    except ConflictError as e:
        return failure(str(e), 409)
    except ServiceError as e:
        return failure(e.message, e.status_code, e.details)

    return success({"product": updated.to_dict()}, message="Product updated successfully")


@products_bp.delete("/<int:product_id>")
@require_business
def delete_product_route(product_id: int):
    """Deactivate a product. Historic transactions keep their line snapshots."""
    try:
        products_service.deactivate_product(business_id=g.business_id, product_id=product_id)
    except ServiceError as e:
        return failure(e.message, e.status_code, e.details)

    return success(message="Product deleted successfully")

# Overview: Flask API routes for customers and vendors; parses input and returns JSON responses.

# backend/app/routes/contacts.py
"""
Contact (customer / vendor) routes.

MULTI-TENANT: Contacts are scoped to g.business_id.
currentBalance is maintained by the transaction workflow and is read-only here.
"""
from flask import Blueprint, request, g, current_app

from ..errors import ServiceError
from ..models import Contact
from ..models.contacts import CONTACT_TYPE_CUSTOMER, CONTACT_TYPE_VENDOR
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_contact,
    coerce_bool,
    coerce_int,
    ValidationError,
)
from ..decorators import require_business
from ..responses import success, failure, pagination, page_params
from ..services import contacts_service

CONTACT_POLICY = ModelValidationPolicy(
    writable_fields={
        "type", "name", "codeName", "phone", "email", "GSTIN",
        "street", "city", "state", "zipCode", "country", "notes", "isActive",
    },
    required_on_create={"type", "name", "phone"},
    field_aliases={
        "codeName": "code_name",
        "GSTIN": "gstin",
        "zipCode": "zip_code",
        "isActive": "is_active",
    },
)

contacts_bp = Blueprint("contacts", __name__, url_prefix="/api/contacts")


def _parse_contact_body(partial: bool):
    """Returns (patch, custom_prices) from the JSON body."""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    payload = contacts_service.flatten_address(payload)
    custom_prices = contacts_service.parse_custom_prices(payload.pop("customProductPrices", None))

    patch = validate_payload(model=Contact, payload=payload, policy=CONTACT_POLICY, partial=partial)
    enforce_rules_contact(patch)
    return patch, custom_prices


def _list_response(contact_type, data_key: str):
    try:
        page, limit = page_params(request.args)
        is_active = request.args.get("isActive")
        items, total = contacts_service.list_contacts(
            g.business_id,
            contact_type=contact_type,
            search=request.args.get("search"),
            is_active=True if is_active is None else coerce_bool(is_active),
            page=page,
            limit=limit,
        )
    except ValidationError as e:
        return failure(str(e), 400)

    return success({
        data_key: [c.to_dict() for c in items],
        "pagination": pagination(page, limit, total),
    })


@contacts_bp.get("")
@require_business
def list_contacts():
    """
    Query params: type (customer|vendor), search (name/phone/code name),
    isActive (default true), page, limit
    """
    return _list_response(request.args.get("type"), "contacts")


@contacts_bp.get("/customers")
@require_business
def list_customers():
    return _list_response(CONTACT_TYPE_CUSTOMER, "customers")


@contacts_bp.get("/vendors")
@require_business
def list_vendors():
    return _list_response(CONTACT_TYPE_VENDOR, "vendors")


@contacts_bp.get("/<int:contact_id>")
@require_business
def get_contact_route(contact_id: int):
    try:
        contact = contacts_service.get_contact(g.business_id, contact_id)
    except ServiceError as e:
        return failure(e.message, e.status_code, e.details)
    return success({"contact": contact.to_dict()})


@contacts_bp.post("")
@require_business
def create_contact_route():
    """
    Create a customer or vendor.

    Request body:
    {
        "type": "customer",
        "name": "Asha Traders",
        "phone": "9876543210",
        "email": "asha@example.com",       (optional)
        "GSTIN": "27ABCDE1234F1Z5",        (optional)
        "address": {"street": "...", "city": "...", "state": "...", "zipCode": "...", "country": "..."},
        "customProductPrices": [{"productId": 3, "inclusivePrice": 95}]
    }
    """
    try:
        patch, custom_prices = _parse_contact_body(partial=False)
    except ValidationError as e:
        return failure(str(e), 400)

    try:
        contact = contacts_service.create_contact(
            business_id=g.business_id, patch=patch, custom_prices=custom_prices
        )
    except ServiceError as e:
        return failure(e.message, e.status_code, e.details)
    except Exception:
        current_app.logger.exception("Failed to create contact")
        return failure("Internal server error", 500)

    return success({"contact": contact.to_dict()}, message="Contact created successfully", status=201)


@contacts_bp.put("/<int:contact_id>")
@require_business
def update_contact_route(contact_id: int):
    """Partial update. customProductPrices, when present, replaces the whole list."""
    try:
        patch, custom_prices = _parse_contact_body(partial=True)
    except ValidationError as e:
        return failure(str(e), 400)

    try:
        contact = contacts_service.update_contact(
            business_id=g.business_id,
            contact_id=contact_id,
            patch=patch,
            custom_prices=custom_prices,
        )
    except ServiceError as e:
        return failure(e.message, e.status_code, e.details)

    return success({"contact": contact.to_dict()}, message="Contact updated successfully")


@contacts_bp.delete("/<int:contact_id>")
@require_business
def delete_contact_route(contact_id: int):
    try:
        contacts_service.deactivate_contact(business_id=g.business_id, contact_id=contact_id)
    except ServiceError as e:
        return failure(e.message, e.status_code, e.details)
    return success(message="Contact deleted successfully")


@contacts_bp.get("/<int:contact_id>/price")
@require_business
def contact_price_route(contact_id: int):
    """Price of ?productId= for this contact (custom price wins over list price)."""
    try:
        product_id = coerce_int(request.args.get("productId"), "productId")
        quote = contacts_service.quote_price(g.business_id, contact_id, product_id)
    except ValidationError as e:
        return failure(str(e), 400)
    except ServiceError as e:
        return failure(e.message, e.status_code, e.details)
    return success({"price": quote})

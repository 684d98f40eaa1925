# Overview: Service-layer operations for customers and vendors; encapsulates business logic and database work.

"""
Contacts Service

MULTI-TENANT: Contacts, and the products their custom prices point at,
must belong to the caller's business.

RULES:
- type (customer/vendor) is set on creation and never changes
- current_balance is owned by the transaction workflow; clients cannot set it
- contacts are deactivated, never deleted
"""

from __future__ import annotations

from sqlalchemy import or_

from ..errors import BadRequestError, NotFoundError
from ..extensions import db
from ..models import Contact, ContactProductPrice
from ..models.contacts import CONTACT_TYPES
from ..validation import ValidationError, coerce_int, coerce_number
from .inventory_service import get_business_product
from .tax_service import base_price_from_inclusive, round_money

CONTACT_MUTABLE_FIELDS = {
    "type", "name", "code_name", "phone", "email", "gstin",
    "street", "city", "state", "zip_code", "country", "notes", "is_active",
}

ADDRESS_KEYS = ("street", "city", "state", "zipCode", "country")


def flatten_address(payload: dict) -> dict:
    """Lift the nested address object into top-level keys for validation."""
    if not isinstance(payload, dict):
        return payload
    flat = dict(payload)
    address = flat.pop("address", None)
    if address is None:
        return flat
    if not isinstance(address, dict):
        raise ValidationError("address must be an object")
    for key, value in address.items():
        if key not in ADDRESS_KEYS:
            raise ValidationError(f"Unknown address field: {key}")
        flat[key] = value
    return flat


def parse_custom_prices(raw) -> list[tuple[int, float]] | None:
    """[{productId, inclusivePrice}] -> [(product_id, price)]; None when absent."""
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise ValidationError("customProductPrices must be a list")

    parsed: dict[int, float] = {}
    for entry in raw:
        if not isinstance(entry, dict):
            raise ValidationError("customProductPrices entries must be objects")
        product_id = coerce_int(entry.get("productId"), "productId")
        price = coerce_number(entry.get("inclusivePrice"), "inclusivePrice")
        if price < 0:
            raise ValidationError("inclusivePrice must be at least 0")
        parsed[product_id] = round_money(price)
    return list(parsed.items())


def _apply_contact_patch(contact: Contact, patch: dict) -> None:
    for k, v in patch.items():
        if k not in CONTACT_MUTABLE_FIELDS:
            continue
        setattr(contact, k, v)


def _replace_custom_prices(business_id: int, contact: Contact, prices: list[tuple[int, float]]) -> None:
    for product_id, _ in prices:
        get_business_product(business_id, product_id, require_active=False)

    if contact.id is not None:
        contact.custom_prices.clear()
        db.session.flush()
    for product_id, price in prices:
        contact.custom_prices.append(ContactProductPrice(product_id=product_id, inclusive_price=price))


def list_contacts(
    business_id: int,
    *,
    contact_type: str | None = None,
    search: str | None = None,
    is_active: bool | None = True,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Contact], int]:
    query = db.session.query(Contact).filter(Contact.business_id == business_id)

    if contact_type in CONTACT_TYPES:
        query = query.filter(Contact.type == contact_type)
    if is_active is not None:
        query = query.filter(Contact.is_active.is_(is_active))
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(or_(
            Contact.name.ilike(term),
            Contact.phone.ilike(term),
            Contact.code_name.ilike(term),
        ))

    total = query.count()
    contacts = (
        query.order_by(Contact.name.asc(), Contact.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return contacts, total


def get_contact(business_id: int, contact_id: int) -> Contact:
    contact = (
        db.session.query(Contact)
        .filter(Contact.id == contact_id, Contact.business_id == business_id)
        .first()
    )
    if not contact:
        raise NotFoundError("Contact not found")
    return contact


def create_contact(
    *,
    business_id: int,
    patch: dict,
    custom_prices: list[tuple[int, float]] | None = None,
) -> Contact:
    if patch.get("type") not in CONTACT_TYPES:
        raise BadRequestError("Contact type must be 'customer' or 'vendor'")

    contact = Contact(business_id=business_id, current_balance=0)
    _apply_contact_patch(contact, patch)
    if custom_prices:
        _replace_custom_prices(business_id, contact, custom_prices)

    db.session.add(contact)
    db.session.commit()
    return contact


def update_contact(
    *,
    business_id: int,
    contact_id: int,
    patch: dict,
    custom_prices: list[tuple[int, float]] | None = None,
) -> Contact:
    contact = get_contact(business_id, contact_id)

    if "type" in patch and patch["type"] != contact.type:
        raise BadRequestError("Contact type cannot be changed")

    _apply_contact_patch(contact, patch)
    if custom_prices is not None:
        _replace_custom_prices(business_id, contact, custom_prices)

    db.session.commit()
    return contact


def deactivate_contact(*, business_id: int, contact_id: int) -> Contact:
    contact = get_contact(business_id, contact_id)
    if not contact.is_active:
        raise NotFoundError("Contact not found")
    contact.is_active = False
    db.session.commit()
    return contact


def quote_price(business_id: int, contact_id: int, product_id: int) -> dict:
    """
    Price a product for a contact.

    A custom inclusive price wins over the product price. basePrice strips
    the product's CGST + SGST from the inclusive price.
    """
    contact = get_contact(business_id, contact_id)
    product = get_business_product(business_id, product_id)

    custom = next((cp for cp in contact.custom_prices if cp.product_id == product.id), None)
    inclusive = custom.inclusive_price if custom else product.price

    return {
        "contactId": contact.id,
        "productId": product.id,
        "inclusivePrice": round_money(inclusive or 0),
        "basePrice": base_price_from_inclusive(inclusive or 0, product.cgst, product.sgst),
        "cgst": product.cgst,
        "sgst": product.sgst,
        "isCustomPrice": custom is not None,
    }

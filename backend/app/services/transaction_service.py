# Overview: Service-layer operations for sale/purchase transactions; encapsulates business logic and database work.

"""
Transaction Workflow

Creating a sale or purchase touches three kinds of rows:
- products: stock moves down (sale) or up (purchase) per line item
- contacts: an unpaid sale remainder is added to the customer's balance
- transactions: the document itself, its lines and its first payment

DESIGN PRINCIPLES:
- One unit of work: every row above is written in a single DB transaction.
  A failure on any line item rolls back the stock already moved for earlier
  items (see concurrency.run_with_retry).
- No overselling: sale decrements are conditional updates
  (inventory_service.decrement_stock).
- Explicit tenant: every function takes business_id; nothing reads request
  state.
- Caller-supplied subtotal/tax/total figures are trusted unless server-side
  GST computation is enabled.
- Purchases never change the vendor's balance, even on credit.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from flask import current_app
from sqlalchemy import func, or_, update

from ..errors import BadRequestError, NotFoundError
from ..extensions import db
from ..models import Contact, Transaction, TransactionLine, TransactionPayment
from ..models.contacts import CONTACT_TYPE_CUSTOMER, CONTACT_TYPE_VENDOR
from ..models.transactions import (
    STATUS_COMPLETED,
    STATUS_PENDING,
    TRANSACTION_STATUSES,
    TRANSACTION_TYPE_PURCHASE,
    TRANSACTION_TYPE_SALE,
    TRANSACTION_TYPES,
    UNIT_SINGLE,
    UNIT_TYPES,
)
from ..validation import ValidationError, coerce_bool, coerce_int, coerce_number
from app.time_utils import parse_range_bound, utcnow
from .concurrency import lock_for_update, run_with_retry
from .inventory_service import apply_stock_movement, get_business_product
from .invoice_service import next_invoice_number
from .tax_service import TaxableLine, compute_gst, round_money

# Floating-point tolerance when comparing paid against total
PAYMENT_EPSILON = 0.01

DEFAULT_PAYMENT_METHOD = "cash"
INITIAL_PAYMENT_NOTE = "Initial Payment"


# =============================================================================
# REQUEST PARSING
# =============================================================================

@dataclass(frozen=True)
class LineItemRequest:
    product_id: int
    quantity: int
    price: float
    unit_type: str = UNIT_SINGLE


@dataclass(frozen=True)
class CreateTransactionRequest:
    type: str
    items: list[LineItemRequest]
    customer_id: int | None = None
    vendor_id: int | None = None
    payment_method: str = DEFAULT_PAYMENT_METHOD
    notes: str | None = None
    subtotal: float | None = None
    cgst: float | None = None
    sgst: float | None = None
    discount: float | None = None
    total_amount: float | None = None
    status: str | None = None
    initial_payment: float = 0.0

    @property
    def counterparty_id(self) -> int | None:
        return self.customer_id if self.type == TRANSACTION_TYPE_SALE else self.vendor_id


def _bad(message: str, **details) -> BadRequestError:
    return BadRequestError(message, details=details or None)


def _optional_amount(payload: dict, key: str) -> float | None:
    raw = payload.get(key)
    if raw is None or raw == "":
        return None
    try:
        value = coerce_number(raw, key)
    except ValidationError as exc:
        raise _bad(str(exc), field=key)
    if value < 0:
        raise _bad(f"{key} must be at least 0", field=key)
    return round_money(value)


def _optional_id(payload: dict, key: str) -> int | None:
    raw = payload.get(key)
    if raw is None or raw == "":
        return None
    try:
        return coerce_int(raw, key)
    except ValidationError as exc:
        raise _bad(str(exc), field=key)


def _parse_line_item(index: int, raw) -> LineItemRequest:
    if not isinstance(raw, dict):
        raise _bad(f"Product entry {index + 1} must be an object")

    product_id = _optional_id(raw, "productId")
    if product_id is None:
        raise _bad(f"Product entry {index + 1} is missing productId")

    try:
        quantity = coerce_int(raw.get("quantity"), "quantity")
    except ValidationError as exc:
        raise _bad(f"Product entry {index + 1}: {exc}")
    if quantity <= 0:
        raise _bad(f"Product entry {index + 1}: quantity must be positive")

    try:
        price = coerce_number(raw.get("price"), "price")
    except ValidationError as exc:
        raise _bad(f"Product entry {index + 1}: {exc}")
    if price < 0:
        raise _bad(f"Product entry {index + 1}: price must be at least 0")

    unit_type = raw.get("unitType") or UNIT_SINGLE
    if unit_type not in UNIT_TYPES:
        raise _bad(f"Product entry {index + 1}: unitType must be one of {', '.join(UNIT_TYPES)}")

    return LineItemRequest(product_id=product_id, quantity=quantity, price=round_money(price), unit_type=unit_type)


def parse_create_request(payload: dict | None) -> CreateTransactionRequest:
    """Validate the shape of a create-transaction body (no DB access)."""
    payload = payload or {}
    if not isinstance(payload, dict):
        raise _bad("Invalid JSON payload")

    tx_type = payload.get("type")
    if tx_type not in TRANSACTION_TYPES:
        raise _bad("Transaction type must be 'sale' or 'purchase'")

    customer_id = _optional_id(payload, "customerId")
    vendor_id = _optional_id(payload, "vendorId")
    if tx_type == TRANSACTION_TYPE_SALE and customer_id is None:
        raise _bad("Customer ID is required for sales")
    if tx_type == TRANSACTION_TYPE_PURCHASE and vendor_id is None:
        raise _bad("Vendor ID is required for purchases")

    raw_items = payload.get("products")
    if not isinstance(raw_items, list) or not raw_items:
        raise _bad("At least one product is required")
    items = [_parse_line_item(i, raw) for i, raw in enumerate(raw_items)]

    status = payload.get("status") or None
    if status is not None and status not in TRANSACTION_STATUSES:
        raise _bad(f"Status must be one of {', '.join(TRANSACTION_STATUSES)}")

    initial_payment = _optional_amount(payload, "initialPayment") or 0.0

    return CreateTransactionRequest(
        type=tx_type,
        items=items,
        # Only the counterparty matching the type is kept
        customer_id=customer_id if tx_type == TRANSACTION_TYPE_SALE else None,
        vendor_id=vendor_id if tx_type == TRANSACTION_TYPE_PURCHASE else None,
        payment_method=payload.get("paymentMethod") or DEFAULT_PAYMENT_METHOD,
        notes=payload.get("notes"),
        subtotal=_optional_amount(payload, "subtotal"),
        cgst=_optional_amount(payload, "cgst"),
        sgst=_optional_amount(payload, "sgst"),
        discount=_optional_amount(payload, "discount"),
        total_amount=_optional_amount(payload, "totalAmount"),
        status=status,
        initial_payment=initial_payment,
    )


# =============================================================================
# BUSINESS RULES
# =============================================================================

def is_fully_paid(paid_amount: float, total_amount: float) -> bool:
    return paid_amount >= total_amount - PAYMENT_EPSILON


def resolve_status(paid_amount: float, total_amount: float, requested: str | None) -> str:
    """Fully paid always wins over the requested status."""
    if is_fully_paid(paid_amount, total_amount):
        return STATUS_COMPLETED
    return requested or STATUS_PENDING


@dataclass(frozen=True)
class ResolvedTotals:
    subtotal: float
    cgst: float
    sgst: float
    discount: float
    total_amount: float


def resolve_totals(
    request: CreateTransactionRequest,
    computed_subtotal: float,
    taxable_lines: list[TaxableLine],
    *,
    compute_tax_server_side: bool = False,
) -> ResolvedTotals:
    discount = request.discount or 0.0

    if compute_tax_server_side:
        gst = compute_gst(taxable_lines)
        return ResolvedTotals(
            subtotal=gst.subtotal,
            cgst=gst.cgst,
            sgst=gst.sgst,
            discount=discount,
            total_amount=round_money(gst.gross - discount),
        )

    subtotal = request.subtotal if request.subtotal is not None else round_money(computed_subtotal)
    cgst = request.cgst or 0.0
    sgst = request.sgst or 0.0
    if request.total_amount is not None:
        total_amount = request.total_amount
    else:
        total_amount = round_money(subtotal + sgst + cgst - discount)

    return ResolvedTotals(subtotal=subtotal, cgst=cgst, sgst=sgst, discount=discount, total_amount=total_amount)


def _resolve_counterparty(business_id: int, request: CreateTransactionRequest) -> Contact:
    is_sale = request.type == TRANSACTION_TYPE_SALE
    contact_type = CONTACT_TYPE_CUSTOMER if is_sale else CONTACT_TYPE_VENDOR

    contact = (
        db.session.query(Contact)
        .filter(
            Contact.id == request.counterparty_id,
            Contact.business_id == business_id,
            Contact.type == contact_type,
            Contact.is_active.is_(True),
        )
        .first()
    )
    if not contact:
        raise NotFoundError("Customer not found" if is_sale else "Vendor not found")
    return contact


def adjust_contact_balance(contact: Contact, delta: float, *, floor_at_zero: bool = False) -> None:
    """Atomic balance update; optionally clamps the result at zero."""
    new_balance = Contact.current_balance + delta
    if floor_at_zero:
        new_balance = func.max(new_balance, 0) if db.engine.dialect.name == "sqlite" else func.greatest(new_balance, 0)
    db.session.execute(
        update(Contact)
        .where(Contact.id == contact.id)
        .values(current_balance=new_balance)
        .execution_options(synchronize_session=False)
    )
    db.session.refresh(contact, ["current_balance"])


# =============================================================================
# CREATION
# =============================================================================

def create_transaction(
    business_id: int,
    request: CreateTransactionRequest,
    *,
    compute_tax_server_side: bool = False,
) -> Transaction:
    """
    Record a sale or purchase.

    Steps (all in one unit of work):
    1. Counterparty must be an active contact of the right type.
    2. Per line item, in order: product must be active; sales need enough
       stock; stock moves; line total = quantity x price.
    3. Totals: explicit totalAmount wins, otherwise
       subtotal + cgst + sgst - discount.
    4. Invoice number MMYYYY-NNNNN for the current month.
    5. Initial payment becomes the first payment row.
    6. Sale remainder (total - paid) is added to the customer's balance.

    Raises:
        NotFoundError: counterparty or product missing/inactive
        InsufficientStockError: sale quantity exceeds stock
        BadRequestError: initial payment larger than the total
    """
    def _op():
        contact = _resolve_counterparty(business_id, request)

        lines: list[TransactionLine] = []
        taxable: list[TaxableLine] = []
        computed_subtotal = 0.0

        for position, item in enumerate(request.items):
            product = get_business_product(business_id, item.product_id)
            apply_stock_movement(product, item.quantity, request.type)

            line_total = round_money(item.quantity * item.price)
            computed_subtotal += line_total

            lines.append(TransactionLine(
                product_id=product.id,
                position=position,
                product_name=product.name,
                hsn=product.hsn,
                unit_type=item.unit_type,
                quantity=item.quantity,
                price=item.price,
                total=line_total,
            ))
            taxable.append(TaxableLine(line_total=line_total, cgst_rate=product.cgst, sgst_rate=product.sgst))

        totals = resolve_totals(
            request,
            computed_subtotal,
            taxable,
            compute_tax_server_side=compute_tax_server_side,
        )

        paid_amount = request.initial_payment if request.initial_payment > 0 else 0.0
        if paid_amount > totals.total_amount + PAYMENT_EPSILON:
            raise BadRequestError(
                f"Initial payment ₹{paid_amount:.2f} exceeds total amount ₹{totals.total_amount:.2f}"
            )

        now = utcnow()
        tx = Transaction(
            business_id=business_id,
            type=request.type,
            subtotal=totals.subtotal,
            cgst=totals.cgst,
            sgst=totals.sgst,
            discount=totals.discount,
            total_amount=totals.total_amount,
            paid_amount=paid_amount,
            status=resolve_status(paid_amount, totals.total_amount, request.status),
            payment_method=request.payment_method,
            invoice_number=next_invoice_number(business_id=business_id, at=now),
            notes=request.notes,
            date=now,
        )
        if request.type == TRANSACTION_TYPE_SALE:
            tx.customer_id = contact.id
            tx.customer_name = contact.name
        else:
            tx.vendor_id = contact.id
            tx.vendor_name = contact.name

        tx.lines = lines
        if paid_amount > 0:
            tx.payments.append(TransactionPayment(
                amount=paid_amount,
                method=request.payment_method,
                note=INITIAL_PAYMENT_NOTE,
                date=now,
            ))

        db.session.add(tx)

        if request.type == TRANSACTION_TYPE_SALE:
            remainder = round_money(totals.total_amount - paid_amount)
            if remainder > 0:
                adjust_contact_balance(contact, remainder)

        db.session.commit()

        current_app.logger.info(
            "Recorded %s %s for business %s: total=%.2f paid=%.2f status=%s",
            tx.type, tx.invoice_number, business_id, tx.total_amount, tx.paid_amount, tx.status,
        )
        return tx

    return run_with_retry(_op)


# =============================================================================
# QUERIES
# =============================================================================

@dataclass
class TransactionFilters:
    type: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    contact_id: int | None = None
    customer_id: int | None = None
    vendor_id: int | None = None
    status: str | None = None
    is_printed: bool | None = None


def _parse_date_arg(args, key: str, *, end: bool = False) -> datetime | None:
    raw = args.get(key)
    if not raw:
        return None
    try:
        return parse_range_bound(raw, end=end)
    except ValueError:
        raise _bad(f"{key} must be an ISO-8601 date")


def parse_filters(args) -> TransactionFilters:
    """
    Build filters from query-string args.

    Unknown type/status values are ignored rather than rejected; a non-empty
    isPrinted other than "true" means False.
    """
    filters = TransactionFilters()

    tx_type = (args.get("type") or "").lower()
    if tx_type in TRANSACTION_TYPES:
        filters.type = tx_type

    filters.start = _parse_date_arg(args, "startDate")
    filters.end = _parse_date_arg(args, "endDate", end=True)
    filters.contact_id = _optional_id(args, "contactId")
    filters.customer_id = _optional_id(args, "customerId")
    filters.vendor_id = _optional_id(args, "vendorId")

    status = args.get("status")
    if status in TRANSACTION_STATUSES:
        filters.status = status

    is_printed = args.get("isPrinted")
    if is_printed is not None and is_printed != "":
        filters.is_printed = is_printed == "true"

    return filters


def _date_range(query, start: datetime | None, end: datetime | None):
    if start:
        query = query.filter(Transaction.date >= start)
    if end:
        query = query.filter(Transaction.date <= end)
    return query


def _filtered_query(business_id: int, filters: TransactionFilters):
    query = db.session.query(Transaction).filter(Transaction.business_id == business_id)

    if filters.type:
        query = query.filter(Transaction.type == filters.type)
    query = _date_range(query, filters.start, filters.end)
    if filters.contact_id is not None:
        query = query.filter(or_(
            Transaction.customer_id == filters.contact_id,
            Transaction.vendor_id == filters.contact_id,
        ))
    if filters.customer_id is not None:
        query = query.filter(Transaction.customer_id == filters.customer_id)
    if filters.vendor_id is not None:
        query = query.filter(Transaction.vendor_id == filters.vendor_id)
    if filters.status:
        query = query.filter(Transaction.status == filters.status)
    if filters.is_printed is not None:
        query = query.filter(Transaction.is_printed.is_(filters.is_printed))
    return query


def list_transactions(
    business_id: int,
    filters: TransactionFilters,
    *,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Transaction], int]:
    """Newest first. Returns (page items, total matching)."""
    query = _filtered_query(business_id, filters)
    total = query.count()
    items = (
        query.order_by(Transaction.date.desc(), Transaction.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def get_transaction(business_id: int, transaction_id: int, *, lock: bool = False) -> Transaction:
    query = db.session.query(Transaction).filter(
        Transaction.id == transaction_id,
        Transaction.business_id == business_id,
    )
    if lock:
        query = lock_for_update(query)
    tx = query.first()
    if not tx:
        raise NotFoundError("Transaction not found")
    return tx


def _empty_group() -> dict:
    return {"totalAmount": 0, "transactionCount": 0, "averageAmount": 0}


def summarize_transactions(
    business_id: int,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
) -> dict:
    """Totals, counts and averages per type, plus profit/loss (sales - purchases)."""
    query = db.session.query(
        Transaction.type,
        func.coalesce(func.sum(Transaction.total_amount), 0).label("total_amount"),
        func.count(Transaction.id).label("transaction_count"),
        func.avg(Transaction.total_amount).label("average_amount"),
    ).filter(Transaction.business_id == business_id)
    query = _date_range(query, start, end)

    summary = {"sales": _empty_group(), "purchases": _empty_group()}
    for tx_type, total_amount, count, average in query.group_by(Transaction.type).all():
        key = "sales" if tx_type == TRANSACTION_TYPE_SALE else "purchases"
        summary[key] = {
            "totalAmount": round_money(total_amount or 0),
            "transactionCount": count,
            "averageAmount": round_money(average or 0),
        }

    summary["profitLoss"] = round_money(summary["sales"]["totalAmount"] - summary["purchases"]["totalAmount"])
    return summary


# =============================================================================
# UPDATES
# =============================================================================

def update_status(business_id: int, transaction_id: int, status) -> Transaction:
    """Set the status field; nothing is recomputed."""
    if status not in TRANSACTION_STATUSES:
        raise _bad(f"Status must be one of {', '.join(TRANSACTION_STATUSES)}")

    def _op():
        tx = get_transaction(business_id, transaction_id, lock=True)
        tx.status = status
        db.session.commit()
        return tx

    return run_with_retry(_op)


def update_print_status(business_id: int, transaction_id: int, is_printed=None) -> Transaction:
    """Set isPrinted; a missing value means printed."""
    flag = True if is_printed is None else coerce_bool(is_printed)

    def _op():
        tx = get_transaction(business_id, transaction_id, lock=True)
        tx.is_printed = flag
        db.session.commit()
        return tx

    return run_with_retry(_op)

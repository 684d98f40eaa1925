# Overview: Service-layer operations for reporting; read-only aggregates over products, contacts and transactions.

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import func

from app.extensions import db
from app.models import Contact, Product, Transaction
from app.models.contacts import CONTACT_TYPE_CUSTOMER, CONTACT_TYPE_VENDOR
from app.models.transactions import STATUS_PENDING
from app.time_utils import month_bounds, to_utc_z, utcnow
from .contacts_service import get_contact
from .inventory_service import count_low_stock
from .tax_service import round_money
from .transaction_service import summarize_transactions


def _count_contacts(business_id: int, contact_type: str) -> int:
    return (
        db.session.query(func.count(Contact.id))
        .filter(
            Contact.business_id == business_id,
            Contact.type == contact_type,
            Contact.is_active.is_(True),
        )
        .scalar()
    ) or 0


def dashboard(business_id: int, *, now: datetime | None = None) -> dict:
    """Headline counters plus this month's sales/purchase summary."""
    moment = now or utcnow()
    month_start, next_month = month_bounds(moment)

    product_count = (
        db.session.query(func.count(Product.id))
        .filter(Product.business_id == business_id, Product.is_active.is_(True))
        .scalar()
    ) or 0

    receivable = (
        db.session.query(func.coalesce(func.sum(Contact.current_balance), 0))
        .filter(
            Contact.business_id == business_id,
            Contact.type == CONTACT_TYPE_CUSTOMER,
            Contact.current_balance > 0,
        )
        .scalar()
    )

    pending_count = (
        db.session.query(func.count(Transaction.id))
        .filter(Transaction.business_id == business_id, Transaction.status == STATUS_PENDING)
        .scalar()
    ) or 0

    return {
        "products": {
            "total": product_count,
            "lowStock": count_low_stock(business_id),
        },
        "contacts": {
            "customers": _count_contacts(business_id, CONTACT_TYPE_CUSTOMER),
            "vendors": _count_contacts(business_id, CONTACT_TYPE_VENDOR),
        },
        "totalReceivable": round_money(receivable or 0),
        "pendingTransactions": pending_count,
        "currentMonth": {
            "start": to_utc_z(month_start),
            "summary": summarize_transactions(
                business_id,
                start=month_start,
                end=next_month - timedelta(microseconds=1),
            ),
        },
    }


def contact_statement(
    business_id: int,
    contact_id: int,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
) -> dict:
    """All transactions of one contact, newest first, with running totals."""
    contact = get_contact(business_id, contact_id)

    column = Transaction.customer_id if contact.type == CONTACT_TYPE_CUSTOMER else Transaction.vendor_id
    query = db.session.query(Transaction).filter(
        Transaction.business_id == business_id,
        column == contact.id,
    )
    if start:
        query = query.filter(Transaction.date >= start)
    if end:
        query = query.filter(Transaction.date <= end)
    transactions = query.order_by(Transaction.date.desc(), Transaction.id.desc()).all()

    total_amount = round_money(sum(tx.total_amount or 0 for tx in transactions))
    total_paid = round_money(sum(tx.paid_amount or 0 for tx in transactions))

    return {
        "contact": contact.to_dict(),
        "transactions": [tx.to_dict() for tx in transactions],
        "totals": {
            "transactionCount": len(transactions),
            "totalAmount": total_amount,
            "paidAmount": total_paid,
            "outstanding": round_money(total_amount - total_paid),
        },
    }

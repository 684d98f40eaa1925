# Overview: Invoice number allocation per business and calendar month.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Transaction
from app.time_utils import month_bounds, utcnow

INVOICE_SEQUENCE_PAD = 5


def format_invoice_number(moment: datetime, sequence: int) -> str:
    return f"{moment.month:02d}{moment.year}-{sequence:0{INVOICE_SEQUENCE_PAD}d}"


def next_invoice_number(*, business_id: int, at: datetime | None = None) -> str:
    """
    Allocate the next invoice number for a business: MMYYYY-NNNNN.

    NNNNN is one more than the number of the business's transactions dated
    within the same calendar month, so numbering restarts at 00001 every
    month. Must run inside the creating unit of work; the unique constraint
    on (business_id, invoice_number) rejects a concurrent duplicate.
    """
    moment = at or utcnow()
    start, next_start = month_bounds(moment)

    count = (
        db.session.query(func.count(Transaction.id))
        .filter(
            Transaction.business_id == business_id,
            Transaction.date >= start,
            Transaction.date < next_start,
        )
        .scalar()
    ) or 0

    return format_invoice_number(moment, count + 1)

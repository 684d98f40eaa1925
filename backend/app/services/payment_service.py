# Overview: Service-layer operations for payment; encapsulates business logic and database work.

"""
Payment Processing Service

Records split and partial payments against an existing sale or purchase.

DESIGN PRINCIPLES:
- Payments are rows owned by the transaction (many-to-one)
- paid_amount is the running sum of payment rows
- No overpayment: amount may not exceed the remaining balance (+0.01)
- A transaction becomes "completed" once paid covers the total
- Sale payments reduce the customer's balance, never below zero
"""

from __future__ import annotations

from flask import current_app

from ..errors import BadRequestError
from ..extensions import db
from ..models import Transaction, TransactionPayment
from ..models.transactions import STATUS_COMPLETED, TRANSACTION_TYPE_SALE
from ..validation import ValidationError, coerce_number
from app.time_utils import parse_iso_datetime, utcnow
from .concurrency import run_with_retry
from .tax_service import round_money
from .transaction_service import (
    DEFAULT_PAYMENT_METHOD,
    PAYMENT_EPSILON,
    adjust_contact_balance,
    get_transaction,
    is_fully_paid,
)


def _parse_amount(amount) -> float:
    try:
        value = coerce_number(amount, "amount")
    except ValidationError:
        raise BadRequestError("Invalid payment amount")
    value = round_money(value)
    if value <= 0:
        raise BadRequestError("Invalid payment amount")
    return value


def _parse_payment_date(value):
    if value is None or value == "":
        return utcnow()
    if not isinstance(value, str):
        raise BadRequestError("Payment date must be an ISO-8601 string")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise BadRequestError("Payment date must be an ISO-8601 string")


def add_payment(
    business_id: int,
    transaction_id: int,
    amount,
    method: str | None = None,
    note: str | None = None,
    date=None,
) -> Transaction:
    """
    Add a payment to a transaction.

    Args:
        business_id: Caller's business
        transaction_id: Sale or purchase being paid
        amount: Positive number (numeric strings accepted)
        method: Payment method, default "cash"
        note: Free text (optional)
        date: ISO-8601 string (optional, default now)

    Returns:
        The updated Transaction

    Raises:
        NotFoundError: transaction missing or in another business
        BadRequestError: amount invalid or above the remaining balance
    """
    payment_amount = _parse_amount(amount)
    paid_at = _parse_payment_date(date)

    def _op():
        tx = get_transaction(business_id, transaction_id, lock=True)

        remaining = (tx.total_amount or 0) - (tx.paid_amount or 0)
        if payment_amount > remaining + PAYMENT_EPSILON:
            raise BadRequestError(
                f"Payment amount ₹{payment_amount:g} exceeds remaining balance ₹{remaining:.2f}",
                details={"remainingBalance": round_money(remaining)},
            )

        tx.payments.append(TransactionPayment(
            amount=payment_amount,
            method=method or DEFAULT_PAYMENT_METHOD,
            note=note,
            date=paid_at,
        ))
        tx.paid_amount = round_money((tx.paid_amount or 0) + payment_amount)

        if is_fully_paid(tx.paid_amount, tx.total_amount):
            tx.status = STATUS_COMPLETED

        if tx.type == TRANSACTION_TYPE_SALE and tx.customer is not None:
            adjust_contact_balance(tx.customer, -payment_amount, floor_at_zero=True)

        db.session.commit()

        current_app.logger.info(
            "Payment of %.2f recorded on %s (business %s): paid=%.2f/%.2f status=%s",
            payment_amount, tx.invoice_number, business_id, tx.paid_amount, tx.total_amount, tx.status,
        )
        return tx

    return run_with_retry(_op)

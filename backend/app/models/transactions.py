from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z, utcnow
from .inventory import Money

TRANSACTION_TYPE_SALE = "sale"
TRANSACTION_TYPE_PURCHASE = "purchase"
TRANSACTION_TYPES = (TRANSACTION_TYPE_SALE, TRANSACTION_TYPE_PURCHASE)

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
TRANSACTION_STATUSES = (STATUS_PENDING, STATUS_COMPLETED, STATUS_CANCELLED)

UNIT_SINGLE = "single"
UNIT_CASE = "case"
UNIT_TYPES = (UNIT_SINGLE, UNIT_CASE)


class Transaction(db.Model):
    """
    Sale or purchase document.

    Line items and the tax breakdown are fixed at creation. Afterwards only
    the status, the print flag and the payment ledger change.

    INVARIANTS:
    - total_amount = subtotal + cgst + sgst - discount (when computed)
    - paid_amount = sum(payments.amount)
    - status is "completed" once paid_amount >= total_amount - 0.01
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.UniqueConstraint("business_id", "invoice_number", name="uq_transactions_business_invoice"),
        # Composite index for business-scoped list queries by type and date
        db.Index("ix_transactions_business_type_date", "business_id", "type", "date"),
        db.Index("ix_transactions_business_status", "business_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False)

    # Counterparty: customer for sales, vendor for purchases
    customer_id = db.Column(db.Integer, db.ForeignKey("contacts.id"), nullable=True, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("contacts.id"), nullable=True, index=True)
    customer_name = db.Column(db.String(255), nullable=True)
    vendor_name = db.Column(db.String(255), nullable=True)

    subtotal = db.Column(Money, nullable=False, default=0)
    cgst = db.Column(Money, nullable=False, default=0)
    sgst = db.Column(Money, nullable=False, default=0)
    discount = db.Column(Money, nullable=False, default=0)
    total_amount = db.Column(Money, nullable=False, default=0)
    paid_amount = db.Column(Money, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING)
    payment_method = db.Column(db.String(32), nullable=False, default="cash")
    invoice_number = db.Column(db.String(32), nullable=False)
    is_printed = db.Column(db.Boolean, nullable=False, default=False)
    notes = db.Column(db.Text, nullable=True)

    date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    customer = db.relationship("Contact", foreign_keys=[customer_id])
    vendor = db.relationship("Contact", foreign_keys=[vendor_id])
    lines = db.relationship(
        "TransactionLine",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionLine.position",
        lazy=True,
    )
    payments = db.relationship(
        "TransactionPayment",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionPayment.id",
        lazy=True,
    )

    @property
    def counterparty_id(self) -> int | None:
        return self.customer_id if self.type == TRANSACTION_TYPE_SALE else self.vendor_id

    @property
    def remaining_amount(self) -> float:
        return round((self.total_amount or 0) - (self.paid_amount or 0), 2)

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} type={self.type} invoice={self.invoice_number!r}>"

    def to_dict(self, include_contact_address: bool = False) -> dict:
        return {
            "id": self.id,
            "businessId": self.business_id,
            "type": self.type,
            "customerId": self.customer_id,
            "customerName": self.customer_name,
            "customer": self.customer.to_summary(include_contact_address) if self.customer else None,
            "vendorId": self.vendor_id,
            "vendorName": self.vendor_name,
            "vendor": self.vendor.to_summary(include_contact_address) if self.vendor else None,
            "products": [line.to_dict() for line in self.lines],
            "subtotal": self.subtotal,
            "cgst": self.cgst,
            "sgst": self.sgst,
            "discount": self.discount,
            "totalAmount": self.total_amount,
            "paidAmount": self.paid_amount,
            "remainingAmount": self.remaining_amount,
            "payments": [p.to_dict() for p in self.payments],
            "status": self.status,
            "paymentMethod": self.payment_method,
            "invoiceNumber": self.invoice_number,
            "isPrinted": self.is_printed,
            "notes": self.notes,
            "date": to_utc_z(self.date),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class TransactionLine(db.Model):
    """One product entry of a transaction, with a name/HSN snapshot."""
    __tablename__ = "transaction_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_name = db.Column(db.String(255), nullable=False)
    hsn = db.Column(db.String(16), nullable=True)
    unit_type = db.Column(db.String(16), nullable=False, default=UNIT_SINGLE)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(Money, nullable=False)
    total = db.Column(Money, nullable=False)

    transaction = db.relationship("Transaction", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "product": self.product.to_summary() if self.product else None,
            "productName": self.product_name,
            "HSN": self.hsn,
            "unitType": self.unit_type,
            "quantity": self.quantity,
            "price": self.price,
            "total": self.total,
        }


class TransactionPayment(db.Model):
    """
    Payment recorded against a transaction.

    Split and partial payments are separate rows; the first row of a
    transaction created with an initial payment carries note "Initial Payment".
    """
    __tablename__ = "transaction_payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)

    amount = db.Column(Money, nullable=False)
    method = db.Column(db.String(32), nullable=False, default="cash")
    note = db.Column(db.String(255), nullable=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    transaction = db.relationship("Transaction", back_populates="payments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount": self.amount,
            "method": self.method,
            "note": self.note,
            "date": to_utc_z(self.date),
        }

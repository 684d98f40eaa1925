# Overview: Pytest coverage for the sale/purchase workflow at the service layer.

"""
Transaction Workflow Tests

Covers:
1. Stock conservation: sales subtract, purchases add, never below zero
2. Totals: computed vs caller-supplied figures, optional server-side GST
3. Status resolution and customer balance changes
4. All-or-nothing creation (a failing line item rolls back earlier ones)
5. Invoice numbering per business and month
"""

from datetime import datetime

import pytest
from sqlalchemy import update
from sqlalchemy.orm.attributes import set_committed_value

from app.errors import BadRequestError, InsufficientStockError, NotFoundError
from app.models import Product, Transaction
from app.services import invoice_service, transaction_service
from app.services.transaction_service import (
    create_transaction,
    parse_create_request,
    resolve_status,
)
from conftest import make_contact, make_product


def _sale(customer, *items, **extra):
    payload = {
        "type": "sale",
        "customerId": customer.id,
        "products": [
            {"productId": p.id, "quantity": q, "price": price} for p, q, price in items
        ],
    }
    payload.update(extra)
    return parse_create_request(payload)


def _purchase(vendor, *items, **extra):
    payload = {
        "type": "purchase",
        "vendorId": vendor.id,
        "products": [
            {"productId": p.id, "quantity": q, "price": price} for p, q, price in items
        ],
    }
    payload.update(extra)
    return parse_create_request(payload)


class TestParseCreateRequest:
    """Shape validation happens before any database access."""

    def test_rejects_unknown_type(self):
        with pytest.raises(BadRequestError, match="Transaction type must be"):
            parse_create_request({"type": "refund", "products": []})

    def test_sale_requires_customer(self):
        with pytest.raises(BadRequestError, match="Customer ID is required for sales"):
            parse_create_request({"type": "sale", "products": [{"productId": 1, "quantity": 1, "price": 1}]})

    def test_purchase_requires_vendor(self):
        with pytest.raises(BadRequestError, match="Vendor ID is required for purchases"):
            parse_create_request({"type": "purchase", "customerId": 3, "products": [{"productId": 1, "quantity": 1, "price": 1}]})

    def test_requires_products(self):
        with pytest.raises(BadRequestError, match="At least one product is required"):
            parse_create_request({"type": "sale", "customerId": 1, "products": []})

    @pytest.mark.parametrize("quantity", [0, -2, 1.5, "abc"])
    def test_rejects_bad_quantity(self, quantity):
        with pytest.raises(BadRequestError):
            parse_create_request({
                "type": "sale",
                "customerId": 1,
                "products": [{"productId": 1, "quantity": quantity, "price": 10}],
            })

    def test_rejects_negative_initial_payment(self):
        with pytest.raises(BadRequestError):
            parse_create_request({
                "type": "sale",
                "customerId": 1,
                "products": [{"productId": 1, "quantity": 1, "price": 10}],
                "initialPayment": -5,
            })

    def test_keeps_only_matching_counterparty(self):
        request = parse_create_request({
            "type": "sale",
            "customerId": 1,
            "vendorId": 2,
            "products": [{"productId": 1, "quantity": 1, "price": 10}],
        })
        assert request.customer_id == 1
        assert request.vendor_id is None


class TestResolveStatus:

    def test_fully_paid_is_completed_regardless_of_request(self):
        assert resolve_status(100, 100, "cancelled") == "completed"

    def test_epsilon_tolerance(self):
        assert resolve_status(99.995, 100, None) == "completed"
        assert resolve_status(99.98, 100, None) == "pending"

    def test_requested_status_kept_when_unpaid(self):
        assert resolve_status(0, 100, "cancelled") == "cancelled"
        assert resolve_status(0, 100, None) == "pending"


class TestCreateSale:

    def test_sale_decrements_stock_and_records_lines(self, db_session, business_a, customer, product):
        tx = create_transaction(business_a.id, _sale(customer, (product, 4, 100)))

        db_session.refresh(product)
        assert product.stock == 6
        assert tx.type == "sale"
        assert tx.customer_name == "Asha Traders"
        assert len(tx.lines) == 1
        assert tx.lines[0].product_name == product.name
        assert tx.lines[0].total == 400
        assert tx.subtotal == 400
        assert tx.total_amount == 400

    def test_totals_include_tax_minus_discount(self, db_session, business_a, customer, product):
        tx = create_transaction(
            business_a.id,
            _sale(customer, (product, 2, 100), cgst=9, sgst=9, discount=8),
        )
        assert tx.subtotal == 200
        assert tx.total_amount == 210

    def test_explicit_total_amount_wins(self, db_session, business_a, customer, product):
        tx = create_transaction(
            business_a.id,
            _sale(customer, (product, 2, 100), cgst=9, sgst=9, totalAmount=150),
        )
        assert tx.total_amount == 150

    def test_explicit_zero_total_is_honoured(self, db_session, business_a, customer, product):
        tx = create_transaction(business_a.id, _sale(customer, (product, 1, 100), totalAmount=0))
        assert tx.total_amount == 0
        assert tx.status == "completed"

    def test_server_side_gst(self, db_session, business_a, customer, product):
        tx = create_transaction(
            business_a.id,
            _sale(customer, (product, 4, 100), cgst=999, sgst=999),
            compute_tax_server_side=True,
        )
        assert tx.subtotal == 400
        assert tx.cgst == 10
        assert tx.sgst == 10
        assert tx.total_amount == 420

    def test_unpaid_remainder_goes_to_customer_balance(self, db_session, business_a, customer, product):
        tx = create_transaction(business_a.id, _sale(customer, (product, 4, 100), initialPayment=100))

        db_session.refresh(customer)
        assert tx.paid_amount == 100
        assert tx.status == "pending"
        assert customer.current_balance == 300
        assert len(tx.payments) == 1
        assert tx.payments[0].note == "Initial Payment"

    def test_fully_paid_sale_is_completed(self, db_session, business_a, customer, product):
        tx = create_transaction(business_a.id, _sale(customer, (product, 1, 100), initialPayment=100))

        db_session.refresh(customer)
        assert tx.status == "completed"
        assert customer.current_balance == 0

    def test_initial_payment_above_total_rejected(self, db_session, business_a, customer, product):
        with pytest.raises(BadRequestError, match="exceeds total amount"):
            create_transaction(business_a.id, _sale(customer, (product, 1, 100), initialPayment=150))

        db_session.refresh(product)
        assert product.stock == 10

    def test_insufficient_stock(self, db_session, business_a, customer, product):
        with pytest.raises(InsufficientStockError) as exc:
            create_transaction(business_a.id, _sale(customer, (product, 11, 100)))

        assert "Available: 10, Requested: 11" in exc.value.message
        assert exc.value.details["available"] == 10
        assert db_session.query(Transaction).count() == 0

    def test_concurrent_sale_cannot_oversell(self, db_session, business_a, customer, product):
        """Stock sold elsewhere after our read is caught by the conditional decrement."""
        db_session.execute(update(Product).where(Product.id == product.id).values(stock=2))
        db_session.commit()
        db_session.refresh(product)
        # In-session copy still shows the old stock
        set_committed_value(product, "stock", 10)

        with pytest.raises(InsufficientStockError) as exc:
            create_transaction(business_a.id, _sale(customer, (product, 5, 100)))

        assert exc.value.details["available"] == 2
        db_session.refresh(product)
        db_session.refresh(customer)
        assert product.stock == 2
        assert customer.current_balance == 0
        assert db_session.query(Transaction).count() == 0

    def test_failure_on_later_item_rolls_back_earlier_stock(
        self, db_session, business_a, customer, product, second_product
    ):
        with pytest.raises(InsufficientStockError):
            create_transaction(
                business_a.id,
                _sale(customer, (product, 4, 100), (second_product, 5, 180)),
            )

        db_session.refresh(product)
        db_session.refresh(second_product)
        db_session.refresh(customer)
        assert product.stock == 10
        assert second_product.stock == 3
        assert customer.current_balance == 0
        assert db_session.query(Transaction).count() == 0

    def test_inactive_product_not_found(self, db_session, business_a, customer, product):
        product.is_active = False
        db_session.commit()

        with pytest.raises(NotFoundError, match=f"Product with ID {product.id} not found"):
            create_transaction(business_a.id, _sale(customer, (product, 1, 100)))

    def test_vendor_cannot_be_used_as_customer(self, db_session, business_a, vendor, product):
        with pytest.raises(NotFoundError, match="Customer not found"):
            create_transaction(business_a.id, _sale(vendor, (product, 1, 100)))

    def test_product_of_other_business_not_found(self, db_session, business_a, business_b, customer):
        foreign = make_product(db_session, business_b, name="Foreign Product")
        with pytest.raises(NotFoundError):
            create_transaction(business_a.id, _sale(customer, (foreign, 1, 100)))

        db_session.refresh(foreign)
        assert foreign.stock == 10


class TestCreatePurchase:

    def test_purchase_increments_stock(self, db_session, business_a, vendor, product):
        tx = create_transaction(business_a.id, _purchase(vendor, (product, 5, 80)))

        db_session.refresh(product)
        assert product.stock == 15
        assert tx.vendor_name == "Metro Wholesale"
        assert tx.customer_id is None

    def test_purchase_on_credit_leaves_vendor_balance(self, db_session, business_a, vendor, product):
        create_transaction(business_a.id, _purchase(vendor, (product, 5, 80)))

        db_session.refresh(vendor)
        assert vendor.current_balance == 0


class TestInvoiceNumbers:

    def test_sequential_within_month(self, db_session, business_a, customer, product):
        first = create_transaction(business_a.id, _sale(customer, (product, 1, 100)))
        second = create_transaction(business_a.id, _sale(customer, (product, 1, 100)))

        month_prefix = first.date.strftime("%m%Y")
        assert first.invoice_number == f"{month_prefix}-00001"
        assert second.invoice_number == f"{month_prefix}-00002"

    def test_numbering_is_per_business(self, db_session, business_a, business_b, customer, product):
        create_transaction(business_a.id, _sale(customer, (product, 1, 100)))

        other_customer = make_contact(db_session, business_b, "customer", "Ravi Kumar")
        other_product = make_product(db_session, business_b, name="Tea 250g")
        tx = create_transaction(business_b.id, _sale(other_customer, (other_product, 1, 50)))

        assert tx.invoice_number.endswith("-00001")

    def test_restarts_each_month(self, db_session, business_a, customer, product, monkeypatch):
        monkeypatch.setattr(transaction_service, "utcnow", lambda: datetime(2024, 1, 31, 23, 0))
        january = create_transaction(business_a.id, _sale(customer, (product, 1, 100)))

        monkeypatch.setattr(transaction_service, "utcnow", lambda: datetime(2024, 2, 1, 9, 30))
        february = create_transaction(business_a.id, _sale(customer, (product, 1, 100)))

        assert january.invoice_number == "012024-00001"
        assert february.invoice_number == "022024-00001"

    def test_format(self):
        assert invoice_service.format_invoice_number(datetime(2024, 3, 5), 42) == "032024-00042"


class TestSummary:

    def test_summary_by_type(self, db_session, business_a, customer, vendor, product):
        create_transaction(business_a.id, _sale(customer, (product, 2, 100)))
        create_transaction(business_a.id, _sale(customer, (product, 1, 100)))
        create_transaction(business_a.id, _purchase(vendor, (product, 5, 50)))

        summary = transaction_service.summarize_transactions(business_a.id)

        assert summary["sales"] == {"totalAmount": 300, "transactionCount": 2, "averageAmount": 150}
        assert summary["purchases"]["totalAmount"] == 250
        assert summary["profitLoss"] == 50

    def test_empty_summary(self, db_session, business_a):
        summary = transaction_service.summarize_transactions(business_a.id)
        assert summary["sales"]["transactionCount"] == 0
        assert summary["profitLoss"] == 0


def test_stock_never_negative_in_database(db_session, business_a):
    """The check constraint backs the conditional decrement."""
    product = make_product(db_session, business_a, name="Constraint Check", stock=0)
    product.stock = -1
    with pytest.raises(Exception):
        db_session.commit()
    db_session.rollback()

    assert db_session.get(Product, product.id).stock == 0

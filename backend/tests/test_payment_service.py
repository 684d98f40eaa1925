# Overview: Pytest coverage for partial and split payments.

"""
Payment Tests

- paid amount never exceeds total (+0.01 tolerance)
- full payment completes the transaction
- sale payments reduce the customer's balance, floored at zero
"""

import pytest

from app.errors import BadRequestError, NotFoundError
from app.services.payment_service import add_payment
from app.services.transaction_service import create_transaction, parse_create_request


@pytest.fixture
def credit_sale(db_session, business_a, customer, product):
    """Sale of 4 x 100 with 100 paid up front; 300 outstanding."""
    request = parse_create_request({
        "type": "sale",
        "customerId": customer.id,
        "products": [{"productId": product.id, "quantity": 4, "price": 100}],
        "initialPayment": 100,
    })
    return create_transaction(business_a.id, request)


class TestAddPayment:

    def test_partial_payment(self, db_session, business_a, customer, credit_sale):
        tx = add_payment(business_a.id, credit_sale.id, 120, method="upi", note="second part")

        db_session.refresh(customer)
        assert tx.paid_amount == 220
        assert tx.remaining_amount == 180
        assert tx.status == "pending"
        assert customer.current_balance == 180
        assert [p.amount for p in tx.payments] == [100, 120]
        assert tx.payments[-1].method == "upi"

    def test_final_payment_completes(self, db_session, business_a, customer, credit_sale):
        add_payment(business_a.id, credit_sale.id, 200)
        tx = add_payment(business_a.id, credit_sale.id, "100")

        db_session.refresh(customer)
        assert tx.status == "completed"
        assert tx.paid_amount == 400
        assert customer.current_balance == 0

    def test_overpayment_rejected(self, db_session, business_a, credit_sale):
        with pytest.raises(BadRequestError) as exc:
            add_payment(business_a.id, credit_sale.id, 300.5)

        assert "exceeds remaining balance ₹300.00" in exc.value.message
        assert exc.value.details == {"remainingBalance": 300}

        db_session.refresh(credit_sale)
        assert credit_sale.paid_amount == 100
        assert len(credit_sale.payments) == 1

    def test_tolerance_allows_rounding_overshoot(self, db_session, business_a, credit_sale):
        tx = add_payment(business_a.id, credit_sale.id, 300.01)
        assert tx.status == "completed"

    @pytest.mark.parametrize("amount", [0, -10, "abc", None, True])
    def test_invalid_amount(self, db_session, business_a, credit_sale, amount):
        with pytest.raises(BadRequestError, match="Invalid payment amount"):
            add_payment(business_a.id, credit_sale.id, amount)

    def test_sub_cent_amount_rejected(self, db_session, business_a, credit_sale):
        with pytest.raises(BadRequestError, match="Invalid payment amount"):
            add_payment(business_a.id, credit_sale.id, 0.004)

    def test_amounts_rounded_to_cents(self, db_session, business_a, customer, product):
        request = parse_create_request({
            "type": "sale",
            "customerId": customer.id,
            "products": [{"productId": product.id, "quantity": 1, "price": 100}],
        })
        sale = create_transaction(business_a.id, request)

        for _ in range(3):
            tx = add_payment(business_a.id, sale.id, 33.333)

        assert [p.amount for p in tx.payments] == [33.33, 33.33, 33.33]
        assert tx.paid_amount == 99.99
        assert tx.paid_amount == round(sum(p.amount for p in tx.payments), 2)

    def test_balance_floored_at_zero(self, db_session, business_a, customer, credit_sale):
        customer.current_balance = 50
        db_session.commit()

        add_payment(business_a.id, credit_sale.id, 300)

        db_session.refresh(customer)
        assert customer.current_balance == 0

    def test_purchase_payment_leaves_vendor_balance(self, db_session, business_a, vendor, product):
        request = parse_create_request({
            "type": "purchase",
            "vendorId": vendor.id,
            "products": [{"productId": product.id, "quantity": 2, "price": 50}],
        })
        purchase = create_transaction(business_a.id, request)

        tx = add_payment(business_a.id, purchase.id, 100)

        db_session.refresh(vendor)
        assert tx.status == "completed"
        assert vendor.current_balance == 0

    def test_other_business_cannot_pay(self, db_session, business_b, credit_sale):
        with pytest.raises(NotFoundError, match="Transaction not found"):
            add_payment(business_b.id, credit_sale.id, 10)

    def test_payment_date_parsed(self, db_session, business_a, credit_sale):
        tx = add_payment(business_a.id, credit_sale.id, 10, date="2024-03-05T10:00:00Z")
        assert tx.payments[-1].date.strftime("%Y-%m-%d %H:%M") == "2024-03-05 10:00"

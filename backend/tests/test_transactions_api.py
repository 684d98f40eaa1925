# Overview: Pytest coverage for the transactions HTTP API.

"""
Transactions API Tests

Exercises the JSON contract: envelope, camelCase fields, status codes,
filters and pagination.
"""

from app.services import transaction_service
from conftest import business_headers


def _create_sale(client, business, customer, product, quantity=2, **extra):
    body = {
        "type": "sale",
        "customerId": customer.id,
        "products": [{"productId": product.id, "quantity": quantity, "price": 100, "unitType": "single"}],
        "paymentMethod": "cash",
    }
    body.update(extra)
    return client.post("/api/transactions", json=body, headers=business_headers(business))


class TestCreateTransactionApi:

    def test_create_sale(self, client, db_session, business_a, customer, product):
        resp = _create_sale(client, business_a, customer, product, cgst=5, sgst=5, initialPayment=50)

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["success"] is True
        assert body["message"] == "Sale recorded successfully"

        tx = body["data"]["transaction"]
        assert tx["type"] == "sale"
        assert tx["customerId"] == customer.id
        assert tx["customerName"] == "Asha Traders"
        assert tx["subtotal"] == 200
        assert tx["totalAmount"] == 210
        assert tx["paidAmount"] == 50
        assert tx["remainingAmount"] == 160
        assert tx["status"] == "pending"
        assert tx["isPrinted"] is False
        assert tx["invoiceNumber"].endswith("-00001")
        assert tx["date"].endswith("Z")
        assert tx["products"][0]["quantity"] == 2
        assert tx["payments"][0]["note"] == "Initial Payment"

    def test_create_purchase_message(self, client, db_session, business_a, vendor, product):
        resp = client.post(
            "/api/transactions",
            json={
                "type": "purchase",
                "vendorId": vendor.id,
                "products": [{"productId": product.id, "quantity": 3, "price": 70}],
            },
            headers=business_headers(business_a),
        )
        assert resp.status_code == 201
        assert resp.get_json()["message"] == "Purchase recorded successfully"

    def test_insufficient_stock_is_400_with_details(self, client, db_session, business_a, customer, product):
        resp = _create_sale(client, business_a, customer, product, quantity=50)

        assert resp.status_code == 400
        body = resp.get_json()
        assert body["success"] is False
        assert body["message"].startswith("Insufficient stock for product")
        assert body["details"]["requested"] == 50

    def test_missing_customer_is_400(self, client, db_session, business_a, product):
        resp = client.post(
            "/api/transactions",
            json={"type": "sale", "products": [{"productId": product.id, "quantity": 1, "price": 1}]},
            headers=business_headers(business_a),
        )
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Customer ID is required for sales"

    def test_unknown_customer_is_404(self, client, db_session, business_a, product):
        resp = client.post(
            "/api/transactions",
            json={"type": "sale", "customerId": 9999, "products": [{"productId": product.id, "quantity": 1, "price": 1}]},
            headers=business_headers(business_a),
        )
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "Customer not found"

    def test_business_header_required(self, client, db_session, customer, product):
        resp = client.post("/api/transactions", json={})
        assert resp.status_code == 401
        assert resp.get_json()["message"] == "Business context required"

    def test_unknown_business_rejected(self, client, db_session):
        resp = client.get("/api/transactions", headers={"X-Business-Id": "424242"})
        assert resp.status_code == 401
        assert resp.get_json()["message"] == "Invalid business context"


class TestQueryTransactionsApi:

    def test_list_filters_and_pagination(self, client, db_session, business_a, customer, vendor, product):
        for _ in range(3):
            _create_sale(client, business_a, customer, product, quantity=1)
        client.post(
            "/api/transactions",
            json={"type": "purchase", "vendorId": vendor.id, "products": [{"productId": product.id, "quantity": 1, "price": 10}]},
            headers=business_headers(business_a),
        )

        resp = client.get("/api/transactions?type=sale&limit=2", headers=business_headers(business_a))
        data = resp.get_json()["data"]
        assert resp.status_code == 200
        assert len(data["transactions"]) == 2
        assert data["pagination"] == {"current": 1, "pages": 2, "total": 3, "limit": 2}
        # newest first
        assert data["transactions"][0]["invoiceNumber"].endswith("-00003")

        resp = client.get(f"/api/transactions?contactId={vendor.id}", headers=business_headers(business_a))
        assert resp.get_json()["data"]["pagination"]["total"] == 1

    def test_unknown_filter_values_ignored(self, client, db_session, business_a, customer, product):
        _create_sale(client, business_a, customer, product, quantity=1)

        resp = client.get("/api/transactions?type=refund&status=bogus", headers=business_headers(business_a))
        assert resp.get_json()["data"]["pagination"]["total"] == 1

    def test_sales_and_purchases_lists(self, client, db_session, business_a, customer, product):
        _create_sale(client, business_a, customer, product, quantity=1)

        sales = client.get("/api/transactions/sales", headers=business_headers(business_a)).get_json()
        purchases = client.get("/api/transactions/purchases", headers=business_headers(business_a)).get_json()
        assert len(sales["data"]["sales"]) == 1
        assert purchases["data"]["purchases"] == []

    def test_date_only_end_date_covers_whole_day(self, client, db_session, business_a, customer, product):
        created = _create_sale(client, business_a, customer, product, quantity=1).get_json()["data"]["transaction"]
        today = created["date"][:10]

        resp = client.get(
            f"/api/transactions?startDate={today}&endDate={today}",
            headers=business_headers(business_a),
        )
        assert resp.get_json()["data"]["pagination"]["total"] == 1

    def test_bad_date_is_400(self, client, db_session, business_a):
        resp = client.get("/api/transactions?startDate=yesterday", headers=business_headers(business_a))
        assert resp.status_code == 400

    def test_get_one_includes_contact_address(self, client, db_session, business_a, customer, product):
        tx_id = _create_sale(client, business_a, customer, product).get_json()["data"]["transaction"]["id"]

        resp = client.get(f"/api/transactions/{tx_id}", headers=business_headers(business_a))
        tx = resp.get_json()["data"]["transaction"]
        assert tx["customer"]["address"]["city"] == "Pune"
        assert tx["products"][0]["productName"] == product.name

    def test_other_business_gets_404(self, client, db_session, business_a, business_b, customer, product):
        tx_id = _create_sale(client, business_a, customer, product).get_json()["data"]["transaction"]["id"]

        resp = client.get(f"/api/transactions/{tx_id}", headers=business_headers(business_b))
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "Transaction not found"

    def test_get_one_unexpected_error_is_json_500(self, client, db_session, business_a, monkeypatch):
        def _boom(business_id, transaction_id):
            raise RuntimeError("database went away")

        monkeypatch.setattr(transaction_service, "get_transaction", _boom)

        resp = client.get("/api/transactions/1", headers=business_headers(business_a))
        assert resp.status_code == 500
        assert resp.get_json() == {"success": False, "message": "Internal server error"}

    def test_summary(self, client, db_session, business_a, customer, product):
        _create_sale(client, business_a, customer, product, quantity=2)

        resp = client.get("/api/transactions/summary", headers=business_headers(business_a))
        summary = resp.get_json()["data"]["summary"]
        assert summary["sales"]["totalAmount"] == 200
        assert summary["purchases"]["transactionCount"] == 0
        assert summary["profitLoss"] == 200


class TestUpdateTransactionApi:

    def test_status_update(self, client, db_session, business_a, customer, product):
        tx_id = _create_sale(client, business_a, customer, product).get_json()["data"]["transaction"]["id"]

        resp = client.patch(
            f"/api/transactions/{tx_id}/status",
            json={"status": "cancelled"},
            headers=business_headers(business_a),
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["transaction"]["status"] == "cancelled"

    def test_invalid_status(self, client, db_session, business_a, customer, product):
        tx_id = _create_sale(client, business_a, customer, product).get_json()["data"]["transaction"]["id"]

        resp = client.patch(
            f"/api/transactions/{tx_id}/status",
            json={"status": "archived"},
            headers=business_headers(business_a),
        )
        assert resp.status_code == 400

    def test_print_flag_defaults_to_true(self, client, db_session, business_a, customer, product):
        tx_id = _create_sale(client, business_a, customer, product).get_json()["data"]["transaction"]["id"]

        resp = client.patch(f"/api/transactions/{tx_id}/print", json={}, headers=business_headers(business_a))
        assert resp.get_json()["data"]["transaction"]["isPrinted"] is True

        resp = client.patch(
            f"/api/transactions/{tx_id}/print",
            json={"isPrinted": False},
            headers=business_headers(business_a),
        )
        assert resp.get_json()["data"]["transaction"]["isPrinted"] is False

    def test_add_payment(self, client, db_session, business_a, customer, product):
        tx_id = _create_sale(client, business_a, customer, product).get_json()["data"]["transaction"]["id"]

        resp = client.post(
            f"/api/transactions/{tx_id}/payments",
            json={"amount": 200, "method": "upi"},
            headers=business_headers(business_a),
        )
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["message"] == "Payment added successfully"
        assert body["data"]["transaction"]["status"] == "completed"

    def test_overpayment_reports_remaining(self, client, db_session, business_a, customer, product):
        tx_id = _create_sale(client, business_a, customer, product).get_json()["data"]["transaction"]["id"]

        resp = client.post(
            f"/api/transactions/{tx_id}/payments",
            json={"amount": 500},
            headers=business_headers(business_a),
        )
        body = resp.get_json()
        assert resp.status_code == 400
        assert body["details"]["remainingBalance"] == 200

# Overview: Flask API routes for sale/purchase transactions; parses input and returns JSON responses.

# backend/app/routes/transactions.py
"""Transaction API routes (sales, purchases, payments, summary)"""

from flask import Blueprint, request, g, current_app

from ..errors import ServiceError
from ..decorators import require_business
from ..responses import success, failure, pagination, page_params
from ..services import transaction_service, payment_service
from ..validation import ValidationError


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def _list_response(filters, data_key: str):
    page, limit = page_params(request.args)
    items, total = transaction_service.list_transactions(
        g.business_id, filters, page=page, limit=limit
    )
    return success({
        data_key: [tx.to_dict() for tx in items],
        "pagination": pagination(page, limit, total),
    })


@transactions_bp.get("")
@require_business
def list_transactions_route():
    """
    List transactions, newest first.

    Query params: type, startDate, endDate, contactId, status, isPrinted,
    page (default 1), limit (default 10)
    """
    try:
        filters = transaction_service.parse_filters(request.args)
        return _list_response(filters, "transactions")
    except ServiceError as e:
        return failure(e.message, e.status_code, e.details)
    except ValidationError as e:
        return failure(str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to list transactions")
        return failure("Internal server error", 500)


@transactions_bp.get("/sales")
@require_business
def list_sales_route():
    """Sales only. Query params: startDate, endDate, customerId, page, limit"""
    try:
        filters = transaction_service.parse_filters(request.args)
        filters.type = "sale"
        filters.vendor_id = None
        filters.status = None
        filters.is_printed = None
        filters.contact_id = None
        return _list_response(filters, "sales")
    except ServiceError as e:
        return failure(e.message, e.status_code, e.details)
    except ValidationError as e:
        return failure(str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return failure("Internal server error", 500)


@transactions_bp.get("/purchases")
@require_business
def list_purchases_route():
    """Purchases only. Query params: startDate, endDate, vendorId, page, limit"""
    try:
        filters = transaction_service.parse_filters(request.args)
        filters.type = "purchase"
        filters.customer_id = None
        filters.status = None
        filters.is_printed = None
        filters.contact_id = None
        return _list_response(filters, "purchases")
    except ServiceError as e:
        return failure(e.message, e.status_code, e.details)
    except ValidationError as e:
        return failure(str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to list purchases")
        return failure("Internal server error", 500)


@transactions_bp.get("/summary")
@require_business
def transaction_summary_route():
    """Totals/counts/averages by type over an optional date range, plus profitLoss."""
    try:
        filters = transaction_service.parse_filters(request.args)
        summary = transaction_service.summarize_transactions(
            g.business_id, start=filters.start, end=filters.end
        )
        return success({"summary": summary})
    except ServiceError as e:
        return failure(e.message, e.status_code, e.details)
    except Exception:
        current_app.logger.exception("Failed to summarize transactions")
        return failure("Internal server error", 500)


@transactions_bp.get("/<int:transaction_id>")
@require_business
def get_transaction_route(transaction_id: int):
    """Single transaction with contact address and line items populated."""
    try:
        tx = transaction_service.get_transaction(g.business_id, transaction_id)
        return success({"transaction": tx.to_dict(include_contact_address=True)})
    except ServiceError as e:
        return failure(e.message, e.status_code, e.details)
    except Exception:
        current_app.logger.exception("Failed to fetch transaction")
        return failure("Internal server error", 500)


@transactions_bp.post("")
@require_business
def create_transaction_route():
    """
    Record a sale or purchase.

    Request body:
    {
        "type": "sale",
        "customerId": 1,            (sale)  / "vendorId": 2 (purchase)
        "products": [{"productId": 5, "quantity": 4, "price": 100, "unitType": "single"}],
        "paymentMethod": "cash",
        "notes": "...",
        "subtotal": 400, "cgst": 10, "sgst": 10, "discount": 0,   (optional)
        "totalAmount": 420,                                       (optional)
        "status": "pending",                                      (optional)
        "initialPayment": 100                                     (optional)
    }

    Returns:
        201: transaction created
        400: invalid input or insufficient stock
        404: contact or product not found
    """
    try:
        create_request = transaction_service.parse_create_request(request.get_json(silent=True))
        tx = transaction_service.create_transaction(
            g.business_id,
            create_request,
            compute_tax_server_side=current_app.config["GST_COMPUTE_SERVER_SIDE"],
        )
        label = "Sale" if tx.type == "sale" else "Purchase"
        return success(
            {"transaction": tx.to_dict()},
            message=f"{label} recorded successfully",
            status=201,
        )
    except ServiceError as e:
        if e.status_code == 400:
            current_app.logger.warning("Rejected transaction for business %s: %s", g.business_id, e.message)
        return failure(e.message, e.status_code, e.details)
    except Exception:
        current_app.logger.exception("Failed to create transaction")
        return failure("Internal server error", 500)


@transactions_bp.patch("/<int:transaction_id>/status")
@require_business
def update_status_route(transaction_id: int):
    try:
        data = request.get_json(silent=True) or {}
        tx = transaction_service.update_status(g.business_id, transaction_id, data.get("status"))
        return success({"transaction": tx.to_dict()}, message="Transaction status updated successfully")
    except ServiceError as e:
        return failure(e.message, e.status_code, e.details)
    except Exception:
        current_app.logger.exception("Failed to update transaction status")
        return failure("Internal server error", 500)


@transactions_bp.patch("/<int:transaction_id>/print")
@require_business
def update_print_route(transaction_id: int):
    try:
        data = request.get_json(silent=True) or {}
        tx = transaction_service.update_print_status(g.business_id, transaction_id, data.get("isPrinted"))
        return success({"transaction": tx.to_dict()}, message="Transaction print status updated successfully")
    except ServiceError as e:
        return failure(e.message, e.status_code, e.details)
    except Exception:
        current_app.logger.exception("Failed to update print status")
        return failure("Internal server error", 500)


@transactions_bp.post("/<int:transaction_id>/payments")
@require_business
def add_payment_route(transaction_id: int):
    """
    Add a partial/split payment.

    Request body:
    {
        "amount": 250,
        "method": "upi",         (optional, default cash)
        "note": "second part",   (optional)
        "date": "2024-03-05"     (optional, default now)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        tx = payment_service.add_payment(
            g.business_id,
            transaction_id,
            data.get("amount"),
            method=data.get("method"),
            note=data.get("note"),
            date=data.get("date"),
        )
        return success({"transaction": tx.to_dict()}, message="Payment added successfully")
    except ServiceError as e:
        return failure(e.message, e.status_code, e.details)
    except Exception:
        current_app.logger.exception("Failed to add payment")
        return failure("Internal server error", 500)

# Overview: Flask API routes for reports; parses input and returns JSON responses.

# backend/app/routes/reports.py
"""
Reporting routes.

All reports are read-only and scoped to g.business_id.
"""
from flask import Blueprint, request, g, current_app

from ..decorators import require_business
from ..errors import ServiceError
from ..responses import success, failure
from ..services import reporting_service
from ..time_utils import parse_range_bound


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
@require_business
def dashboard_report():
    """
    Dashboard counters: products, low stock, customers, vendors, total
    receivable, pending transactions and this month's sales/purchases.
    """
    try:
        return success({"dashboard": reporting_service.dashboard(g.business_id)})
    except Exception:
        current_app.logger.exception("Failed to build dashboard")
        return failure("Internal server error", 500)


@reports_bp.get("/contacts/<int:contact_id>")
@require_business
def contact_statement_report(contact_id: int):
    """
    Statement of one customer or vendor.

    Query params: startDate, endDate (ISO-8601; a date-only endDate covers the whole day)
    """
    try:
        start = parse_range_bound(request.args.get("startDate"))
        end = parse_range_bound(request.args.get("endDate"), end=True)
    except ValueError:
        return failure("Invalid date format", 400)

    try:
        statement = reporting_service.contact_statement(
            g.business_id, contact_id, start=start, end=end
        )
    except ServiceError as e:
        return failure(e.message, e.status_code, e.details)

    return success({"statement": statement})

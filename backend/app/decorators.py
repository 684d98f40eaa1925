# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, g, current_app

from .extensions import db
from .models import Business
from .responses import failure


def _resolve_business_id() -> int | None:
    raw = request.headers.get(current_app.config["BUSINESS_HEADER"], "").strip()
    if not raw.isdigit():
        return None
    return int(raw)


def require_business(f):
    """
    Establish the business (tenant) context for the request.

    Sets the following Flask g attributes:
    - g.business_id: The caller's business ID
    - g.business: The Business row

    Returns 401 if the header is missing, malformed, or names an unknown or
    deactivated business. Services never read g themselves; routes pass
    g.business_id explicitly.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        business_id = _resolve_business_id()
        if business_id is None:
            return failure("Business context required", 401)

        business = db.session.get(Business, business_id)
        if not business or not business.is_active:
            return failure("Invalid business context", 401)

        g.business_id = business.id
        g.business = business

        return f(*args, **kwargs)

    return decorated_function

# Overview: JSON response envelope helpers shared by all blueprints.

from __future__ import annotations

from flask import current_app, jsonify

from .validation import ValidationError, coerce_int


def success(data: dict | None = None, message: str | None = None, status: int = 200):
    body: dict = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def failure(message: str, status: int = 400, details: dict | None = None):
    body: dict = {"success": False, "message": message}
    if details:
        body["details"] = details
    return jsonify(body), status


def pagination(page: int, limit: int, total: int) -> dict:
    return {
        "current": page,
        "pages": (total + limit - 1) // limit if limit else 0,
        "total": total,
        "limit": limit,
    }


def page_params(args) -> tuple[int, int]:
    """page/limit from query args; limit is capped at MAX_PAGE_SIZE."""
    page = coerce_int(args.get("page") or 1, "page")
    limit = coerce_int(args.get("limit") or current_app.config["DEFAULT_PAGE_SIZE"], "limit")
    if page < 1:
        raise ValidationError("page must be at least 1")
    if limit < 1:
        raise ValidationError("limit must be at least 1")
    return page, min(limit, current_app.config["MAX_PAGE_SIZE"])

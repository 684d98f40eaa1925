# Overview: Service-layer exception taxonomy shared by routes and services.

from __future__ import annotations


class ServiceError(Exception):
    """Base class for expected service failures; carries an HTTP status."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(ServiceError):
    """Entity missing or outside the caller's business."""
    status_code = 404


class BadRequestError(ServiceError):
    """Malformed or missing input, amount validation failures."""
    status_code = 400


class InsufficientStockError(BadRequestError):
    """A sale would drive product stock negative."""

"""
Domain errors raised by the services layer.

Routers let these propagate; the handlers registered in ``register_error_handlers``
render them as ``{"error": ..., "details": ...}`` with the matching status code.
"""
import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class POSError(Exception):
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class BadRequest(POSError):
    status_code = 400


class OrderValidationError(BadRequest):
    """missing or invalid order input, surfaced to the cashier as-is."""


class ItemUnavailable(OrderValidationError):
    pass


class NotFound(POSError):
    status_code = 404


class InvalidTransition(POSError):
    status_code = 409


class UnknownStatus(ValueError):
    """a store row carries a status outside the known vocabulary."""


class StoreError(POSError):
    """a read or write against the order store failed."""
    status_code = 500


class PaymentConfigError(POSError):
    status_code = 500


class PaymentGatewayError(POSError):
    """the gateway answered with a non-2xx status; status is relayed to the caller."""

    def __init__(self, message: str, status_code: int = 500, details: Optional[Any] = None):
        super().__init__(message, details)
        self.status_code = status_code or 500


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(POSError)
    async def _pos_error_handler(request: Request, exc: POSError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.details})")
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

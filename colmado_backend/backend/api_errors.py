# backend/api_errors.py

"""
PATH: backend/api_errors.py

Shared translation of domain errors into API responses:
    {"detail": "...", "code": "<reason code>"}

- 409 for concurrency / duplicate-posting conflicts
- 400 for everything else the services reject
"""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.response import Response

from accounting.services.exceptions import AccountingServiceError
from inventory.services.exceptions import InventoryServiceError
from purchases.services.exceptions import PurchaseError
from sales.services.exceptions import SalesServiceError
from taxes.services.exceptions import TaxServiceError

logger = logging.getLogger(__name__)

DOMAIN_ERRORS = (
    InventoryServiceError,
    AccountingServiceError,
    TaxServiceError,
    SalesServiceError,
    PurchaseError,
    DjangoValidationError,
)

CONFLICT_CODES = ("concurrent_modification", "duplicate_posting")


def _message(exc) -> str:
    if isinstance(exc, DjangoValidationError):
        return "; ".join(exc.messages)
    return str(exc)


def domain_error_response(exc) -> Response:
    code = getattr(exc, "code", None) or "validation_error"
    http_status = (
        status.HTTP_409_CONFLICT if code in CONFLICT_CODES else status.HTTP_400_BAD_REQUEST
    )
    logger.info("Request rejected", extra={"code": code, "detail": _message(exc)})
    return Response({"detail": _message(exc), "code": code}, status=http_status)


def forbidden(message: str) -> Response:
    return Response(
        {"detail": message, "code": "permission_denied"},
        status=status.HTTP_403_FORBIDDEN,
    )

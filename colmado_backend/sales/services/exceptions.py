# sales/services/exceptions.py

"""
SALES SERVICE ERRORS

Checkout / return / shift validation failures. Inventory, tax and ledger
errors raised underneath propagate unchanged (they carry their own codes).
"""


class SalesServiceError(Exception):
    code = "sales_error"

    def __init__(self, message: str = "", **context):
        super().__init__(message)
        self.context = context


class CheckoutError(SalesServiceError):
    """Base checkout exception"""

    code = "checkout_error"


class EmptyCartError(CheckoutError):
    code = "empty_sale"


class ReturnError(SalesServiceError):
    code = "return_error"


class ShiftError(SalesServiceError):
    code = "shift_error"

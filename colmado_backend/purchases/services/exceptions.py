# purchases/services/exceptions.py

"""
PURCHASES SERVICE ERRORS
"""


class PurchaseError(ValueError):
    code = "purchase_error"

    def __init__(self, message: str = "", **context):
        super().__init__(message)
        self.context = context


class SupplierPaymentError(PurchaseError):
    code = "supplier_payment_error"

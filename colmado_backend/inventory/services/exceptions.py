# inventory/services/exceptions.py

"""
INVENTORY SERVICE ERRORS

Every error carries a stable `code` so callers (API, UI, sync layer) can
decline the operation with a specific reason.
"""


class InventoryServiceError(Exception):
    """Base exception for lot store and FIFO engine failures."""

    code = "inventory_error"

    def __init__(self, message: str = "", **context):
        super().__init__(message or self.__class__.__doc__)
        self.context = context


class InvalidQuantityError(InventoryServiceError):
    """Quantity must be greater than zero."""

    code = "invalid_quantity"


class InvalidCostError(InventoryServiceError):
    """Unit cost must be greater than zero."""

    code = "invalid_cost"


class InsufficientLotQuantityError(InventoryServiceError):
    """Lot adjustment would leave remaining quantity outside [0, original]."""

    code = "insufficient_lot_quantity"


class InsufficientInventoryError(InventoryServiceError):
    """Active lots cannot cover the requested quantity."""

    code = "insufficient_inventory"


class ConcurrentModificationError(InventoryServiceError):
    """Row changed between read and conditional write; retry the whole operation."""

    code = "concurrent_modification"

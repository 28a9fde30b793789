# taxes/services/exceptions.py

"""
TAX SERVICE ERRORS

Period-lock errors are accounting errors (accounting.services.exceptions);
this module only holds ITBIS input and NCF numbering failures.
"""


class TaxServiceError(Exception):
    """Base exception for ITBIS and NCF services."""

    code = "tax_error"


class InvalidPeriodError(TaxServiceError):
    code = "invalid_period"


class InvalidNCFError(TaxServiceError):
    code = "invalid_ncf"


class NCFRangeExhaustedError(TaxServiceError):
    """No active, unexpired range has numbers left for the requested type."""

    code = "ncf_range_exhausted"


class NCFStateError(TaxServiceError):
    code = "ncf_state"

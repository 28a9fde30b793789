# accounting/services/exceptions.py

"""
ACCOUNTING SERVICE ERRORS

Centralized domain errors for accounting services.
Each error carries a stable `code` so API callers can branch on it.
"""


class AccountingServiceError(Exception):
    """Base exception for all accounting service failures."""

    code = "accounting_error"

    def __init__(self, message: str = "", **context):
        super().__init__(message)
        self.context = context


class PostingRuleError(AccountingServiceError):
    """Raised when a posting rule cannot be applied."""

    code = "posting_rule_error"


class AccountResolutionError(AccountingServiceError):
    """Raised when an expected account cannot be resolved."""

    code = "account_resolution_error"


class JournalEntryCreationError(AccountingServiceError):
    """Raised when a journal entry cannot be created."""

    code = "journal_entry_creation_error"


class UnbalancedEntryError(JournalEntryCreationError):
    """Debits and credits differ (after rounding to cents)."""

    code = "unbalanced_entry"


class IdempotencyError(AccountingServiceError):
    """Raised on duplicate or retried accounting events."""

    code = "duplicate_posting"


class PeriodClosedError(AccountingServiceError):
    """The ITBIS/accounting period for the date is closed or filed."""

    code = "period_closed"


class CannotVoidPendingError(AccountingServiceError):
    code = "cannot_void_pending"


class AlreadyVoidedError(AccountingServiceError):
    code = "already_voided"


class OpenTransactionsExistError(AccountingServiceError):
    """Closing is blocked by unposted work dated inside the period."""

    code = "open_transactions_exist"


class ShiftClosedError(AccountingServiceError):
    code = "shift_closed"


class SettlementStateError(AccountingServiceError):
    """Card settlement is not in a state that allows the transition."""

    code = "settlement_state_error"


class PeriodStateError(AccountingServiceError):
    """Period is not in a status that allows the requested transition."""

    code = "period_state_error"

"""This module defines custom exceptions raised by the ledger services."""


class LedgerError(Exception):
    """Base exception for errors surfaced to the user by the ledger services."""

    pass


class TransactionLoadError(LedgerError):
    """Raised when reading transactions or their lookup data fails."""

    pass


class TransactionNotFoundError(LedgerError):
    """Raised when an operation targets a bank transaction that does not exist."""

    pass


class DuplicateRemovalError(LedgerError):
    """Raised when a duplicate removal request cannot be carried out."""

    pass


class ReconciliationError(LedgerError):
    """Raised when linking a transaction to a pledge or outgoing fails."""

    pass


class LinkTargetNotFoundError(ReconciliationError):
    """Raised when the transaction or the record it should be linked to does not exist."""

    pass


class InvalidLinkError(ReconciliationError):
    """Raised when a link request is rejected before anything is written."""

    pass


class StatementImportError(LedgerError):
    """Raised when a bank statement cannot be parsed or stored."""

    pass

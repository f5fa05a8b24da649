"""This module initializes the services package.

It re-exports the services so that the CLI and the web layer can import
them from one place.
"""

from mission_ledger.services.duplicates import DuplicateDetectionService
from mission_ledger.services.reconciliation import ReconciliationService
from mission_ledger.services.statement_import import StatementImportService
from mission_ledger.services.transaction_loader import TransactionLoaderService

__all__ = [
    "DuplicateDetectionService",
    "ReconciliationService",
    "StatementImportService",
    "TransactionLoaderService",
]

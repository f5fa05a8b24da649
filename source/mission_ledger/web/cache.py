"""This module holds the loaded transaction working set between HTTP requests.

Loading every transaction is the most expensive read the API makes, so the
result is kept in memory until something changes the stored data. Writes
(imports, links, receipt updates, duplicate removal) invalidate it
explicitly; imports do so through the import service's `on_imported`
callback.
"""

import threading

from mission_ledger.models.bank_transactions import LoadedTransactions
from mission_ledger.models.imports import StatementImportResult
from mission_ledger.providers.logging import Logger, LoggingProvider
from mission_ledger.services.transaction_loader import TransactionLoaderService


class LoadedTransactionsCache:
    """A process-wide cache of the last loaded transaction working set."""

    logger: Logger

    def __init__(self) -> None:
        """Initializes an empty cache."""
        self.logger = LoggingProvider().get_logger()
        self._loaded: LoadedTransactions | None = None
        self._lock = threading.Lock()

    def get(self, loader: TransactionLoaderService) -> LoadedTransactions:
        """Returns the cached working set, loading it first if needed.

        Args:
            loader: The service used when the cache is empty.

        Returns:
            The loaded transactions.

        Raises:
            TransactionLoadError: If loading fails. The cache stays empty.
        """
        with self._lock:
            if self._loaded is None:
                self._loaded = loader.load_transactions()
            return self._loaded

    def invalidate(self) -> None:
        """Drops the cached working set so the next read reloads it."""
        with self._lock:
            self._loaded = None
        self.logger.debug("Transaction cache invalidated.")

    def on_imported(self, result: StatementImportResult) -> None:
        """Invalidates the cache after a statement import stored new rows.

        Args:
            result: The import summary.
        """
        if result.rows_imported:
            self.invalidate()

    @property
    def is_loaded(self) -> bool:
        """Returns True when a working set is cached."""
        return self._loaded is not None


transactions_cache = LoadedTransactionsCache()

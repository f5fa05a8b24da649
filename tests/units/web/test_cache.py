from unittest.mock import MagicMock

from mission_ledger.models.bank_transactions import LoadedTransactions, TransactionTotals
from mission_ledger.models.imports import StatementImportResult
from mission_ledger.services.transaction_loader import TransactionLoaderService
from mission_ledger.web.cache import LoadedTransactionsCache


def _loader() -> MagicMock:
    loader = MagicMock(spec=TransactionLoaderService)
    loader.load_transactions.return_value = LoadedTransactions(rows=[], totals=TransactionTotals())
    return loader


def test_loads_once() -> None:
    """Tests that the working set is loaded on first use only."""
    cache = LoadedTransactionsCache()
    loader = _loader()

    first = cache.get(loader)
    second = cache.get(loader)

    assert first is second
    loader.load_transactions.assert_called_once()


def test_import_with_rows_invalidates() -> None:
    """Tests that an import that stored rows forces a reload."""
    cache = LoadedTransactionsCache()
    loader = _loader()
    cache.get(loader)

    cache.on_imported(StatementImportResult(rows_imported=3, message="ok"))

    assert not cache.is_loaded
    cache.get(loader)
    assert loader.load_transactions.call_count == 2


def test_import_without_rows_keeps_cache() -> None:
    """Tests that an import that stored nothing keeps the working set."""
    cache = LoadedTransactionsCache()
    cache.get(_loader())

    cache.on_imported(StatementImportResult(rows_imported=0, duplicates_skipped=2, message="ok"))

    assert cache.is_loaded

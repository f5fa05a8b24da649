from collections.abc import Callable
from datetime import date
from decimal import Decimal

import pytest
from click.testing import CliRunner
from mission_ledger.models.bank_transactions import EnrichedBankTransaction, LoadedTransactions, TransactionTotals


@pytest.fixture
def runner() -> CliRunner:
    """Returns a CliRunner for invoking the CLI."""
    return CliRunner()


@pytest.fixture
def loaded(make_transaction: Callable[..., EnrichedBankTransaction]) -> LoadedTransactions:
    """Provides a small loaded working set."""
    rows = [
        make_transaction(transaction_reference="FT001", value_date=date(2024, 1, 10), description="Gift"),
        make_transaction(transaction_reference="FT002", value_date=date(2024, 1, 20), description="Fee"),
        make_transaction(transaction_reference="FT003", value_date=date(2024, 2, 5), description="Gift"),
    ]
    return LoadedTransactions(rows=rows, totals=TransactionTotals(total_credit=Decimal("300"), count=3))

"""This module contains shared fixtures for the services unit tests."""

from unittest.mock import MagicMock

import pytest
from mission_ledger.repositories.bank_transactions import BankTransactionsRepository
from mission_ledger.repositories.outgoings import OutgoingsRepository
from mission_ledger.repositories.pledges import PledgesRepository


@pytest.fixture
def transactions_repo() -> MagicMock:
    """Provides a mocked BankTransactionsRepository."""
    return MagicMock(spec=BankTransactionsRepository)


@pytest.fixture
def pledges_repo() -> MagicMock:
    """Provides a mocked PledgesRepository."""
    return MagicMock(spec=PledgesRepository)


@pytest.fixture
def outgoings_repo() -> MagicMock:
    """Provides a mocked OutgoingsRepository."""
    return MagicMock(spec=OutgoingsRepository)

"""This module contains shared fixtures for all unit tests."""

import os
from collections.abc import Callable
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import uuid4

import pytest
from mission_ledger.models.bank_transactions import EnrichedBankTransaction
from mission_ledger.providers.config import Config

LEDGER_ENV_VARS = (
    "POSTGRES_DRIVER",
    "POSTGRES_HOST",
    "POSTGRES_PORT",
    "POSTGRES_USER",
    "POSTGRES_PASSWORD",
    "POSTGRES_DB",
    "POSTGRES_DB_SCHEMA",
    "LOG_LEVEL",
    "TRANSACTION_FETCH_BATCH_SIZE",
    "DEDUP_DELETE_BATCH_SIZE",
    "DEFAULT_PAGE_SIZE",
    "PAGE_SIZE_CHOICES",
    "RECONCILIATION_NET_PREVIOUS_LINK",
    "IMPORT_DUPLICATE_SAMPLE_SIZE",
)


@pytest.fixture(scope="session", autouse=True)
def unset_ledger_settings() -> None:
    """Unsets ledger settings for the entire test session.

    Unit tests then run against the defaults declared on `Config`, whatever
    the developer's shell exports.
    """
    for name in LEDGER_ENV_VARS:
        os.environ.pop(name, None)


@pytest.fixture
def config() -> Config:
    """Provides a Config with the default settings."""
    return Config()


@pytest.fixture
def make_transaction() -> Callable[..., EnrichedBankTransaction]:
    """Provides a factory for enriched transactions.

    Returns:
        A callable accepting field overrides.
    """

    def _make(**overrides: Any) -> EnrichedBankTransaction:
        data: dict[str, Any] = {
            "id": uuid4(),
            "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
            "value_date": date(2024, 1, 15),
            "transaction_date": date(2024, 1, 15),
            "transaction_reference": "FT2401500001",
            "debit_amount": Decimal("0"),
            "credit_amount": Decimal("100.00"),
            "balance": Decimal("1000.00"),
            "description": "Monthly support",
        }
        data.update(overrides)
        return EnrichedBankTransaction(**data)

    return _make

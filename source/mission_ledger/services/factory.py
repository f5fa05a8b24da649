"""This module wires repositories and services together.

The CLI commands and the HTTP dependencies both build their services
through these functions so that every entry point shares the same engine
and configuration.
"""

from mission_ledger.providers.config import Config, ConfigProvider
from mission_ledger.providers.database import DatabaseManager
from mission_ledger.repositories.bank_transactions import BankTransactionsRepository
from mission_ledger.repositories.outgoings import OutgoingsRepository
from mission_ledger.repositories.pledges import PledgesRepository
from mission_ledger.services.duplicates import DuplicateDetectionService
from mission_ledger.services.reconciliation import ReconciliationService
from mission_ledger.services.statement_import import StatementImportService
from mission_ledger.services.transaction_loader import TransactionLoaderService
from sqlalchemy import Engine


def _resolve(engine: Engine | None, config: Config | None) -> tuple[Engine, Config]:
    return engine or DatabaseManager.get_engine(), config or ConfigProvider.get_config()


def build_loader_service(engine: Engine | None = None, config: Config | None = None) -> TransactionLoaderService:
    """Builds a TransactionLoaderService backed by the shared engine."""
    engine, config = _resolve(engine, config)
    return TransactionLoaderService(
        transactions_repo=BankTransactionsRepository(engine=engine),
        pledges_repo=PledgesRepository(engine=engine),
        outgoings_repo=OutgoingsRepository(engine=engine),
        config=config,
    )


def build_duplicate_service(engine: Engine | None = None, config: Config | None = None) -> DuplicateDetectionService:
    """Builds a DuplicateDetectionService backed by the shared engine."""
    engine, config = _resolve(engine, config)
    return DuplicateDetectionService(transactions_repo=BankTransactionsRepository(engine=engine), config=config)


def build_reconciliation_service(
    engine: Engine | None = None, config: Config | None = None
) -> ReconciliationService:
    """Builds a ReconciliationService backed by the shared engine."""
    engine, config = _resolve(engine, config)
    return ReconciliationService(
        engine=engine,
        transactions_repo=BankTransactionsRepository(engine=engine),
        pledges_repo=PledgesRepository(engine=engine),
        outgoings_repo=OutgoingsRepository(engine=engine),
        config=config,
    )


def build_import_service(engine: Engine | None = None, config: Config | None = None) -> StatementImportService:
    """Builds a StatementImportService backed by the shared engine."""
    engine, config = _resolve(engine, config)
    return StatementImportService(transactions_repo=BankTransactionsRepository(engine=engine), config=config)

"""FastAPI dependencies shared by the routers."""

from datetime import date

from fastapi import Query
from mission_ledger.providers.config import Config, ConfigProvider
from mission_ledger.services import (
    DuplicateDetectionService,
    ReconciliationService,
    StatementImportService,
    TransactionLoaderService,
)
from mission_ledger.services.factory import (
    build_duplicate_service,
    build_import_service,
    build_loader_service,
    build_reconciliation_service,
)
from mission_ledger.services.transaction_view import TransactionFilters
from mission_ledger.web.cache import LoadedTransactionsCache, transactions_cache


def get_config() -> Config:
    return ConfigProvider.get_config()


def get_loader_service() -> TransactionLoaderService:
    return build_loader_service()


def get_duplicate_service() -> DuplicateDetectionService:
    return build_duplicate_service()


def get_reconciliation_service() -> ReconciliationService:
    return build_reconciliation_service()


def get_import_service() -> StatementImportService:
    return build_import_service()


def get_transactions_cache() -> LoadedTransactionsCache:
    return transactions_cache


def get_filters(
    start_date: date | None = Query(default=None, description="Earliest value date to include."),
    end_date: date | None = Query(default=None, description="Latest value date to include."),
    reference: str | None = Query(default=None, description="Transaction reference contains."),
    narrative: str | None = Query(default=None, description="Narrative contains."),
    beneficiary_account: str | None = Query(default=None, description="Beneficiary account contains."),
    beneficiary_name: str | None = Query(default=None, description="Beneficiary name contains."),
    receipt_number: str | None = Query(default=None, description="Receipt number contains."),
) -> TransactionFilters:
    """Collects the transaction filters from the query string.

    Returns:
        The filters. Omitted or empty parameters are inactive.
    """
    return TransactionFilters(
        start_date=start_date,
        end_date=end_date,
        transaction_reference=reference,
        narrative=narrative,
        beneficiary_account=beneficiary_account,
        beneficiary_name=beneficiary_name,
        receipt_number=receipt_number,
    )

"""Unit tests for the HTTP API."""

from collections.abc import Callable, Generator
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from mission_ledger.exceptions.ledger import (
    InvalidLinkError,
    LinkTargetNotFoundError,
    StatementImportError,
    TransactionLoadError,
    TransactionNotFoundError,
)
from mission_ledger.models.bank_transactions import EnrichedBankTransaction, LoadedTransactions, TransactionTotals
from mission_ledger.models.duplicates import DeletionResult, DuplicateReport
from mission_ledger.models.imports import StatementImportResult
from mission_ledger.models.reconciliation import LinkKind, LinkResult
from mission_ledger.services import (
    DuplicateDetectionService,
    ReconciliationService,
    StatementImportService,
    TransactionLoaderService,
)
from mission_ledger.web.cache import LoadedTransactionsCache
from mission_ledger.web.dependencies import (
    get_duplicate_service,
    get_import_service,
    get_loader_service,
    get_reconciliation_service,
    get_transactions_cache,
)
from mission_ledger.web.main import app


@pytest.fixture
def loader() -> MagicMock:
    return MagicMock(spec=TransactionLoaderService)


@pytest.fixture
def duplicates() -> MagicMock:
    return MagicMock(spec=DuplicateDetectionService)


@pytest.fixture
def reconciliation() -> MagicMock:
    return MagicMock(spec=ReconciliationService)


@pytest.fixture
def importer() -> MagicMock:
    return MagicMock(spec=StatementImportService)


@pytest.fixture
def cache() -> LoadedTransactionsCache:
    """Provides an empty cache per test."""
    return LoadedTransactionsCache()


@pytest.fixture
def client(
    loader: MagicMock,
    duplicates: MagicMock,
    reconciliation: MagicMock,
    importer: MagicMock,
    cache: LoadedTransactionsCache,
) -> Generator[TestClient, None, None]:
    """Create a test client with mocked dependencies."""
    app.dependency_overrides[get_loader_service] = lambda: loader
    app.dependency_overrides[get_duplicate_service] = lambda: duplicates
    app.dependency_overrides[get_reconciliation_service] = lambda: reconciliation
    app.dependency_overrides[get_import_service] = lambda: importer
    app.dependency_overrides[get_transactions_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def loaded(make_transaction: Callable[..., EnrichedBankTransaction]) -> LoadedTransactions:
    rows: list[EnrichedBankTransaction] = [
        make_transaction(transaction_reference=f"FT{index:03d}", value_date=date(2024, 1, index + 1))
        for index in range(12)
    ]
    rows[0] = make_transaction(
        transaction_reference="FT000", value_date=date(2024, 1, 1), beneficiary_name="Ada", pledge_id=uuid4()
    )
    return LoadedTransactions(rows=rows, totals=TransactionTotals(total_credit=Decimal("1200"), count=12))


def test_health_check(client: TestClient) -> None:
    """Test the health check endpoint."""
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Correlation-ID"].startswith("http-")


def test_correlation_id_is_echoed(client: TestClient) -> None:
    """Test that a caller-supplied correlation ID is kept."""
    response = client.get("/health", headers={"X-Correlation-ID": "abc-123"})

    assert response.headers["X-Correlation-ID"] == "abc-123"


def test_list_transactions(client: TestClient, loader: MagicMock, loaded: LoadedTransactions) -> None:
    """Test server-side sorting and pagination."""
    loader.load_transactions.return_value = loaded

    response = client.get("/transactions", params={"page": 2, "page_size": 10})

    assert response.status_code == 200
    body = response.json()
    assert body["total_pages"] == 2
    assert body["filtered_count"] == 12
    assert body["totals"]["count"] == 12
    assert [row["transaction_reference"] for row in body["rows"]] == ["FT001", "FT000"]
    assert body["rows"][1]["reconciled"] is True
    assert body["rows"][1]["beneficiary_name"] == "Ada"


def test_list_transactions_filters(client: TestClient, loader: MagicMock, loaded: LoadedTransactions) -> None:
    """Test that query filters are combined."""
    loader.load_transactions.return_value = loaded

    response = client.get(
        "/transactions", params={"reference": "ft00", "start_date": "2024-01-05", "sort": "value_date"}
    )

    body = response.json()
    assert body["filtered_count"] == 6
    assert body["rows"][0]["transaction_reference"] == "FT009"


def test_list_transactions_uses_cache(
    client: TestClient, loader: MagicMock, loaded: LoadedTransactions, cache: LoadedTransactionsCache
) -> None:
    """Test that the working set is loaded once until invalidated."""
    loader.load_transactions.return_value = loaded

    client.get("/transactions")
    client.get("/transactions", params={"page": 2})
    client.get("/transactions", params={"refresh": True})

    assert loader.load_transactions.call_count == 2


def test_list_transactions_rejects_page_size(client: TestClient) -> None:
    """Test that only configured page sizes are accepted."""
    response = client.get("/transactions", params={"page_size": 7})

    assert response.status_code == 422


def test_list_transactions_load_failure(client: TestClient, loader: MagicMock) -> None:
    """Test that a failed load is a server error."""
    loader.load_transactions.side_effect = TransactionLoadError("database unavailable")

    response = client.get("/transactions")

    assert response.status_code == 500
    assert response.json() == {"detail": "database unavailable"}


def test_export(client: TestClient, loader: MagicMock, loaded: LoadedTransactions) -> None:
    """Test the CSV download."""
    loader.load_transactions.return_value = loaded

    response = client.get("/transactions/export", params={"beneficiary_name": "ada"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "bank-transactions-" in response.headers["content-disposition"]
    lines = response.text.strip().split("\n")
    assert len(lines) == 2
    assert '"FT000"' in lines[1]


def test_find_duplicates(client: TestClient, duplicates: MagicMock) -> None:
    """Test the duplicate report."""
    duplicates.scan.return_value = DuplicateReport(total_scanned=5, unique_keys=5)

    response = client.get("/transactions/duplicates")

    assert response.status_code == 200
    assert response.json() == {"total_scanned": 5, "unique_keys": 5, "duplicates": []}


def test_remove_duplicates(
    client: TestClient, duplicates: MagicMock, cache: LoadedTransactionsCache, loader: MagicMock
) -> None:
    """Test that removing duplicates invalidates the cache."""
    ids = [uuid4(), uuid4()]
    duplicates.remove_duplicates.return_value = DeletionResult(requested=2, deleted=2, batches_completed=1)
    loader.load_transactions.return_value = LoadedTransactions(rows=[], totals=TransactionTotals())
    cache.get(loader)

    response = client.post("/transactions/duplicates/remove", json={"ids": [str(i) for i in ids]})

    assert response.status_code == 200
    assert response.json()["deleted"] == 2
    duplicates.remove_duplicates.assert_called_once_with(ids)
    assert not cache.is_loaded


def test_remove_duplicates_partial_failure(client: TestClient, duplicates: MagicMock) -> None:
    """Test that a halted deletion is reported with its progress."""
    duplicates.remove_duplicates.return_value = DeletionResult(
        requested=250, deleted=100, batches_completed=1, error="Failed to remove duplicates: lock timeout"
    )

    response = client.post("/transactions/duplicates/remove", json={"ids": [str(uuid4())]})

    assert response.status_code == 500
    assert response.json()["deleted"] == 100


def test_link(client: TestClient, reconciliation: MagicMock) -> None:
    """Test linking a transaction to a pledge."""
    transaction_id, pledge_id = uuid4(), uuid4()
    reconciliation.link_transaction.return_value = LinkResult(
        transaction_id=transaction_id, kind=LinkKind.PLEDGE, target_id=pledge_id, linked=True, fulfillment_status=40
    )

    response = client.post(f"/transactions/{transaction_id}/link", json={"kind": "pledge", "target_id": str(pledge_id)})

    assert response.status_code == 200
    assert response.json()["fulfillment_status"] == 40
    reconciliation.link_transaction.assert_called_once_with(transaction_id, LinkKind.PLEDGE, pledge_id)


def test_unlink(client: TestClient, reconciliation: MagicMock) -> None:
    """Test that a null target unlinks."""
    transaction_id = uuid4()
    reconciliation.link_transaction.return_value = LinkResult(
        transaction_id=transaction_id, kind=LinkKind.OUTGOING, target_id=None, linked=False
    )

    response = client.post(f"/transactions/{transaction_id}/link", json={"kind": "outgoing", "target_id": None})

    assert response.status_code == 200
    reconciliation.link_transaction.assert_called_once_with(transaction_id, LinkKind.OUTGOING, None)


@pytest.mark.parametrize(
    "error, status_code",
    [
        (TransactionNotFoundError("missing"), 404),
        (LinkTargetNotFoundError("missing pledge"), 404),
        (InvalidLinkError("not a credit"), 422),
    ],
)
def test_link_errors(client: TestClient, reconciliation: MagicMock, error: Exception, status_code: int) -> None:
    """Test that link errors map to HTTP errors."""
    reconciliation.link_transaction.side_effect = error

    response = client.post(f"/transactions/{uuid4()}/link", json={"kind": "pledge", "target_id": str(uuid4())})

    assert response.status_code == status_code
    assert response.json() == {"detail": str(error)}


def test_update_receipt(client: TestClient, reconciliation: MagicMock) -> None:
    """Test setting a receipt number."""
    transaction_id = uuid4()
    reconciliation.update_receipt_number.return_value = "R-9"

    response = client.put(f"/transactions/{transaction_id}/receipt", json={"receipt_number": " R-9 "})

    assert response.status_code == 200
    assert response.json() == {"transaction_id": str(transaction_id), "receipt_number": "R-9"}
    reconciliation.update_receipt_number.assert_called_once_with(transaction_id, " R-9 ")


def test_import(client: TestClient, importer: MagicMock, cache: LoadedTransactionsCache) -> None:
    """Test uploading a statement passes the cache invalidation callback."""
    importer.import_csv.return_value = StatementImportResult(
        rows_imported=1, message="Successfully imported 1 transactions."
    )

    response = client.post(
        "/transactions/import",
        files={"file": ("statement.csv", "\ufeffTransaction Reference,Credit\nFT001,10\n".encode(), "text/csv")},
    )

    assert response.status_code == 200
    assert response.json()["rows_imported"] == 1
    content = importer.import_csv.call_args.args[0]
    assert content.startswith("Transaction Reference")
    assert importer.import_csv.call_args.kwargs["on_imported"] == cache.on_imported


def test_import_rejects_non_csv(client: TestClient, importer: MagicMock) -> None:
    """Test that only CSV uploads are accepted."""
    response = client.post("/transactions/import", files={"file": ("statement.pdf", b"%PDF", "application/pdf")})

    assert response.status_code == 400
    importer.import_csv.assert_not_called()


def test_import_parse_error(client: TestClient, importer: MagicMock) -> None:
    """Test that an unreadable statement is a client error."""
    importer.import_csv.side_effect = StatementImportError("CSV parsing error")

    response = client.post("/transactions/import", files={"file": ("statement.csv", b"", "text/csv")})

    assert response.status_code == 400


def test_import_mapped(client: TestClient, importer: MagicMock, cache: LoadedTransactionsCache) -> None:
    """Test that pre-mapped statement lines are handed to the import service."""
    importer.import_mapped.return_value = StatementImportResult(
        rows_imported=1, message="Successfully imported 1 transactions."
    )
    rows = [{"transaction_reference": "FT100", "debit_amount": "10"}]

    response = client.post("/transactions/import/mapped", json={"transactions": rows})

    assert response.status_code == 200
    assert response.json()["rows_imported"] == 1
    assert importer.import_mapped.call_args.args[0] == rows
    assert importer.import_mapped.call_args.kwargs["on_imported"] == cache.on_imported


def test_import_mapped_numeric_amounts(client: TestClient, importer: MagicMock) -> None:
    """Test that amounts posted as JSON numbers are accepted."""
    importer.import_mapped.return_value = StatementImportResult(
        rows_imported=1, message="Successfully imported 1 transactions."
    )
    row = {"transaction_reference": "FT101", "debit_amount": 0, "credit_amount": 1500.5, "balance": 98000}

    response = client.post("/transactions/import/mapped", json={"transactions": [row]})

    assert response.status_code == 200
    assert importer.import_mapped.call_args.args[0] == [row]


def test_import_mapped_empty(client: TestClient, importer: MagicMock) -> None:
    """Test that an empty mapped upload is a client error."""
    importer.import_mapped.side_effect = StatementImportError("No transactions to import.")

    response = client.post("/transactions/import/mapped", json={"transactions": []})

    assert response.status_code == 400
    assert response.json()["detail"] == "No transactions to import."

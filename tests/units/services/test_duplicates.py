from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import UUID, uuid4

import pytest
from mission_ledger.exceptions.ledger import DuplicateRemovalError, TransactionLoadError
from mission_ledger.models.duplicates import DuplicateScanRow
from mission_ledger.providers.config import Config
from mission_ledger.services.duplicates import (
    DuplicateDetectionService,
    build_composite_key,
    find_duplicates,
    format_balance,
    normalize_reference,
)
from sqlalchemy.exc import OperationalError

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _scan_row(reference: str | None, balance: str | None, minutes: int = 0) -> DuplicateScanRow:
    return DuplicateScanRow(
        id=uuid4(),
        transaction_reference=reference,
        balance=Decimal(balance) if balance is not None else None,
        created_at=START + timedelta(minutes=minutes),
    )


@pytest.fixture
def service(transactions_repo: MagicMock, config: Config) -> DuplicateDetectionService:
    """Provides a DuplicateDetectionService with a mocked repository."""
    return DuplicateDetectionService(transactions_repo, config)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("  FT 001  ", "ft 001"),
        ("FT\t\t001", "ft 001"),
        ("", None),
        ("   ", None),
        ("null", None),
        ("Undefined", None),
        (None, None),
    ],
)
def test_normalize_reference(raw: str | None, expected: str | None) -> None:
    """Tests trimming, lowercasing, whitespace collapsing and placeholder skipping."""
    assert normalize_reference(raw) == expected


def test_format_balance_is_two_decimals() -> None:
    """Tests that balances compare at cent precision."""
    assert format_balance(Decimal("100")) == "100.00"
    assert format_balance("100.00") == "100.00"
    assert format_balance(Decimal("10.005")) == "10.01"
    assert format_balance(None) is None
    assert format_balance("abc") is None


def test_key_composition() -> None:
    """Tests that equal references with equal balances share a key."""
    assert build_composite_key("FT001", "100") == build_composite_key(" ft001 ", "100.00") == "ft001|||100.00"
    assert build_composite_key("FT001", "100") != build_composite_key("FT001", "150")


def test_different_balance_is_not_a_duplicate() -> None:
    """Tests that a recurring reference with a new balance is kept."""
    report = find_duplicates([_scan_row("FT001", "100", 0), _scan_row("FT001", "150", 1)])

    assert not report.has_duplicates
    assert report.unique_keys == 2


def test_first_occurrence_wins() -> None:
    """Tests that the oldest row is kept and later ones are reported."""
    first = _scan_row("FT001", "100", 0)
    second = _scan_row("ft001", "100.00", 5)
    third = _scan_row("FT001 ", "100", 10)

    report = find_duplicates([first, second, third])

    assert report.duplicate_ids == [second.id, third.id]
    assert all(entry.kept_id == first.id for entry in report.duplicates)
    assert report.total_scanned == 3
    assert report.unique_keys == 1


def test_null_references_are_never_duplicates() -> None:
    """Tests that rows without a usable reference or balance are skipped."""
    rows = [
        _scan_row(None, "100", 0),
        _scan_row(None, "100", 1),
        _scan_row("", "100", 2),
        _scan_row("", "100", 3),
        _scan_row("null", "100", 4),
        _scan_row("undefined", "100", 5),
        _scan_row("undefined", "100", 6),
        _scan_row("FT009", None, 7),
        _scan_row("FT009", None, 8),
    ]

    report = find_duplicates(rows)

    assert report.duplicates == []
    assert report.total_scanned == 9
    assert report.unique_keys == 0


def test_dedup_is_idempotent(service: DuplicateDetectionService, transactions_repo: MagicMock) -> None:
    """Tests that a second scan after removal finds nothing."""
    rows = [_scan_row("FT001", "100", 0), _scan_row("FT001", "100", 1), _scan_row("FT002", "50", 2)]
    transactions_repo.fetch_duplicate_scan_page.side_effect = lambda offset, limit: rows[offset : offset + limit]

    report = service.scan()
    transactions_repo.delete_transactions.side_effect = len
    result = service.remove_duplicates(report.duplicate_ids)
    removed = set(report.duplicate_ids)
    rows = [row for row in rows if row.id not in removed]

    assert result.is_complete
    assert service.scan().duplicates == []


def test_scan_reads_every_batch(service: DuplicateDetectionService, transactions_repo: MagicMock) -> None:
    """Tests that the scan pages through the whole table."""
    service.config.TRANSACTION_FETCH_BATCH_SIZE = 2
    rows = [_scan_row(f"FT{index}", "1", index) for index in range(5)]
    transactions_repo.fetch_duplicate_scan_page.side_effect = lambda offset, limit: rows[offset : offset + limit]

    report = service.scan()

    assert report.total_scanned == 5
    assert transactions_repo.fetch_duplicate_scan_page.call_count == 3


def test_scan_failure(service: DuplicateDetectionService, transactions_repo: MagicMock) -> None:
    """Tests that a failed read is surfaced as a TransactionLoadError."""
    transactions_repo.fetch_duplicate_scan_page.side_effect = OperationalError("SELECT", {}, Exception("down"))

    with pytest.raises(TransactionLoadError):
        service.scan()


def test_remove_in_batches_of_configured_size(service: DuplicateDetectionService, transactions_repo: MagicMock) -> None:
    """Tests that 250 ids are deleted as batches of 100, 100 and 50."""
    ids = [uuid4() for _ in range(250)]
    transactions_repo.delete_transactions.side_effect = [100, 100, 50]

    result = service.remove_duplicates(ids)

    assert [len(call.args[0]) for call in transactions_repo.delete_transactions.call_args_list] == [100, 100, 50]
    assert result.deleted == 250
    assert result.batches_completed == 3
    assert result.is_complete


def test_remove_stops_at_first_failed_batch(service: DuplicateDetectionService, transactions_repo: MagicMock) -> None:
    """Tests that a failing batch halts deletion and reports partial progress."""
    ids = [uuid4() for _ in range(250)]
    transactions_repo.delete_transactions.side_effect = [100, OperationalError("DELETE", {}, Exception("lock")), 50]

    result = service.remove_duplicates(ids)

    assert transactions_repo.delete_transactions.call_count == 2
    assert result.deleted == 100
    assert result.batches_completed == 1
    assert result.error is not None
    assert not result.is_complete


def test_remove_counts_only_rows_actually_deleted(
    service: DuplicateDetectionService, transactions_repo: MagicMock
) -> None:
    """Tests that ids which no longer exist are not reported as deleted."""
    ids = [uuid4() for _ in range(3)]
    transactions_repo.delete_transactions.return_value = 2

    result = service.remove_duplicates(ids)

    assert result.deleted == 2
    assert result.batches_completed == 1
    assert result.error is None
    assert not result.is_complete


def test_remove_nothing(service: DuplicateDetectionService, transactions_repo: MagicMock) -> None:
    """Tests that an empty request deletes nothing."""
    result = service.remove_duplicates([])

    assert result.is_complete
    transactions_repo.delete_transactions.assert_not_called()


def test_remove_rejects_repeated_ids(service: DuplicateDetectionService) -> None:
    """Tests that the same id cannot be requested twice."""
    repeated: UUID = uuid4()

    with pytest.raises(DuplicateRemovalError):
        service.remove_duplicates([repeated, repeated])

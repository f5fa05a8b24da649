"""HTTP endpoints for listing, exporting, reconciling and importing bank transactions."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, UploadFile
from mission_ledger.models.bank_transactions import TransactionRow
from mission_ledger.models.duplicates import DeletionResult, DuplicateReport
from mission_ledger.models.imports import StatementImportResult
from mission_ledger.models.reconciliation import LinkResult
from mission_ledger.providers.config import Config
from mission_ledger.services import (
    DuplicateDetectionService,
    ReconciliationService,
    StatementImportService,
    TransactionLoaderService,
)
from mission_ledger.services.export import export_filename, export_transactions_csv
from mission_ledger.services.transaction_view import (
    SortDirection,
    SortField,
    TransactionFilters,
    build_view,
    filter_transactions,
    sort_transactions,
)
from mission_ledger.web.cache import LoadedTransactionsCache
from mission_ledger.web.dependencies import (
    get_config,
    get_duplicate_service,
    get_filters,
    get_import_service,
    get_loader_service,
    get_reconciliation_service,
    get_transactions_cache,
)
from mission_ledger.web.schemas import (
    LinkRequest,
    MappedImportRequest,
    ReceiptRequest,
    ReceiptResponse,
    RemoveDuplicatesRequest,
    TransactionListResponse,
)

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("", response_model=TransactionListResponse)
async def list_transactions(
    filters: TransactionFilters = Depends(get_filters),
    sort: SortField = SortField.VALUE_DATE,
    direction: SortDirection = SortDirection.DESC,
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None),
    refresh: bool = False,
    config: Config = Depends(get_config),
    loader: TransactionLoaderService = Depends(get_loader_service),
    cache: LoadedTransactionsCache = Depends(get_transactions_cache),
) -> TransactionListResponse:
    """Returns one page of transactions with the totals over all of them.

    Filtering, sorting and pagination run on the server. Pass `refresh=true`
    to reload the working set from the database first.
    """
    page_size = page_size or config.DEFAULT_PAGE_SIZE
    if page_size not in config.PAGE_SIZE_CHOICES:
        raise HTTPException(status_code=422, detail=f"page_size must be one of {config.PAGE_SIZE_CHOICES}.")

    if refresh:
        cache.invalidate()
    loaded = cache.get(loader)
    view = build_view(loaded.rows, filters, sort, direction, page, page_size)
    return TransactionListResponse(
        totals=loaded.totals,
        page=view.page,
        page_size=view.page_size,
        total_pages=view.total_pages,
        filtered_count=view.filtered_count,
        rows=[TransactionRow.from_transaction(row) for row in view.rows],
        pledges=loaded.pledges,
        outgoings=loaded.outgoings,
    )


@router.get("/export")
async def export_transactions(
    filters: TransactionFilters = Depends(get_filters),
    sort: SortField = SortField.VALUE_DATE,
    direction: SortDirection = SortDirection.DESC,
    loader: TransactionLoaderService = Depends(get_loader_service),
    cache: LoadedTransactionsCache = Depends(get_transactions_cache),
) -> Response:
    """Downloads the filtered, sorted transactions as CSV."""
    loaded = cache.get(loader)
    rows = sort_transactions(filter_transactions(loaded.rows, filters), sort, direction)
    return Response(
        content=export_transactions_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@router.get("/duplicates", response_model=DuplicateReport)
async def find_duplicates(
    service: DuplicateDetectionService = Depends(get_duplicate_service),
) -> DuplicateReport:
    """Scans every stored transaction for duplicates by reference and balance."""
    return service.scan()


@router.post("/duplicates/remove", response_model=DeletionResult)
async def remove_duplicates(
    request: RemoveDuplicatesRequest,
    response: Response,
    service: DuplicateDetectionService = Depends(get_duplicate_service),
    cache: LoadedTransactionsCache = Depends(get_transactions_cache),
) -> DeletionResult:
    """Deletes the given duplicate transactions in batches.

    A failed batch stops the run; the response then has status 500 and
    still reports how many rows were deleted before the failure.
    """
    result = service.remove_duplicates(request.ids)
    if result.deleted:
        cache.invalidate()
    if result.error:
        response.status_code = 500
    return result


@router.post("/{transaction_id}/link", response_model=LinkResult)
async def link_transaction(
    transaction_id: UUID,
    request: LinkRequest,
    service: ReconciliationService = Depends(get_reconciliation_service),
    cache: LoadedTransactionsCache = Depends(get_transactions_cache),
) -> LinkResult:
    """Links a transaction to a pledge or an outgoing, or unlinks it when `target_id` is null."""
    result = service.link_transaction(transaction_id, request.kind, request.target_id)
    cache.invalidate()
    return result


@router.put("/{transaction_id}/receipt", response_model=ReceiptResponse)
async def update_receipt(
    transaction_id: UUID,
    request: ReceiptRequest,
    service: ReconciliationService = Depends(get_reconciliation_service),
    cache: LoadedTransactionsCache = Depends(get_transactions_cache),
) -> ReceiptResponse:
    """Sets or clears a transaction's receipt number."""
    stored = service.update_receipt_number(transaction_id, request.receipt_number)
    cache.invalidate()
    return ReceiptResponse(transaction_id=transaction_id, receipt_number=stored)


@router.post("/import", response_model=StatementImportResult)
async def import_statement(
    file: UploadFile,
    service: StatementImportService = Depends(get_import_service),
    cache: LoadedTransactionsCache = Depends(get_transactions_cache),
) -> StatementImportResult:
    """Imports an uploaded bank statement CSV."""
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Invalid file type. Only CSV files are supported.")

    content = await file.read()
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise HTTPException(status_code=400, detail="The file is not valid UTF-8 text.") from e
    return service.import_csv(text, on_imported=cache.on_imported)


@router.post("/import/mapped", response_model=StatementImportResult)
async def import_mapped_statement(
    request: MappedImportRequest,
    service: StatementImportService = Depends(get_import_service),
    cache: LoadedTransactionsCache = Depends(get_transactions_cache),
) -> StatementImportResult:
    """Imports statement lines the client has already mapped to transaction fields."""
    return service.import_mapped(request.transactions, on_imported=cache.on_imported)

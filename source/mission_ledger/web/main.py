"""Main web application entry point."""

import uuid
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from mission_ledger.exceptions.ledger import (
    DuplicateRemovalError,
    InvalidLinkError,
    LedgerError,
    LinkTargetNotFoundError,
    StatementImportError,
    TransactionNotFoundError,
)
from mission_ledger.providers.logging import LoggingProvider
from mission_ledger.web.routers import transactions

CORRELATION_HEADER = "X-Correlation-ID"

ERROR_STATUS_CODES: dict[type[LedgerError], int] = {
    TransactionNotFoundError: 404,
    LinkTargetNotFoundError: 404,
    InvalidLinkError: 422,
    DuplicateRemovalError: 422,
    StatementImportError: 400,
}

app = FastAPI(
    title="Mission Ledger",
    description="Reconciles bank transactions against pledges and outgoings.",
    version="1.0.0",
)

app.include_router(transactions.router)


@app.middleware("http")
async def correlation_id_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Tags every log record written while handling a request with one correlation ID."""
    correlation_id = request.headers.get(CORRELATION_HEADER) or f"http-{uuid.uuid4().hex[:12]}"
    with LoggingProvider().set_correlation_id(correlation_id):
        response = await call_next(request)
    response.headers[CORRELATION_HEADER] = correlation_id
    return response


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    """Turns a ledger error into a JSON error response.

    Args:
        request: The failed request.
        exc: The error raised by a service.

    Returns:
        The response, with a 4xx status for caller mistakes and 500 for
        storage failures.
    """
    status_code = next(
        (code for error_type, code in ERROR_STATUS_CODES.items() if isinstance(exc, error_type)),
        500,
    )
    LoggingProvider().get_logger().error(f"{request.method} {request.url.path} failed ({status_code}): {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint.

    Returns:
        Status dictionary.
    """
    return {"status": "ok"}

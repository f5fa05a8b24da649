"""This module defines the 'transactions' command group for the Mission Ledger CLI."""

import json
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import UUID

import click
from mission_ledger.cli.context import get_output_format
from mission_ledger.cli.progress import spinner_for
from mission_ledger.exceptions.ledger import LedgerError
from mission_ledger.models.bank_transactions import LoadedTransactions, TransactionRow
from mission_ledger.models.reconciliation import LinkKind, LinkResult
from mission_ledger.providers.config import ConfigProvider
from mission_ledger.providers.date import DateProvider
from mission_ledger.services.export import export_filename, export_transactions_csv
from mission_ledger.services.factory import (
    build_duplicate_service,
    build_import_service,
    build_loader_service,
    build_reconciliation_service,
)
from mission_ledger.services.transaction_view import (
    SortDirection,
    SortField,
    TransactionFilters,
    TransactionPage,
    build_view,
    filter_transactions,
    sort_transactions,
)
from rich.console import Console
from rich.table import Table


def filter_options(command: Callable[..., Any]) -> Callable[..., Any]:
    """Adds the transaction filter options to a command.

    Args:
        command: The command function to decorate.

    Returns:
        The decorated command function.
    """
    options = [
        click.option(
            "--start-date",
            type=click.DateTime(formats=[DateProvider.DATE_FORMAT]),
            default=None,
            help="Earliest value date to include (YYYY-MM-DD).",
        ),
        click.option(
            "--end-date",
            type=click.DateTime(formats=[DateProvider.DATE_FORMAT]),
            default=None,
            help="Latest value date to include (YYYY-MM-DD).",
        ),
        click.option("--reference", default=None, help="Filter by transaction reference."),
        click.option("--narrative", default=None, help="Filter by narrative."),
        click.option("--beneficiary-account", default=None, help="Filter by beneficiary account."),
        click.option("--beneficiary-name", default=None, help="Filter by beneficiary name."),
        click.option("--receipt-number", default=None, help="Filter by receipt number."),
        click.option(
            "--sort",
            "sort_field",
            type=click.Choice([field.value for field in SortField]),
            default=SortField.VALUE_DATE.value,
            help="The field to sort by.",
        ),
        click.option(
            "--direction",
            type=click.Choice([direction.value for direction in SortDirection]),
            default=SortDirection.DESC.value,
            help="The sort direction.",
        ),
        click.option("--no-progress", is_flag=True, help="Disable the spinner."),
    ]
    for option in reversed(options):
        command = option(command)
    return command


def _build_filters(
    start_date: datetime | None,
    end_date: datetime | None,
    reference: str | None,
    narrative: str | None,
    beneficiary_account: str | None,
    beneficiary_name: str | None,
    receipt_number: str | None,
) -> TransactionFilters:
    return TransactionFilters(
        start_date=start_date.date() if start_date else None,
        end_date=end_date.date() if end_date else None,
        transaction_reference=reference,
        narrative=narrative,
        beneficiary_account=beneficiary_account,
        beneficiary_name=beneficiary_name,
        receipt_number=receipt_number,
    )


def _load(no_progress: bool) -> LoadedTransactions:
    service = build_loader_service()
    with spinner_for(no_progress, "Loading bank transactions..."):
        return service.load_transactions()


def _render_table(page: TransactionPage) -> None:
    console = Console()
    table = Table(show_lines=False)
    for header in ("Value Date", "Reference", "Debit", "Credit", "Balance", "Narrative", "Receipt", "Linked To"):
        table.add_column(header)
    for row in page.rows:
        table.add_row(
            str(row.value_date or ""),
            row.transaction_reference or "",
            str(row.debit_amount),
            str(row.credit_amount),
            str(row.balance if row.balance is not None else ""),
            row.description or "",
            row.receipt_number or "Not set",
            row.linked_to or ("Reconciled" if row.is_reconciled else "Unreconciled"),
        )
    console.print(table)


@click.group("transactions")
def transactions_group() -> None:
    """Groups commands related to bank transactions."""
    pass


@transactions_group.command("list")
@filter_options
@click.option("--page", type=int, default=1, help="The page to show (1-based).")
@click.option("--page-size", type=int, default=None, help="Rows per page.")
@click.pass_context
def list_transactions(
    ctx: click.Context,
    start_date: datetime | None,
    end_date: datetime | None,
    reference: str | None,
    narrative: str | None,
    beneficiary_account: str | None,
    beneficiary_name: str | None,
    receipt_number: str | None,
    sort_field: str,
    direction: str,
    no_progress: bool,
    page: int,
    page_size: int | None,
) -> None:
    """Lists bank transactions with totals, filters, sorting and pagination.

    Args:
        ctx: The click context.
        start_date: Earliest value date to include.
        end_date: Latest value date to include.
        reference: Transaction reference filter.
        narrative: Narrative filter.
        beneficiary_account: Beneficiary account filter.
        beneficiary_name: Beneficiary name filter.
        receipt_number: Receipt number filter.
        sort_field: The field to sort by.
        direction: The sort direction.
        no_progress: Disable the spinner.
        page: The page to show.
        page_size: Rows per page.
    """
    config = ConfigProvider.get_config()
    page_size = page_size or config.DEFAULT_PAGE_SIZE
    if page_size not in config.PAGE_SIZE_CHOICES:
        choices = ", ".join(str(choice) for choice in config.PAGE_SIZE_CHOICES)
        raise click.BadParameter(f"must be one of {choices}.", param_hint="--page-size")

    filters = _build_filters(
        start_date, end_date, reference, narrative, beneficiary_account, beneficiary_name, receipt_number
    )
    try:
        loaded = _load(no_progress)
    except LedgerError as e:
        click.secho(f"An error occurred: {e}", fg="red")
        raise click.Abort()

    view = build_view(loaded.rows, filters, SortField(sort_field), SortDirection(direction), page, page_size)

    if get_output_format(ctx) == "json":
        payload = {
            "totals": loaded.totals.model_dump(mode="json"),
            "page": view.page,
            "page_size": view.page_size,
            "total_pages": view.total_pages,
            "filtered_count": view.filtered_count,
            "rows": [TransactionRow.from_transaction(row).model_dump(mode="json") for row in view.rows],
        }
        click.echo(json.dumps(payload, indent=2))
        return

    totals = loaded.totals
    click.echo(f"Total debit: {totals.total_debit}  Total credit: {totals.total_credit}")
    click.echo(f"{view.filtered_count} of {totals.count} transactions found")
    _render_table(view)
    if view.total_pages:
        shown_to = min(view.start_index + view.page_size, view.filtered_count)
        click.echo(
            f"Showing {view.start_index + 1} to {shown_to} of {view.filtered_count} transactions "
            f"(page {view.page} of {view.total_pages})"
        )


@transactions_group.command("export")
@filter_options
@click.option(
    "--output-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Where to write the CSV. Defaults to bank-transactions-YYYY-MM-DD.csv.",
)
def export(
    start_date: datetime | None,
    end_date: datetime | None,
    reference: str | None,
    narrative: str | None,
    beneficiary_account: str | None,
    beneficiary_name: str | None,
    receipt_number: str | None,
    sort_field: str,
    direction: str,
    no_progress: bool,
    output_file: Path | None,
) -> None:
    """Exports the filtered transactions as CSV.

    Args:
        start_date: Earliest value date to include.
        end_date: Latest value date to include.
        reference: Transaction reference filter.
        narrative: Narrative filter.
        beneficiary_account: Beneficiary account filter.
        beneficiary_name: Beneficiary name filter.
        receipt_number: Receipt number filter.
        sort_field: The field to sort by.
        direction: The sort direction.
        no_progress: Disable the spinner.
        output_file: The CSV destination.
    """
    filters = _build_filters(
        start_date, end_date, reference, narrative, beneficiary_account, beneficiary_name, receipt_number
    )
    try:
        loaded = _load(no_progress)
    except LedgerError as e:
        click.secho(f"An error occurred: {e}", fg="red")
        raise click.Abort()

    rows = sort_transactions(filter_transactions(loaded.rows, filters), SortField(sort_field), SortDirection(direction))
    destination = output_file or Path(export_filename())
    destination.write_text(export_transactions_csv(rows), encoding="utf-8")
    click.secho(f"Exported {len(rows)} transaction(s) to {destination}", fg="green")


@transactions_group.command("dedup")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.option("--dry-run", is_flag=True, help="Only report the duplicates found.")
@click.option("--no-progress", is_flag=True, help="Disable the spinner.")
@click.pass_context
def dedup(ctx: click.Context, yes: bool, dry_run: bool, no_progress: bool) -> None:
    """Finds duplicate transactions by reference and balance and removes them.

    The oldest record for each reference and balance combination is kept.

    Args:
        ctx: The click context.
        yes: Skip confirmation prompt.
        dry_run: Only report the duplicates found.
        no_progress: Disable the spinner.
    """
    service = build_duplicate_service()
    try:
        with spinner_for(no_progress, "Scanning for duplicates..."):
            report = service.scan()
    except LedgerError as e:
        click.secho(f"An error occurred: {e}", fg="red")
        raise click.Abort()

    if get_output_format(ctx) == "json" and (dry_run or not report.has_duplicates):
        click.echo(json.dumps(report.model_dump(mode="json"), indent=2))
        return

    if report.total_scanned == 0:
        click.echo("No transactions found to check for duplicates.")
        return
    if not report.has_duplicates:
        click.secho(
            "No duplicate transactions were found based on Transaction Reference and Balance. "
            f"Checked {report.total_scanned} total transactions.",
            fg="green",
        )
        return

    click.echo(f"Found {report.duplicate_count} duplicate transaction(s) based on Transaction Reference AND Balance.")
    click.echo(f"Total transactions checked: {report.total_scanned}")
    click.echo(f"Unique transaction reference + balance combinations: {report.unique_keys}")

    if dry_run:
        for entry in report.duplicates:
            click.echo(f"  {entry.id}  {entry.transaction_reference}  {entry.balance}  (keeps {entry.kept_id})")
        return

    if not yes:
        click.confirm(
            "The oldest record for each Transaction Reference + Balance combination will be kept, and newer "
            "duplicates will be removed. Are you sure you want to remove them? This action cannot be undone.",
            abort=True,
        )

    try:
        result = service.remove_duplicates(report.duplicate_ids)
    except LedgerError as e:
        click.secho(f"An error occurred: {e}", fg="red")
        raise click.Abort()

    if result.error:
        click.secho(f"{result.error} ({result.deleted} of {result.requested} removed before the failure)", fg="red")
        raise click.Abort()
    click.secho(f"Successfully removed {result.deleted} duplicate transaction(s).", fg="green")


def _echo_link_result(ctx: click.Context, result: LinkResult) -> None:
    if get_output_format(ctx) == "json":
        click.echo(json.dumps(result.model_dump(mode="json"), indent=2))
        return
    if not result.linked:
        click.secho(f"Transaction has been unlinked from {result.kind.value}.", fg="green")
        return
    click.secho(f"Transaction has been linked to the selected {result.kind.value}.", fg="green")
    if result.fulfillment_status is not None:
        click.echo(f"Pledge fulfillment: {result.fulfillment_status}%")
    if result.paid_status is not None:
        click.echo(f"Outgoing paid amount: {result.paid_amount} ({result.paid_status.value})")


@transactions_group.command("link")
@click.argument("transaction_id", type=click.UUID)
@click.option("--pledge", "pledge_id", type=click.UUID, default=None, help="The pledge to link a credit to.")
@click.option("--outgoing", "outgoing_id", type=click.UUID, default=None, help="The outgoing to link a debit to.")
@click.pass_context
def link(ctx: click.Context, transaction_id: UUID, pledge_id: UUID | None, outgoing_id: UUID | None) -> None:
    """Links a transaction to a pledge or an outgoing.

    Args:
        ctx: The click context.
        transaction_id: The transaction to link.
        pledge_id: The pledge to link to.
        outgoing_id: The outgoing to link to.
    """
    if (pledge_id is None) == (outgoing_id is None):
        raise click.UsageError("Pass exactly one of --pledge or --outgoing.")

    kind = LinkKind.PLEDGE if pledge_id else LinkKind.OUTGOING
    try:
        result = build_reconciliation_service().link_transaction(transaction_id, kind, pledge_id or outgoing_id)
    except LedgerError as e:
        click.secho(f"Failed to link transaction: {e}", fg="red")
        raise click.Abort()
    _echo_link_result(ctx, result)


@transactions_group.command("unlink")
@click.argument("transaction_id", type=click.UUID)
@click.option(
    "--kind",
    type=click.Choice([kind.value for kind in LinkKind]),
    required=True,
    help="Whether to clear the pledge or the outgoing link.",
)
@click.pass_context
def unlink(ctx: click.Context, transaction_id: UUID, kind: str) -> None:
    """Removes a transaction's pledge or outgoing link.

    Args:
        ctx: The click context.
        transaction_id: The transaction to unlink.
        kind: Which link to clear.
    """
    try:
        result = build_reconciliation_service().link_transaction(transaction_id, LinkKind(kind), None)
    except LedgerError as e:
        click.secho(f"Failed to unlink transaction: {e}", fg="red")
        raise click.Abort()
    _echo_link_result(ctx, result)


@transactions_group.command("receipt")
@click.argument("transaction_id", type=click.UUID)
@click.argument("receipt_number", required=False, default="")
def receipt(transaction_id: UUID, receipt_number: str) -> None:
    """Sets, or clears when omitted, a transaction's receipt number.

    Args:
        transaction_id: The transaction to update.
        receipt_number: The receipt number.
    """
    try:
        stored = build_reconciliation_service().update_receipt_number(transaction_id, receipt_number)
    except LedgerError as e:
        click.secho(f"Failed to update receipt number: {e}", fg="red")
        raise click.Abort()
    if stored:
        click.secho(f"Receipt number has been updated to {stored}.", fg="green")
    else:
        click.secho("Receipt number has been cleared.", fg="yellow")


@transactions_group.command("import")
@click.argument("statement", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_statement(ctx: click.Context, statement: Path) -> None:
    """Imports a bank statement CSV, skipping references already stored.

    Args:
        ctx: The click context.
        statement: The CSV file to import.
    """
    if statement.suffix.lower() != ".csv":
        click.secho("Invalid file type. Only CSV files are supported.", fg="red")
        raise click.Abort()

    try:
        result = build_import_service().import_csv(statement.read_text(encoding="utf-8-sig"))
    except LedgerError as e:
        click.secho(f"Upload failed: {e}", fg="red")
        raise click.Abort()

    if get_output_format(ctx) == "json":
        click.echo(json.dumps(result.model_dump(mode="json"), indent=2))
        return
    click.secho(result.message, fg="green")
    for reference in result.duplicate_references:
        click.echo(f"  skipped: {reference}")

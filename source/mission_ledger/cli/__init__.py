"""This module initializes the CLI application."""

import uuid

import click
from mission_ledger.cli.context import Context
from mission_ledger.cli.transactions import transactions_group
from mission_ledger.cli.web import web_group
from mission_ledger.providers.logging import LoggingProvider


def create_cli() -> click.Group:
    """Create and configure the main CLI group with all subcommands.

    Returns:
        The main Click command group for the application.
    """

    @click.group()
    @click.option(
        "--log-level",
        type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
        help="Override the default log level for this command.",
    )
    @click.option(
        "--output",
        type=click.Choice(["text", "json"], case_sensitive=False),
        default="text",
        help="Set the output format.",
    )
    @click.pass_context
    def cli(ctx: click.Context, log_level: str | None, output: str) -> None:
        """Reconcile bank transactions against pledges and outgoings.

        Args:
            ctx: The Click context object.
            log_level: The desired logging level.
            output: The desired output format.
        """
        provider = LoggingProvider()
        provider.get_logger(level_override=log_level)
        ctx.with_resource(provider.set_correlation_id(f"cli-{uuid.uuid4().hex[:12]}"))
        ctx.obj = Context(output_format=output.lower())

    cli.add_command(transactions_group)
    cli.add_command(web_group)

    return cli

"""Main entry point for the Mission Ledger CLI."""

from mission_ledger.cli import create_cli

cli = create_cli()


def main() -> None:
    """CLI entry point."""
    cli()


if __name__ == "__main__":
    main()

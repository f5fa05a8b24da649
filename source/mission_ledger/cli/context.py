"""This module defines the object that carries global CLI options to subcommands."""

import click


class Context:
    """A context object to pass global options to subcommands."""

    def __init__(self, output_format: str):
        """Initializes the context.

        Args:
            output_format: The desired output format ('text' or 'json').
        """
        self.output_format = output_format


def get_output_format(ctx: click.Context) -> str:
    """Returns the output format chosen on the root command.

    Subcommands invoked on their own (as in tests) default to text.

    Args:
        ctx: The click context of the running command.

    Returns:
        The output format.
    """
    obj = ctx.find_object(Context)
    return obj.output_format if obj else "text"

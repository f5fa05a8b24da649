"""This module provides the spinners shown while long reads are running."""

import os
import sys
from collections.abc import Generator
from contextlib import AbstractContextManager, contextmanager

from rich.progress import Progress, SpinnerColumn, TextColumn


class ProgressFactory:
    """A factory for creating and configuring progress indicators."""

    @contextmanager
    def spinner(self, label: str) -> Generator[None, None, None]:
        """Creates a new spinner.

        Args:
            label: The label for the spinner.

        Yields:
            None.
        """
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(description=label, total=None)
            yield


@contextmanager
def null_spinner(label: str) -> Generator[None, None, None]:  # noqa: F841
    """A null spinner that does nothing.

    Args:
        label: The label for the spinner.

    Yields:
        None
    """
    yield


def should_show_progress(no_progress_flag: bool) -> bool:
    """Determines whether a spinner should be displayed.

    Args:
        no_progress_flag: The value of the --no-progress flag.

    Returns:
        True if the spinner should be shown, False otherwise.
    """
    if no_progress_flag or os.getenv("CI") == "1":
        return False
    return sys.stderr.isatty()


def spinner_for(no_progress_flag: bool, label: str) -> AbstractContextManager[None]:
    """Returns a real spinner on interactive terminals and a null one otherwise.

    Args:
        no_progress_flag: The value of the --no-progress flag.
        label: The label for the spinner.

    Returns:
        A context manager to wrap the long-running call in.
    """
    if should_show_progress(no_progress_flag):
        return ProgressFactory().spinner(label)
    return null_spinner(label)

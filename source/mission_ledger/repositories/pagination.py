"""This module provides the batched range-fetch used to read whole tables.

Reads are issued as consecutive `OFFSET`/`LIMIT` windows so that no single
query returns more than one batch of rows.
"""

from collections.abc import Callable
from typing import TypeVar

T = TypeVar("T")


def fetch_all_in_batches(fetch_page: Callable[[int, int], list[T]], batch_size: int) -> list[T]:
    """Fetches every row by requesting consecutive pages until a short page arrives.

    Args:
        fetch_page: A callable taking `(offset, limit)` and returning at most
            `limit` rows starting at `offset`.
        batch_size: The number of rows requested per page.

    Returns:
        All rows, in the order the pages returned them.

    Raises:
        ValueError: If `batch_size` is not positive.
    """
    if batch_size <= 0:
        raise ValueError("batch_size must be a positive integer.")

    rows: list[T] = []
    offset = 0
    while True:
        page = fetch_page(offset, batch_size)
        if not page:
            break
        rows.extend(page)
        if len(page) < batch_size:
            break
        offset += batch_size
    return rows

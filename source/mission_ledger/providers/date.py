"""This module provides centralized date-related utilities."""

import re
from datetime import date, datetime


class DateProvider:
    """Provides centralized constants and methods for date handling.

    This class centralizes date-related formats and logic to ensure
    consistency across the application.
    """

    DATE_FORMAT = "%Y-%m-%d"

    _DAY_FIRST_PATTERN = re.compile(r"^(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4})$")
    _FALLBACK_FORMATS = ("%Y/%m/%d", "%d %b %Y", "%d-%b-%Y", "%d %B %Y", "%b %d, %Y")

    @classmethod
    def parse_statement_date(cls, value: str | None) -> date | None:
        """Parses a date as it appears in a bank statement export.

        Day-first numeric dates (`31/01/2024`, `31-01-2024`, `31.01.2024`)
        are tried first, since that is how the bank exports them. ISO dates
        and a handful of spelled-out month formats are accepted after that.

        Args:
            value: The raw cell value.

        Returns:
            The parsed date, or None if the value is empty or unparsable.
        """
        if not value or not value.strip():
            return None
        cleaned = value.strip()

        match = cls._DAY_FIRST_PATTERN.match(cleaned)
        if match:
            day, month, year = (int(part) for part in match.groups())
            try:
                return date(year, month, day)
            except ValueError:
                return None

        try:
            return datetime.fromisoformat(cleaned).date()
        except ValueError:
            pass

        for fmt in cls._FALLBACK_FORMATS:
            try:
                return datetime.strptime(cleaned, fmt).date()
            except ValueError:
                continue
        return None

    @staticmethod
    def today() -> date:
        """Returns the current local date.

        Returns:
            Today's date.
        """
        return date.today()

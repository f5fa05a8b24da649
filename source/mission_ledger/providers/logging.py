"""This module sets up a centralized, context-aware logging system.

It provides a `LoggingProvider` singleton that configures and dispenses a
logger. A key feature is the `ContextualFilter`, which uses thread-local
storage to inject a `correlation_id` into every log message, so that the
records of one CLI command or one HTTP request can be traced together.
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Generator
from contextlib import contextmanager
from logging import Filter, Formatter, Logger, LogRecord, StreamHandler, _nameToLevel, getLogger

from mission_ledger.providers.config import ConfigProvider

_log_context = threading.local()

LOGGER_NAME = "mission_ledger"


class ContextualFilter(Filter):
    """A logging filter that makes a correlation ID available to the log formatter."""

    def filter(self, record: LogRecord) -> bool:
        """Adds the correlation ID to the log record from thread-local context.

        Args:
            record: The log record to be filtered.

        Returns:
            Always True to ensure the log record is processed.
        """
        record.correlation_id = getattr(_log_context, "correlation_id", None) or "-"
        return True


class LoggingProvider:
    """Provides a configured logger instance for the application.

    This class uses a Singleton pattern to ensure that there is only one
    instance of the logger throughout the application's lifecycle, configured
    once based on settings from the config provider.
    """

    _instance: LoggingProvider | None = None
    _logger: Logger | None = None
    _is_configured: bool = False

    def __new__(cls) -> LoggingProvider:
        """Implements the Singleton pattern.

        Returns:
            The singleton instance of the LoggingProvider.
        """
        if not cls._instance:  # pragma: no cover
            cls._instance = super().__new__(cls)
        return cls._instance

    def _configure_logger(self) -> Logger:
        """Private method to configure the logger. This is called only once.

        Returns:
            The configured logger instance.
        """
        logger = getLogger(LOGGER_NAME)

        if self._is_configured:  # pragma: no cover
            return logger

        config = ConfigProvider.get_config()
        log_level_str = config.LOG_LEVEL
        logger.setLevel(_nameToLevel.get(log_level_str.upper(), _nameToLevel["INFO"]))

        if not logger.handlers:
            handler = StreamHandler(sys.stderr)
            formatter = Formatter(
                "%(asctime)s - %(name)s - [%(levelname)s] [%(correlation_id)s] - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
            handler.setFormatter(formatter)
            handler.addFilter(ContextualFilter())
            logger.addHandler(handler)

        LoggingProvider._is_configured = True
        logger.debug(f"Logger configured with level: {log_level_str}")
        return logger

    def get_logger(self, level_override: str | None = None) -> Logger:
        """Returns the configured logger instance.

        The logger is configured lazily on first use, which keeps module
        imports and test setups free of logging side effects.

        Args:
            level_override: An optional level name (e.g. "DEBUG") that
                replaces the configured level, used by the CLI's
                `--log-level` option.

        Returns:
            The configured logger instance.
        """
        if not LoggingProvider._logger:
            LoggingProvider._logger = self._configure_logger()
        if level_override:
            LoggingProvider._logger.setLevel(_nameToLevel.get(level_override.upper(), _nameToLevel["INFO"]))
        return LoggingProvider._logger

    @contextmanager
    def set_correlation_id(self, correlation_id: str) -> Generator[None, None, None]:
        """A context manager to set and automatically clear the correlation ID.

        Args:
            correlation_id: The correlation ID to set for the context.

        Yields:
            None.
        """
        try:
            _log_context.correlation_id = correlation_id
            yield
        finally:
            _log_context.correlation_id = None

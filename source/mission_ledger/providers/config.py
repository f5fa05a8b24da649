"""This module defines the configuration management for the application.

It uses Pydantic's BaseSettings to create a strongly-typed configuration
class that reads from environment variables and .env files. This ensures
all required configuration is present and valid at startup.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """A Pydantic model for managing application settings.

    It automatically loads configuration from environment variables and .env files.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    POSTGRES_DRIVER: str = "postgresql"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: str = "5432"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "mission_ledger"
    POSTGRES_DB_SCHEMA: str | None = None

    LOG_LEVEL: str = "INFO"

    TRANSACTION_FETCH_BATCH_SIZE: int = 1000
    DEDUP_DELETE_BATCH_SIZE: int = 100

    DEFAULT_PAGE_SIZE: int = 10
    PAGE_SIZE_CHOICES: list[int] = [10, 25, 50, 100]

    RECONCILIATION_NET_PREVIOUS_LINK: bool = False

    IMPORT_DUPLICATE_SAMPLE_SIZE: int = 10

    @model_validator(mode="after")
    def validate_batch_sizes(self) -> "Config":
        """Rejects batch and page sizes that would stall the batched loops.

        Returns:
            The validated Config object.

        Raises:
            ValueError: If any batch or page size is not positive.
        """
        for name in ("TRANSACTION_FETCH_BATCH_SIZE", "DEDUP_DELETE_BATCH_SIZE", "DEFAULT_PAGE_SIZE"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be a positive integer.")

        if self.DEFAULT_PAGE_SIZE not in self.PAGE_SIZE_CHOICES:
            self.PAGE_SIZE_CHOICES = sorted({*self.PAGE_SIZE_CHOICES, self.DEFAULT_PAGE_SIZE})

        return self


class ConfigProvider:
    """A provider class that acts as a factory for the application's configuration.

    It does not hold state but provides a method to create fresh config instances.
    """

    @staticmethod
    def get_config() -> Config:
        """Factory method that instantiates and returns a new Config object.

        Calling this function will always create a new instance of the Config model,
        which forces Pydantic to reload and re-validate all settings from the
        current environment variables. This ensures the configuration is always fresh.

        Returns:
            A new, validated Config object.
        """
        return Config()

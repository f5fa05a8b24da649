from unittest.mock import MagicMock

import pytest


@pytest.fixture
def mock_engine() -> MagicMock:
    """Fixture for a mocked database engine."""
    return MagicMock()


@pytest.fixture
def mock_conn(mock_engine: MagicMock) -> MagicMock:
    """Fixture for the connection the mocked engine hands out."""
    conn = MagicMock()
    mock_engine.connect.return_value.__enter__.return_value = conn
    return conn

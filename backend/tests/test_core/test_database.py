"""
Tests for psycopg2 connection helpers
"""
from unittest.mock import MagicMock, patch

import psycopg2
import pytest
from psycopg2.extras import RealDictCursor

from innovates.core.database import get_db_connection_dict_with_retry, get_db_connection_with_retry


@pytest.fixture(autouse=True)
def database_url():
    with patch('innovates.core.database.settings') as mock_settings:
        mock_settings.DATABASE_URL = "postgresql://localhost/innovates"
        yield mock_settings


class TestConnectionRetry:
    """Dropped pooler connections are retried with exponential backoff"""

    @patch('innovates.core.database.time.sleep')
    @patch('innovates.core.database.psycopg2.connect')
    def test_retries_after_operational_error(self, mock_connect, mock_sleep):
        # Arrange
        conn = MagicMock()
        mock_connect.side_effect = [
            psycopg2.OperationalError("SSL connection has been closed unexpectedly"),
            psycopg2.OperationalError("server closed the connection"),
            conn,
        ]

        # Act
        result = get_db_connection_with_retry(max_retries=3, retry_delay=1.0)

        # Assert
        assert result is conn
        assert mock_connect.call_count == 3
        assert [c[0][0] for c in mock_sleep.call_args_list] == [1.0, 2.0]

    @patch('innovates.core.database.time.sleep')
    @patch('innovates.core.database.psycopg2.connect')
    def test_raises_after_last_attempt(self, mock_connect, mock_sleep):
        mock_connect.side_effect = psycopg2.OperationalError("could not connect")

        with pytest.raises(psycopg2.OperationalError):
            get_db_connection_with_retry(max_retries=2, retry_delay=0.1)
        assert mock_connect.call_count == 2

    @patch('innovates.core.database.time.sleep')
    @patch('innovates.core.database.psycopg2.connect')
    def test_repository_connections_use_dict_cursor_and_retry(self, mock_connect, mock_sleep):
        conn = MagicMock()
        mock_connect.side_effect = [psycopg2.OperationalError("SSL connection has been closed unexpectedly"), conn]

        result = get_db_connection_dict_with_retry()

        assert result is conn
        assert mock_connect.call_args.kwargs == {'cursor_factory': RealDictCursor}

    def test_missing_database_url(self, database_url):
        database_url.DATABASE_URL = ""
        with pytest.raises(Exception, match="DATABASE_URL not configured"):
            get_db_connection_dict_with_retry()

"""
Unit tests for NewsletterRepository tracking queries
"""
from unittest.mock import patch

from innovates.repositories.newsletter_repository import NewsletterRepository


class TestNewsletterTracking:

    @patch('innovates.repositories.newsletter_repository.get_db_connection_dict_with_retry')
    def test_register_open_counts_first_open_only(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = None

        assert NewsletterRepository().register_open('nl-1', 'sub-1', 'Mail/1.0', '1.2.3.4') is True
        assert cursor.execute.call_count == 3
        conn.commit.assert_called_once()

    @patch('innovates.repositories.newsletter_repository.get_db_connection_dict_with_retry')
    def test_register_open_ignores_repeat_open(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = {'?column?': 1}

        assert NewsletterRepository().register_open('nl-1', 'sub-1', None, None) is False
        assert cursor.execute.call_count == 1
        conn.commit.assert_not_called()

    @patch('innovates.repositories.newsletter_repository.get_db_connection_dict_with_retry')
    def test_register_click_returns_original_url(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = {'newsletter_id': 'nl-1', 'original_url': 'https://example.com/story'}

        url = NewsletterRepository().register_click('token-1', None, None)

        assert url == 'https://example.com/story'
        conn.commit.assert_called_once()

    @patch('innovates.repositories.newsletter_repository.get_db_connection_dict_with_retry')
    def test_register_click_unknown_token(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = None

        assert NewsletterRepository().register_click('nope', None, None) is None
        conn.rollback.assert_called_once()

    @patch('innovates.repositories.newsletter_repository.get_db_connection_dict_with_retry')
    def test_count_events_groups_by_type(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchall.return_value = [
            {'event_type': 'sent', 'total': 10},
            {'event_type': 'opened', 'total': 4},
        ]

        assert NewsletterRepository().count_events('nl-1') == {'sent': 10, 'opened': 4}

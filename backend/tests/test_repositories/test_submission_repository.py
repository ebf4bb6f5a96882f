"""
Unit tests for SubmissionRepository

These tests validate repository logic without requiring a database connection.
"""
import pytest
from datetime import datetime, timezone
from unittest.mock import patch

from innovates.domain.submission import ArticleSummary, Submission
from innovates.repositories.submission_repository import SubmissionRepository


class TestSubmissionRepository:
    """Test SubmissionRepository methods"""

    @patch('innovates.repositories.submission_repository.get_db_connection_dict_with_retry')
    def test_find_by_id_returns_submission(self, mock_get_conn, mock_db, submission_row):
        """find_by_id maps the row to a Submission domain model"""
        # Arrange
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = submission_row

        # Act
        result = SubmissionRepository().find_by_id(submission_row['id'])

        # Assert
        assert isinstance(result, Submission)
        assert result.product_name == 'Solar Snack Box'
        assert result.image_urls == ['https://cdn.example.com/box.png']
        cursor.execute.assert_called_once()
        cursor.close.assert_called_once()
        conn.close.assert_called_once()

    @patch('innovates.repositories.submission_repository.get_db_connection_dict_with_retry')
    def test_find_by_id_returns_none_when_not_found(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = None

        assert SubmissionRepository().find_by_id("missing") is None

    @patch('innovates.repositories.submission_repository.get_db_connection_dict_with_retry')
    def test_null_arrays_become_empty_lists(self, mock_get_conn, mock_db, submission_row):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = {**submission_row, 'image_urls': None, 'selected_vendors': None}

        result = SubmissionRepository().find_by_id(submission_row['id'])

        assert result.image_urls == []
        assert result.selected_vendors == []

    @patch('innovates.repositories.submission_repository.get_db_connection_dict_with_retry')
    def test_find_all_returns_submissions_and_count(self, mock_get_conn, mock_db, submission_row):
        """find_all runs a count query then the page query"""
        # Arrange
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = {'total': 7}
        cursor.fetchall.return_value = [submission_row]

        # Act
        submissions, total = SubmissionRepository().find_all(status='pending', search='solar', limit=1)

        # Assert
        assert total == 7
        assert len(submissions) == 1
        count_sql, count_params = cursor.execute.call_args_list[0][0]
        assert "status = %s" in count_sql
        assert "ILIKE" in count_sql
        assert count_params == ['pending', '%solar%', '%solar%', '%solar%']

    @patch('innovates.repositories.submission_repository.get_db_connection_dict_with_retry')
    def test_create_commits_and_wraps_recommendations(self, mock_get_conn, mock_db, submission_row):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = submission_row

        result = SubmissionRepository().create({
            'full_name': 'Jane Inventor',
            'email': 'jane@example.com',
            'product_name': 'Solar Snack Box',
            'recommendations': [{'name': 'Sam', 'email': 'sam@example.com'}],
        })

        assert result.id == submission_row['id']
        conn.commit.assert_called_once()
        params = cursor.execute.call_args[0][1]
        # psycopg2 Json adapter keeps the original list on .adapted
        assert params[3].adapted == [{'name': 'Sam', 'email': 'sam@example.com'}]

    @patch('innovates.repositories.submission_repository.get_db_connection_dict_with_retry')
    def test_create_rolls_back_on_error(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.execute.side_effect = RuntimeError("insert failed")

        with pytest.raises(RuntimeError):
            SubmissionRepository().create({'full_name': 'Jane', 'email': 'j@example.com', 'product_name': 'X'})

        conn.rollback.assert_called_once()
        conn.close.assert_called_once()

    @patch('innovates.repositories.submission_repository.get_db_connection_dict_with_retry')
    def test_update_ignores_non_editable_columns(self, mock_get_conn, mock_db, submission_row):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = submission_row

        SubmissionRepository().update(submission_row['id'], {'pinned': True, 'id': 'hijack', 'approved_by': 'x'})

        sql, params = cursor.execute.call_args[0]
        assert "pinned = %s" in sql
        assert "approved_by" not in sql.split("RETURNING")[0]
        assert params == [True, submission_row['id']]

    @patch('innovates.repositories.submission_repository.get_db_connection_dict_with_retry')
    def test_search_published_returns_article_summaries(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchall.return_value = [{
            'id': 'abc', 'slug': 'solar-snack-box', 'full_name': 'Jane Inventor',
            'product_name': 'Solar Snack Box', 'category': None, 'description': None,
            'city': None, 'state': None, 'image_urls': None, 'featured': False,
            'pinned': True, 'approved_at': datetime(2025, 3, 2, tzinfo=timezone.utc),
            'created_at': None,
        }]

        articles = SubmissionRepository().search_published("solar")

        assert len(articles) == 1
        assert isinstance(articles[0], ArticleSummary)
        assert articles[0].image_urls == []

    def test_set_featured_with_no_ids_skips_database(self):
        with patch('innovates.repositories.submission_repository.get_db_connection_dict_with_retry') as mock_get_conn:
            assert SubmissionRepository().set_featured([], True) == 0
            mock_get_conn.assert_not_called()

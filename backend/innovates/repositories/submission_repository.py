"""
Submission Repository - Data Access Layer for story submissions

Handles all database queries for submissions (admin review and public
articles) and returns Submission domain models.
"""
from datetime import datetime
from typing import List, Optional, Tuple, Dict, Any

from psycopg2.extras import Json

from innovates.domain.submission import Submission, ArticleSummary
from innovates.core.database import get_db_connection_dict_with_retry


SUBMISSION_COLUMNS = """
    id, full_name, email, phone_number, city, state, background, website, social_media,
    product_name, category, description, problem_solved, stage,
    idea_origin, biggest_challenge, proudest_moment, inspiration, motivation,
    image_urls, recommendations, selected_vendors, generated_article,
    status, slug, featured, pinned, is_manual_submission, approved_at, approved_by,
    created_at, updated_at
"""

ARTICLE_COLUMNS = """
    id, slug, full_name, product_name, category, description, city, state,
    image_urls, featured, pinned, approved_at, created_at
"""

# Columns an admin may edit through update()
EDITABLE_COLUMNS = {
    'full_name', 'email', 'phone_number', 'city', 'state', 'background', 'website',
    'social_media', 'product_name', 'category', 'description', 'problem_solved', 'stage',
    'idea_origin', 'biggest_challenge', 'proudest_moment', 'inspiration', 'motivation',
    'generated_article', 'image_urls', 'featured', 'pinned', 'status', 'slug',
}


def _to_submission(row: Dict[str, Any]) -> Submission:
    data = dict(row)
    data['image_urls'] = data.get('image_urls') or []
    data['selected_vendors'] = data.get('selected_vendors') or []
    for key in ('id', 'approved_by'):
        if data.get(key) is not None:
            data[key] = str(data[key])
    return Submission(**data)


def _to_article(row: Dict[str, Any]) -> ArticleSummary:
    data = dict(row)
    data['id'] = str(data['id'])
    data['image_urls'] = data.get('image_urls') or []
    return ArticleSummary(**data)


class SubmissionRepository:
    """
    Repository for Submission data access

    All SQL queries for submissions are centralized here.
    """

    def create(self, data: Dict[str, Any]) -> Submission:
        """
        Insert a new submission

        Args:
            data: Column values (recommendations may be a list of dicts)

        Returns:
            The stored Submission
        """
        values = dict(data)
        if 'recommendations' in values:
            values['recommendations'] = Json(values['recommendations'])

        columns = list(values.keys())
        placeholders = ", ".join(["%s"] * len(columns))

        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO submissions ({", ".join(columns)})
                VALUES ({placeholders})
                RETURNING {SUBMISSION_COLUMNS}
            """, [values[c] for c in columns])

            row = cursor.fetchone()
            conn.commit()
            return _to_submission(row)

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def find_by_id(self, submission_id: str) -> Optional[Submission]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {SUBMISSION_COLUMNS}
                FROM submissions
                WHERE id = %s
            """, (submission_id,))

            row = cursor.fetchone()
            return _to_submission(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_by_slug(self, slug: str, approved_only: bool = True) -> Optional[Submission]:
        """Find the article published under slug"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            query = f"SELECT {SUBMISSION_COLUMNS} FROM submissions WHERE slug = %s"
            if approved_only:
                query += " AND status = 'approved'"
            cursor.execute(query, (slug,))

            row = cursor.fetchone()
            return _to_submission(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def slug_exists(self, slug: str) -> bool:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("SELECT 1 FROM submissions WHERE slug = %s LIMIT 1", (slug,))
            return cursor.fetchone() is not None

        finally:
            cursor.close()
            conn.close()

    def find_all(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Submission], int]:
        """
        Find submissions with filters (admin dashboard)

        Args:
            status: Filter by status (draft, pending, approved, rejected)
            search: Match name, email or product name
            limit: Maximum results to return
            offset: Number of results to skip

        Returns:
            Tuple of (list of submissions, total count)
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            conditions = []
            params = []

            if status:
                conditions.append("status = %s")
                params.append(status)

            if search:
                conditions.append("(full_name ILIKE %s OR email ILIKE %s OR product_name ILIKE %s)")
                search_pattern = f"%{search}%"
                params.extend([search_pattern, search_pattern, search_pattern])

            where_clause = "WHERE " + " AND ".join(conditions) if conditions else ""

            cursor.execute(f"SELECT COUNT(*) as total FROM submissions {where_clause}", params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {SUBMISSION_COLUMNS}
                FROM submissions
                {where_clause}
                ORDER BY created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            rows = cursor.fetchall()
            return [_to_submission(row) for row in rows], total

        finally:
            cursor.close()
            conn.close()

    def find_published(self, category: Optional[str] = None, limit: int = 20, offset: int = 0) -> List[ArticleSummary]:
        """Approved articles, pinned then featured first, newest next"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            conditions = ["status = 'approved'", "slug IS NOT NULL"]
            params: List[Any] = []

            if category:
                conditions.append("category = %s")
                params.append(category)

            cursor.execute(f"""
                SELECT {ARTICLE_COLUMNS}
                FROM submissions
                WHERE {" AND ".join(conditions)}
                ORDER BY pinned DESC, featured DESC, COALESCE(approved_at, created_at) DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            return [_to_article(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def search_published(self, query: str, limit: int = 10) -> List[ArticleSummary]:
        """Case-insensitive search across approved articles"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            pattern = f"%{query}%"
            cursor.execute(f"""
                SELECT {ARTICLE_COLUMNS}
                FROM submissions
                WHERE status = 'approved'
                  AND (
                    full_name ILIKE %s OR product_name ILIKE %s OR description ILIKE %s
                    OR category ILIKE %s OR generated_article ILIKE %s
                  )
                ORDER BY created_at DESC
                LIMIT %s
            """, (pattern, pattern, pattern, pattern, pattern, limit))

            return [_to_article(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_latest_with_articles(self, limit: int = 5) -> List[Submission]:
        """Newest approved submissions that have generated article text"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {SUBMISSION_COLUMNS}
                FROM submissions
                WHERE status = 'approved'
                  AND generated_article IS NOT NULL
                  AND generated_article <> ''
                ORDER BY created_at DESC
                LIMIT %s
            """, (limit,))

            return [_to_submission(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_approved_between(self, start: datetime, end: datetime) -> List[Submission]:
        """Approved, not featured submissions whose approved_at falls in [start, end)"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {SUBMISSION_COLUMNS}
                FROM submissions
                WHERE status = 'approved'
                  AND featured = false
                  AND email IS NOT NULL
                  AND approved_at >= %s AND approved_at < %s
                ORDER BY approved_at
            """, (start, end))

            return [_to_submission(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_sitemap_entries(self) -> List[Dict[str, Any]]:
        """slug/updated_at pairs for every approved article"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT slug, updated_at
                FROM submissions
                WHERE status = 'approved' AND slug IS NOT NULL
                ORDER BY updated_at DESC
            """)
            return [dict(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def update(self, submission_id: str, changes: Dict[str, Any]) -> Optional[Submission]:
        """
        Update editable columns of a submission

        Returns:
            Updated Submission or None if not found
        """
        fields = {k: v for k, v in changes.items() if k in EDITABLE_COLUMNS}
        if not fields:
            return self.find_by_id(submission_id)

        assignments = ", ".join(f"{column} = %s" for column in fields)

        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                UPDATE submissions
                SET {assignments}, updated_at = NOW()
                WHERE id = %s
                RETURNING {SUBMISSION_COLUMNS}
            """, list(fields.values()) + [submission_id])

            row = cursor.fetchone()
            conn.commit()
            return _to_submission(row) if row else None

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def approve(self, submission_id: str, slug: str, approved_by: Optional[str]) -> Optional[Submission]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                UPDATE submissions
                SET status = 'approved',
                    slug = %s,
                    approved_at = NOW(),
                    approved_by = %s,
                    updated_at = NOW()
                WHERE id = %s
                RETURNING {SUBMISSION_COLUMNS}
            """, (slug, approved_by, submission_id))

            row = cursor.fetchone()
            conn.commit()
            return _to_submission(row) if row else None

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def set_featured(self, submission_ids: List[str], featured: bool) -> int:
        """Set the featured flag on many submissions, returns rows changed"""
        if not submission_ids:
            return 0

        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE submissions
                SET featured = %s, updated_at = NOW()
                WHERE id::text = ANY(%s)
            """, (featured, list(submission_ids)))

            count = cursor.rowcount
            conn.commit()
            return count

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def append_image(self, submission_id: str, image_url: str) -> Optional[Submission]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                UPDATE submissions
                SET image_urls = array_append(COALESCE(image_urls, '{{}}'), %s),
                    updated_at = NOW()
                WHERE id = %s
                RETURNING {SUBMISSION_COLUMNS}
            """, (image_url, submission_id))

            row = cursor.fetchone()
            conn.commit()
            return _to_submission(row) if row else None

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

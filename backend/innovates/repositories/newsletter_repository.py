"""
Newsletter Repository - Data Access Layer for newsletters, subscribers,
tracked links and email analytics events
"""
from typing import List, Optional, Dict, Any, Set

from psycopg2.extras import Json

from innovates.domain.newsletter import Newsletter, Subscriber
from innovates.core.database import get_db_connection_dict_with_retry


NEWSLETTER_COLUMNS = """
    id, title, subject, content, html_content, status, sent_at,
    recipient_count, open_count, click_count, created_at, updated_at
"""

SUBSCRIBER_COLUMNS = """
    id, email, full_name, is_active, subscribed_at, unsubscribed_at, subscription_source
"""


def _to_newsletter(row: Dict[str, Any]) -> Newsletter:
    data = dict(row)
    data['id'] = str(data['id'])
    for key in ('recipient_count', 'open_count', 'click_count'):
        data[key] = data.get(key) or 0
    return Newsletter(**data)


def _to_subscriber(row: Dict[str, Any]) -> Subscriber:
    data = dict(row)
    data['id'] = str(data['id'])
    return Subscriber(**data)


class NewsletterRepository:
    """Repository for newsletters and their tracking tables"""

    # ------------------------------------------------------------------
    # Newsletters
    # ------------------------------------------------------------------

    def create(self, title: str, subject: str, content: Optional[str], html_content: Optional[str]) -> Newsletter:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO newsletters (title, subject, content, html_content, status)
                VALUES (%s, %s, %s, %s, 'draft')
                RETURNING {NEWSLETTER_COLUMNS}
            """, (title, subject, content, html_content))

            row = cursor.fetchone()
            conn.commit()
            return _to_newsletter(row)

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def find_by_id(self, newsletter_id: str) -> Optional[Newsletter]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {NEWSLETTER_COLUMNS} FROM newsletters WHERE id::text = %s", (newsletter_id,))
            row = cursor.fetchone()
            return _to_newsletter(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_all(self, limit: int = 50, offset: int = 0) -> List[Newsletter]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {NEWSLETTER_COLUMNS} FROM newsletters
                ORDER BY created_at DESC
                LIMIT %s OFFSET %s
            """, (limit, offset))
            return [_to_newsletter(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def update(self, newsletter_id: str, changes: Dict[str, Any]) -> Optional[Newsletter]:
        allowed = {'title', 'subject', 'content', 'html_content'}
        fields = {k: v for k, v in changes.items() if k in allowed}
        if not fields:
            return self.find_by_id(newsletter_id)

        assignments = ", ".join(f"{column} = %s" for column in fields)

        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                UPDATE newsletters
                SET {assignments}, updated_at = NOW()
                WHERE id::text = %s
                RETURNING {NEWSLETTER_COLUMNS}
            """, list(fields.values()) + [newsletter_id])

            row = cursor.fetchone()
            conn.commit()
            return _to_newsletter(row) if row else None

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def mark_sent(self, newsletter_id: str, recipient_count: int) -> None:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE newsletters
                SET status = 'sent', sent_at = NOW(), recipient_count = %s, updated_at = NOW()
                WHERE id::text = %s
            """, (recipient_count, newsletter_id))
            conn.commit()

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def find_active_subscribers(self) -> List[Subscriber]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {SUBSCRIBER_COLUMNS} FROM newsletter_subscribers
                WHERE is_active = true
                ORDER BY subscribed_at
            """)
            return [_to_subscriber(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_subscriber_by_email(self, email: str) -> Optional[Subscriber]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(
                f"SELECT {SUBSCRIBER_COLUMNS} FROM newsletter_subscribers WHERE lower(email) = lower(%s)",
                (email,)
            )
            row = cursor.fetchone()
            return _to_subscriber(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def upsert_subscriber(self, email: str, full_name: Optional[str], source: Optional[str]) -> Subscriber:
        """Create a subscriber, or reactivate an existing one"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO newsletter_subscribers (email, full_name, is_active, subscription_source)
                VALUES (%s, %s, true, %s)
                ON CONFLICT (email) DO UPDATE
                SET is_active = true,
                    unsubscribed_at = NULL,
                    full_name = COALESCE(EXCLUDED.full_name, newsletter_subscribers.full_name)
                RETURNING {SUBSCRIBER_COLUMNS}
            """, (email.lower(), full_name, source))

            row = cursor.fetchone()
            conn.commit()
            return _to_subscriber(row)

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def deactivate_subscriber(self, email: str) -> Optional[Subscriber]:
        """Returns the subscriber, or None if the email is unknown"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                UPDATE newsletter_subscribers
                SET is_active = false, unsubscribed_at = NOW()
                WHERE lower(email) = lower(%s)
                RETURNING {SUBSCRIBER_COLUMNS}
            """, (email,))

            row = cursor.fetchone()
            conn.commit()
            return _to_subscriber(row) if row else None

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    # ------------------------------------------------------------------
    # Tracked links
    # ------------------------------------------------------------------

    def create_links(self, newsletter_id: str, links: List[Dict[str, str]]) -> None:
        """
        Args:
            links: dicts with original_url and tracking_token
        """
        if not links:
            return

        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            for link in links:
                cursor.execute("""
                    INSERT INTO newsletter_links (newsletter_id, original_url, tracking_token)
                    VALUES (%s, %s, %s)
                """, (newsletter_id, link['original_url'], link['tracking_token']))
            conn.commit()

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def find_links(self, newsletter_id: str) -> List[Dict[str, Any]]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT original_url, tracking_token, COALESCE(click_count, 0) AS click_count
                FROM newsletter_links
                WHERE newsletter_id::text = %s
                ORDER BY click_count DESC
            """, (newsletter_id,))
            return [dict(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def register_click(self, tracking_token: str, user_agent: Optional[str], ip_address: Optional[str]) -> Optional[str]:
        """
        Record a click on a tracked link

        Returns:
            The original URL, or None for an unknown token
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE newsletter_links
                SET click_count = COALESCE(click_count, 0) + 1
                WHERE tracking_token = %s
                RETURNING newsletter_id, original_url
            """, (tracking_token,))

            link = cursor.fetchone()
            if not link:
                conn.rollback()
                return None

            cursor.execute("""
                INSERT INTO email_analytics (newsletter_id, subscriber_id, event_type, event_data, user_agent, ip_address)
                VALUES (%s, NULL, 'clicked', %s, %s, %s)
            """, (link['newsletter_id'], Json({'clicked_url': link['original_url']}), user_agent, ip_address))

            cursor.execute("""
                UPDATE newsletters SET click_count = COALESCE(click_count, 0) + 1
                WHERE id = %s
            """, (link['newsletter_id'],))

            conn.commit()
            return link['original_url']

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    # ------------------------------------------------------------------
    # Analytics events
    # ------------------------------------------------------------------

    def record_event(
        self,
        newsletter_id: Optional[str],
        subscriber_id: Optional[str],
        event_type: str,
        event_data: Optional[Dict[str, Any]] = None,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None
    ) -> None:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO email_analytics (newsletter_id, subscriber_id, event_type, event_data, user_agent, ip_address)
                VALUES (%s, %s, %s, %s, %s, %s)
            """, (
                newsletter_id, subscriber_id, event_type,
                Json(event_data) if event_data is not None else None,
                user_agent, ip_address,
            ))
            conn.commit()

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def register_open(
        self,
        newsletter_id: str,
        subscriber_id: str,
        user_agent: Optional[str],
        ip_address: Optional[str]
    ) -> bool:
        """
        Record the first open of a newsletter by a subscriber

        Returns:
            True when this was a new open, False for repeat opens
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT 1 FROM email_analytics
                WHERE newsletter_id::text = %s AND subscriber_id::text = %s AND event_type = 'opened'
                LIMIT 1
            """, (newsletter_id, subscriber_id))
            if cursor.fetchone():
                return False

            cursor.execute("""
                INSERT INTO email_analytics (newsletter_id, subscriber_id, event_type, user_agent, ip_address)
                VALUES (%s, %s, 'opened', %s, %s)
            """, (newsletter_id, subscriber_id, user_agent, ip_address))

            cursor.execute("""
                UPDATE newsletters SET open_count = COALESCE(open_count, 0) + 1
                WHERE id::text = %s
            """, (newsletter_id,))

            conn.commit()
            return True

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def find_sent_subscriber_ids(self, newsletter_id: str) -> Set[str]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT DISTINCT subscriber_id FROM email_analytics
                WHERE newsletter_id::text = %s AND event_type = 'sent' AND subscriber_id IS NOT NULL
            """, (newsletter_id,))
            return {str(row['subscriber_id']) for row in cursor.fetchall()}

        finally:
            cursor.close()
            conn.close()

    def count_events(self, newsletter_id: str) -> Dict[str, int]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT event_type, COUNT(*) AS total
                FROM email_analytics
                WHERE newsletter_id::text = %s
                GROUP BY event_type
            """, (newsletter_id,))
            return {row['event_type']: row['total'] for row in cursor.fetchall()}

        finally:
            cursor.close()
            conn.close()

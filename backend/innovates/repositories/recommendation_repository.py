"""
Recommendation Repository - people recommended by submitters
"""
from typing import List, Dict, Any

from innovates.domain.submission import Recommendation
from innovates.core.database import get_db_connection_dict_with_retry


class RecommendationRepository:

    def create_many(self, records: List[Dict[str, Any]]) -> int:
        """
        Insert recommendation rows for one submission

        Args:
            records: dicts with name, email, reason, submission_id,
                recommender_name, recommender_email, email_sent_at

        Returns:
            Number of rows inserted
        """
        if not records:
            return 0

        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            for record in records:
                cursor.execute("""
                    INSERT INTO recommendations (
                        name, email, reason, submission_id,
                        recommender_name, recommender_email, email_sent_at
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                """, (
                    record['name'],
                    record['email'],
                    record.get('reason'),
                    record.get('submission_id'),
                    record.get('recommender_name'),
                    record.get('recommender_email'),
                    record.get('email_sent_at'),
                ))

            conn.commit()
            return len(records)

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def find_by_submission(self, submission_id: str) -> List[Recommendation]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, submission_id, name, email, reason,
                       recommender_name, recommender_email, email_sent_at, created_at
                FROM recommendations
                WHERE submission_id = %s
                ORDER BY created_at
            """, (submission_id,))

            recommendations = []
            for row in cursor.fetchall():
                data = dict(row)
                data['id'] = str(data['id'])
                if data.get('submission_id') is not None:
                    data['submission_id'] = str(data['submission_id'])
                recommendations.append(Recommendation(**data))
            return recommendations

        finally:
            cursor.close()
            conn.close()

"""
Payment Repository - featured story payments (Stripe and PayPal)
"""
from typing import List, Optional, Dict, Any
from datetime import datetime

from innovates.domain.payment import FeaturedStoryPayment
from innovates.core.database import get_db_connection_dict_with_retry


PAYMENT_COLUMNS = """
    id, submission_id, stripe_session_id, stripe_payment_id, paypal_order_id,
    paypal_payment_id, amount, currency, status, payer_email, payer_name,
    featured_start_date, featured_end_date, created_at, updated_at
"""


def _to_payment(row: Dict[str, Any]) -> FeaturedStoryPayment:
    data = dict(row)
    data['id'] = str(data['id'])
    data['submission_id'] = str(data['submission_id'])
    return FeaturedStoryPayment(**data)


class PaymentRepository:

    def find_open_for_submission(self, submission_id: str) -> Optional[FeaturedStoryPayment]:
        """Pending or completed payment blocking a new checkout"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {PAYMENT_COLUMNS} FROM featured_story_payments
                WHERE submission_id::text = %s AND status IN ('pending', 'completed')
                ORDER BY created_at DESC
                LIMIT 1
            """, (submission_id,))
            row = cursor.fetchone()
            return _to_payment(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_by_stripe_session(self, session_id: str) -> Optional[FeaturedStoryPayment]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(
                f"SELECT {PAYMENT_COLUMNS} FROM featured_story_payments WHERE stripe_session_id = %s",
                (session_id,)
            )
            row = cursor.fetchone()
            return _to_payment(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_by_paypal_order(self, order_id: str) -> Optional[FeaturedStoryPayment]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(
                f"SELECT {PAYMENT_COLUMNS} FROM featured_story_payments WHERE paypal_order_id = %s",
                (order_id,)
            )
            row = cursor.fetchone()
            return _to_payment(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def create_pending(
        self,
        submission_id: str,
        amount: int,
        currency: str,
        stripe_session_id: Optional[str] = None,
        paypal_order_id: Optional[str] = None,
        payer_email: Optional[str] = None,
        payer_name: Optional[str] = None
    ) -> FeaturedStoryPayment:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO featured_story_payments (
                    submission_id, stripe_session_id, paypal_order_id,
                    amount, currency, status, payer_email, payer_name
                )
                VALUES (%s, %s, %s, %s, %s, 'pending', %s, %s)
                RETURNING {PAYMENT_COLUMNS}
            """, (submission_id, stripe_session_id, paypal_order_id,
                  amount, currency, payer_email, payer_name))

            row = cursor.fetchone()
            conn.commit()
            return _to_payment(row)

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def complete(
        self,
        payment_id: str,
        start_date: datetime,
        end_date: datetime,
        stripe_payment_id: Optional[str] = None,
        paypal_payment_id: Optional[str] = None,
        payer_email: Optional[str] = None,
        payer_name: Optional[str] = None
    ) -> Optional[FeaturedStoryPayment]:
        """Mark a pending payment completed; None when it was not pending"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                UPDATE featured_story_payments
                SET status = 'completed',
                    stripe_payment_id = COALESCE(%s, stripe_payment_id),
                    paypal_payment_id = COALESCE(%s, paypal_payment_id),
                    payer_email = COALESCE(%s, payer_email),
                    payer_name = COALESCE(%s, payer_name),
                    featured_start_date = %s,
                    featured_end_date = %s,
                    updated_at = NOW()
                WHERE id::text = %s AND status = 'pending'
                RETURNING {PAYMENT_COLUMNS}
            """, (stripe_payment_id, paypal_payment_id, payer_email, payer_name,
                  start_date, end_date, payment_id))

            row = cursor.fetchone()
            conn.commit()
            return _to_payment(row) if row else None

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def mark_failed(self, payment_id: str) -> None:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE featured_story_payments
                SET status = 'failed', updated_at = NOW()
                WHERE id::text = %s AND status = 'pending'
            """, (payment_id,))
            conn.commit()

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def expire_due(self, now: datetime) -> List[str]:
        """
        Expire completed payments whose featured period ended

        Returns:
            submission ids whose featured period is over
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE featured_story_payments
                SET status = 'expired', updated_at = NOW()
                WHERE status = 'completed' AND featured_end_date < %s
                RETURNING submission_id
            """, (now,))

            submission_ids = sorted({str(row['submission_id']) for row in cursor.fetchall()})
            conn.commit()
            return submission_ids

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

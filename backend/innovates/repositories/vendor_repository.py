"""
Vendor Repository - Data Access Layer for vendor applications
"""
from typing import List, Optional, Dict, Any

from innovates.domain.vendor import VendorApplication
from innovates.core.database import get_db_connection_dict_with_retry


VENDOR_COLUMNS = """
    id, user_id, business_name, contact_email, contact_phone, shipping_country,
    vendor_bio, status, reviewed_at, rejection_reason, created_at, updated_at
"""


def _to_vendor(row: Dict[str, Any]) -> VendorApplication:
    data = dict(row)
    data['id'] = str(data['id'])
    if data.get('user_id') is not None:
        data['user_id'] = str(data['user_id'])
    return VendorApplication(**data)


class VendorRepository:
    """Repository for vendor_applications"""

    def create(
        self,
        user_id: Optional[str],
        business_name: str,
        contact_email: str,
        contact_phone: Optional[str] = None,
        shipping_country: Optional[str] = None,
        vendor_bio: Optional[str] = None,
        status: str = "pending"
    ) -> VendorApplication:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO vendor_applications (
                    user_id, business_name, contact_email, contact_phone,
                    shipping_country, vendor_bio, status, reviewed_at
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, CASE WHEN %s = 'pending' THEN NULL ELSE NOW() END)
                RETURNING {VENDOR_COLUMNS}
            """, (user_id, business_name, contact_email, contact_phone,
                  shipping_country, vendor_bio, status, status))

            row = cursor.fetchone()
            conn.commit()
            return _to_vendor(row)

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def find_by_id(self, application_id: str) -> Optional[VendorApplication]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {VENDOR_COLUMNS} FROM vendor_applications WHERE id = %s", (application_id,))
            row = cursor.fetchone()
            return _to_vendor(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_by_user(self, user_id: str) -> Optional[VendorApplication]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {VENDOR_COLUMNS} FROM vendor_applications WHERE user_id = %s", (user_id,))
            row = cursor.fetchone()
            return _to_vendor(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_all(self, status: Optional[str] = None) -> List[VendorApplication]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            if status:
                cursor.execute(f"""
                    SELECT {VENDOR_COLUMNS} FROM vendor_applications
                    WHERE status = %s
                    ORDER BY created_at DESC
                """, (status,))
            else:
                cursor.execute(f"SELECT {VENDOR_COLUMNS} FROM vendor_applications ORDER BY created_at DESC")

            return [_to_vendor(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def set_status(
        self,
        application_id: str,
        status: str,
        rejection_reason: Optional[str] = None
    ) -> Optional[VendorApplication]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                UPDATE vendor_applications
                SET status = %s,
                    rejection_reason = %s,
                    reviewed_at = NOW(),
                    updated_at = NOW()
                WHERE id = %s
                RETURNING {VENDOR_COLUMNS}
            """, (status, rejection_reason, application_id))

            row = cursor.fetchone()
            conn.commit()
            return _to_vendor(row) if row else None

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

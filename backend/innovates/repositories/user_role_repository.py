"""
User Role Repository - admin role lookups
"""
from innovates.core.database import get_db_connection_dict_with_retry


class UserRoleRepository:

    def has_role(self, user_id: str, role: str) -> bool:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT 1 FROM user_roles
                WHERE user_id = %s AND role = %s
                LIMIT 1
            """, (user_id, role))
            return cursor.fetchone() is not None

        finally:
            cursor.close()
            conn.close()

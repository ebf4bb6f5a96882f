"""
Email Customization Repository - brand settings for email templates
"""
from typing import Optional

from innovates.domain.email import EmailCustomization
from innovates.core.database import get_db_connection_dict_with_retry


class EmailCustomizationRepository:

    def find_latest(self) -> Optional[EmailCustomization]:
        """Most recently saved customization, or None when nothing was saved"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT primary_color, accent_color, company_name, logo_url, footer_text
                FROM email_customizations
                ORDER BY updated_at DESC NULLS LAST
                LIMIT 1
            """)
            row = cursor.fetchone()
            if not row:
                return None

            # NULL columns fall back to the model defaults
            return EmailCustomization(**{k: v for k, v in dict(row).items() if v is not None})

        finally:
            cursor.close()
            conn.close()

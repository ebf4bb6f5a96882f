"""
Cart Repository - persistent shopping carts (one line per user and product)
"""
from typing import List

from innovates.domain.marketplace import CartItem
from innovates.core.database import get_db_connection_dict_with_retry


class CartRepository:

    def find_items(self, user_id: str) -> List[CartItem]:
        """Cart lines joined with their product data"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT
                    ci.product_id, ci.quantity,
                    p.name, p.price, p.currency, p.images, p.vendor_id
                FROM cart_items ci
                JOIN marketplace_products p ON p.id = ci.product_id
                WHERE ci.user_id = %s
                ORDER BY ci.created_at
            """, (user_id,))

            items = []
            for row in cursor.fetchall():
                images = row.get('images') or []
                items.append(CartItem(
                    product_id=str(row['product_id']),
                    quantity=row['quantity'],
                    name=row['name'],
                    price=row['price'],
                    currency=row.get('currency') or 'usd',
                    image=images[0] if images else None,
                    vendor_id=str(row['vendor_id']) if row.get('vendor_id') else None,
                ))
            return items

        finally:
            cursor.close()
            conn.close()

    def add_item(self, user_id: str, product_id: str, quantity: int) -> None:
        """Insert a line, or increase the quantity of an existing one"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO cart_items (user_id, product_id, quantity)
                VALUES (%s, %s, %s)
                ON CONFLICT (user_id, product_id)
                DO UPDATE SET quantity = cart_items.quantity + EXCLUDED.quantity,
                              updated_at = NOW()
            """, (user_id, product_id, quantity))
            conn.commit()

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def set_quantity(self, user_id: str, product_id: str, quantity: int) -> bool:
        """Returns False when the product is not in the cart"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE cart_items
                SET quantity = %s, updated_at = NOW()
                WHERE user_id = %s AND product_id = %s
            """, (quantity, user_id, product_id))
            updated = cursor.rowcount > 0
            conn.commit()
            return updated

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def remove_item(self, user_id: str, product_id: str) -> bool:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(
                "DELETE FROM cart_items WHERE user_id = %s AND product_id = %s",
                (user_id, product_id)
            )
            removed = cursor.rowcount > 0
            conn.commit()
            return removed

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def clear(self, user_id: str) -> int:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("DELETE FROM cart_items WHERE user_id = %s", (user_id,))
            count = cursor.rowcount
            conn.commit()
            return count

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

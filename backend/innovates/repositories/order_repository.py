"""
Order Repository - Data Access Layer for marketplace orders

Handles all database queries for orders and returns Order domain models
with their items.
"""
from collections import defaultdict
from typing import List, Optional, Dict, Any, Tuple

from psycopg2.extras import Json

from innovates.domain.marketplace import Order, OrderItem
from innovates.core.database import get_db_connection_dict_with_retry


ORDER_COLUMNS = """
    id, order_number, buyer_id, vendor_id, customer_email, customer_name,
    shipping_address, payment_intent_id, total_amount, currency, status,
    tracking_number, notes, created_at, updated_at
"""


def _stringify_ids(data: Dict[str, Any], keys) -> Dict[str, Any]:
    for key in keys:
        if data.get(key) is not None:
            data[key] = str(data[key])
    return data


class OrderRepository:
    """
    Repository for Order data access

    Orders are created once per paid checkout session; payment_intent_id
    is unique so a replayed confirmation returns the existing order.
    """

    def _load_items(self, cursor, order_ids: List[str]) -> Dict[str, List[OrderItem]]:
        items_by_order: Dict[str, List[OrderItem]] = {}
        if not order_ids:
            return items_by_order

        cursor.execute("""
            SELECT id, order_id, product_id, product_name, product_price, quantity, total_amount
            FROM order_items
            WHERE order_id::text = ANY(%s)
            ORDER BY created_at
        """, (order_ids,))

        for row in cursor.fetchall():
            data = _stringify_ids(dict(row), ('id', 'order_id', 'product_id'))
            items_by_order.setdefault(data['order_id'], []).append(OrderItem(**data))

        return items_by_order

    def _build_orders(self, cursor, rows) -> List[Order]:
        orders_data = [
            _stringify_ids(dict(row), ('id', 'buyer_id', 'vendor_id'))
            for row in rows
        ]
        items_by_order = self._load_items(cursor, [o['id'] for o in orders_data])
        return [
            Order(**data, items=items_by_order.get(data['id'], []))
            for data in orders_data
        ]

    def find_by_id(self, order_id: str) -> Optional[Order]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {ORDER_COLUMNS} FROM marketplace_orders WHERE id::text = %s", (order_id,))
            row = cursor.fetchone()
            if not row:
                return None
            return self._build_orders(cursor, [row])[0]

        finally:
            cursor.close()
            conn.close()

    def find_by_payment_intent(self, payment_intent_id: str) -> Optional[Order]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(
                f"SELECT {ORDER_COLUMNS} FROM marketplace_orders WHERE payment_intent_id = %s",
                (payment_intent_id,)
            )
            row = cursor.fetchone()
            if not row:
                return None
            return self._build_orders(cursor, [row])[0]

        finally:
            cursor.close()
            conn.close()

    def find_by_buyer(self, buyer_id: str) -> List[Order]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS} FROM marketplace_orders
                WHERE buyer_id::text = %s
                ORDER BY created_at DESC
            """, (buyer_id,))
            return self._build_orders(cursor, cursor.fetchall())

        finally:
            cursor.close()
            conn.close()

    def find_by_vendor(self, vendor_id: str) -> List[Order]:
        """Orders that contain at least one product of the vendor"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS} FROM marketplace_orders o
                WHERE o.vendor_id::text = %s
                   OR EXISTS (
                       SELECT 1 FROM order_items oi
                       JOIN marketplace_products p ON p.id = oi.product_id
                       WHERE oi.order_id = o.id AND p.vendor_id::text = %s
                   )
                ORDER BY o.created_at DESC
            """, (vendor_id, vendor_id))
            return self._build_orders(cursor, cursor.fetchall())

        finally:
            cursor.close()
            conn.close()

    def create_with_items(
        self,
        order_number: str,
        buyer_id: Optional[str],
        vendor_id: Optional[str],
        customer_email: Optional[str],
        customer_name: Optional[str],
        shipping_address: Optional[Dict[str, Any]],
        payment_intent_id: str,
        currency: str,
        items: List[Dict[str, Any]],
        status: str = "paid"
    ) -> Tuple[Order, bool]:
        """
        Create an order and its items, and take the ordered quantities out of
        stock, in one transaction

        Args:
            items: dicts with product_id, product_name, product_price, quantity

        Returns:
            Tuple of (order, created). created is False when payment_intent_id
            already had an order; nothing is written in that case.
        """
        total_amount = sum(item['product_price'] * item['quantity'] for item in items)

        quantities: Dict[str, int] = defaultdict(int)
        for item in items:
            quantities[item['product_id']] += item['quantity']

        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO marketplace_orders (
                    order_number, buyer_id, vendor_id, customer_email, customer_name,
                    shipping_address, payment_intent_id, total_amount, currency, status
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (payment_intent_id) DO NOTHING
                RETURNING {ORDER_COLUMNS}
            """, (
                order_number, buyer_id, vendor_id, customer_email, customer_name,
                Json(shipping_address) if shipping_address is not None else None,
                payment_intent_id, total_amount, currency, status,
            ))

            row = cursor.fetchone()
            if not row:
                # Already created by an earlier confirmation
                conn.rollback()
                cursor.execute(
                    f"SELECT {ORDER_COLUMNS} FROM marketplace_orders WHERE payment_intent_id = %s",
                    (payment_intent_id,)
                )
                return self._build_orders(cursor, [cursor.fetchone()])[0], False

            order_id = str(row['id'])
            for item in items:
                cursor.execute("""
                    INSERT INTO order_items (
                        order_id, product_id, product_name, product_price, quantity, total_amount
                    )
                    VALUES (%s, %s, %s, %s, %s, %s)
                """, (
                    order_id,
                    item['product_id'],
                    item['product_name'],
                    item['product_price'],
                    item['quantity'],
                    item['product_price'] * item['quantity'],
                ))

            # products without stock tracking keep stock_quantity NULL
            for product_id, quantity in quantities.items():
                cursor.execute("""
                    UPDATE marketplace_products
                    SET stock_quantity = GREATEST(stock_quantity - %s, 0),
                        updated_at = NOW()
                    WHERE id::text = %s AND stock_quantity IS NOT NULL
                """, (quantity, product_id))

            conn.commit()
            return self._build_orders(cursor, [row])[0], True

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def set_tracking(self, order_id: str, tracking_number: str) -> Optional[Order]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                UPDATE marketplace_orders
                SET tracking_number = %s, status = 'shipped', updated_at = NOW()
                WHERE id::text = %s
                RETURNING {ORDER_COLUMNS}
            """, (tracking_number, order_id))

            row = cursor.fetchone()
            if not row:
                conn.rollback()
                return None

            order = self._build_orders(cursor, [row])[0]
            conn.commit()
            return order

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

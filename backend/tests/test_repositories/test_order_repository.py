"""
Unit tests for OrderRepository
"""
from unittest.mock import patch

from innovates.domain.marketplace import Order
from innovates.repositories.order_repository import OrderRepository


def _order_row(**overrides):
    row = {
        'id': 'order-1', 'order_number': 'AI-20250301-ABC123', 'buyer_id': 'user-1',
        'vendor_id': None, 'customer_email': 'buyer@example.com', 'customer_name': 'Bob Buyer',
        'shipping_address': None, 'payment_intent_id': 'pi_123', 'total_amount': 9998,
        'currency': 'usd', 'status': 'paid', 'tracking_number': None, 'notes': None,
        'created_at': None, 'updated_at': None,
    }
    row.update(overrides)
    return row


ITEM_ROW = {
    'id': 'item-1', 'order_id': 'order-1', 'product_id': 'prod-1',
    'product_name': 'Solar Snack Box', 'product_price': 4999, 'quantity': 2, 'total_amount': 9998,
}

ITEMS = [{'product_id': 'prod-1', 'product_name': 'Solar Snack Box', 'product_price': 4999, 'quantity': 2}]


class TestOrderRepository:

    @patch('innovates.repositories.order_repository.get_db_connection_dict_with_retry')
    def test_find_by_id_loads_items(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = _order_row()
        cursor.fetchall.return_value = [ITEM_ROW]

        order = OrderRepository().find_by_id('order-1')

        assert isinstance(order, Order)
        assert len(order.items) == 1
        assert order.items[0].quantity == 2

    @patch('innovates.repositories.order_repository.get_db_connection_dict_with_retry')
    def test_create_with_items_inserts_order_and_lines(self, mock_get_conn, mock_db):
        """Order total is the sum of price * quantity; one insert per line"""
        # Arrange
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = _order_row()
        cursor.fetchall.return_value = [ITEM_ROW]

        # Act
        order, created = OrderRepository().create_with_items(
            order_number='AI-20250301-ABC123', buyer_id='user-1', vendor_id=None,
            customer_email='buyer@example.com', customer_name='Bob Buyer',
            shipping_address=None, payment_intent_id='pi_123', currency='usd', items=ITEMS,
        )

        # Assert
        insert_params = cursor.execute.call_args_list[0][0][1]
        assert insert_params[7] == 9998
        item_inserts = [c for c in cursor.execute.call_args_list if "INSERT INTO order_items" in c[0][0]]
        assert len(item_inserts) == 1
        conn.commit.assert_called_once()
        assert created is True
        assert order.total_amount == 9998

    @patch('innovates.repositories.order_repository.get_db_connection_dict_with_retry')
    def test_create_with_items_decrements_combined_stock(self, mock_get_conn, mock_db):
        """Repeated lines of one product take their summed quantity out of stock, before the commit"""
        # Arrange
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = _order_row(total_amount=24995)
        cursor.fetchall.return_value = [ITEM_ROW]
        items = [
            {'product_id': 'prod-1', 'product_name': 'Solar Snack Box', 'product_price': 4999, 'quantity': 2},
            {'product_id': 'prod-1', 'product_name': 'Solar Snack Box', 'product_price': 4999, 'quantity': 3},
        ]

        # Act
        OrderRepository().create_with_items(
            order_number='AI-20250301-ABC123', buyer_id='user-1', vendor_id=None,
            customer_email=None, customer_name=None, shipping_address=None,
            payment_intent_id='pi_123', currency='usd', items=items,
        )

        # Assert
        stock_updates = [c[0][1] for c in cursor.execute.call_args_list if "UPDATE marketplace_products" in c[0][0]]
        assert stock_updates == [(5, 'prod-1')]
        conn.commit.assert_called_once()

    @patch('innovates.repositories.order_repository.get_db_connection_dict_with_retry')
    def test_create_with_items_returns_existing_order_on_conflict(self, mock_get_conn, mock_db):
        """A replayed payment intent returns the stored order without new items"""
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.side_effect = [None, _order_row()]
        cursor.fetchall.return_value = [ITEM_ROW]

        order, created = OrderRepository().create_with_items(
            order_number='AI-20250301-ZZZ999', buyer_id='user-1', vendor_id=None,
            customer_email=None, customer_name=None, shipping_address=None,
            payment_intent_id='pi_123', currency='usd', items=ITEMS,
        )

        assert order.order_number == 'AI-20250301-ABC123'
        assert created is False
        assert not any("INSERT INTO order_items" in c[0][0] for c in cursor.execute.call_args_list)
        assert not any("UPDATE marketplace_products" in c[0][0] for c in cursor.execute.call_args_list)
        conn.commit.assert_not_called()

    @patch('innovates.repositories.order_repository.get_db_connection_dict_with_retry')
    def test_set_tracking_returns_none_for_unknown_order(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = None

        assert OrderRepository().set_tracking('missing', '1Z999') is None
        conn.rollback.assert_called_once()

"""
Product Repository - Data Access Layer for marketplace products
"""
from typing import List, Optional, Dict, Any

from psycopg2.extras import Json

from innovates.domain.marketplace import Product
from innovates.core.database import get_db_connection_dict_with_retry


PRODUCT_COLUMNS = """
    id, vendor_id, name, slug, description, price, currency, images, category, tags,
    specifications, stock_quantity, status, featured, sales_links, created_at, updated_at
"""

UPDATABLE_COLUMNS = {
    'name', 'description', 'price', 'images', 'category', 'tags', 'specifications',
    'stock_quantity', 'status', 'featured', 'sales_links',
}


def _to_product(row: Dict[str, Any]) -> Product:
    data = dict(row)
    data['id'] = str(data['id'])
    data['vendor_id'] = str(data['vendor_id'])
    for key in ('images', 'tags', 'sales_links'):
        data[key] = data.get(key) or []
    data['featured'] = bool(data.get('featured'))
    return Product(**data)


def _adapt(column: str, value):
    if column == 'specifications' and value is not None:
        return Json(value)
    return value


class ProductRepository:
    """Repository for marketplace_products"""

    def find_by_id(self, product_id: str) -> Optional[Product]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {PRODUCT_COLUMNS} FROM marketplace_products WHERE id::text = %s", (product_id,))
            row = cursor.fetchone()
            return _to_product(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_by_slug_or_id(self, slug_or_id: str) -> Optional[Product]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS} FROM marketplace_products
                WHERE slug = %s OR id::text = %s
                LIMIT 1
            """, (slug_or_id, slug_or_id))
            row = cursor.fetchone()
            return _to_product(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_by_ids(self, product_ids: List[str]) -> Dict[str, Product]:
        """Batch lookup keyed by product id"""
        if not product_ids:
            return {}

        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS} FROM marketplace_products
                WHERE id::text = ANY(%s)
            """, (list(product_ids),))
            products = [_to_product(row) for row in cursor.fetchall()]
            return {p.id: p for p in products}

        finally:
            cursor.close()
            conn.close()

    def find_active(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        vendor_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[Product]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            conditions = ["status = 'active'"]
            params: List[Any] = []

            if category:
                conditions.append("category = %s")
                params.append(category)

            if vendor_id:
                conditions.append("vendor_id::text = %s")
                params.append(vendor_id)

            if search:
                conditions.append("(name ILIKE %s OR description ILIKE %s)")
                search_pattern = f"%{search}%"
                params.extend([search_pattern, search_pattern])

            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS} FROM marketplace_products
                WHERE {" AND ".join(conditions)}
                ORDER BY featured DESC, created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            return [_to_product(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def slug_exists(self, slug: str) -> bool:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("SELECT 1 FROM marketplace_products WHERE slug = %s LIMIT 1", (slug,))
            return cursor.fetchone() is not None

        finally:
            cursor.close()
            conn.close()

    def create(self, vendor_id: str, slug: str, data: Dict[str, Any]) -> Product:
        values = {k: _adapt(k, v) for k, v in data.items()}
        values['vendor_id'] = vendor_id
        values['slug'] = slug

        columns = list(values.keys())
        placeholders = ", ".join(["%s"] * len(columns))

        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO marketplace_products ({", ".join(columns)})
                VALUES ({placeholders})
                RETURNING {PRODUCT_COLUMNS}
            """, [values[c] for c in columns])

            row = cursor.fetchone()
            conn.commit()
            return _to_product(row)

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def update(self, product_id: str, changes: Dict[str, Any]) -> Optional[Product]:
        fields = {k: _adapt(k, v) for k, v in changes.items() if k in UPDATABLE_COLUMNS}
        if not fields:
            return self.find_by_id(product_id)

        assignments = ", ".join(f"{column} = %s" for column in fields)

        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                UPDATE marketplace_products
                SET {assignments}, updated_at = NOW()
                WHERE id::text = %s
                RETURNING {PRODUCT_COLUMNS}
            """, list(fields.values()) + [product_id])

            row = cursor.fetchone()
            conn.commit()
            return _to_product(row) if row else None

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

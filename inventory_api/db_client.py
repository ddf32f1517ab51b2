"""
Database client for the Inventory service.

Provides SQLAlchemy-based database access with the CRUD queries for products,
stock and employees. The engine (and its connection pool) is injected so the
API and the tests can supply their own.
"""

from datetime import datetime
from typing import List, Optional, Dict, Any
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import create_engine, text, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from inventory_ops.config import get_settings, Settings
from inventory_ops.schema import init_schema
from .errors import (
    ConflictError,
    DatabaseError,
    DatabaseNotConfiguredError,
    NotFoundError,
    ReferentialError,
    ValidationError,
)
from .utils import build_search_pattern, missing_fields, normalize_dsn, rows_to_dicts

# PostgreSQL SQLSTATE codes
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"

PRODUCT_COLUMNS = "id, id_produk, nama_produk, kategori_produk"
STOCK_COLUMNS = "id, id_produk, nama_produk, jumlah_stok"
EMPLOYEE_COLUMNS = "id, nama, posisi, email"

STOCK_WITH_CATEGORY = """
    SELECT
        s.id,
        s.id_produk,
        s.nama_produk,
        s.jumlah_stok,
        p.kategori_produk
    FROM stock s
    LEFT JOIN products p ON s.id_produk = p.id_produk
"""


def build_engine(settings: Optional[Settings] = None, dsn: Optional[str] = None) -> Engine:
    """
    Create the pooled engine for the inventory database.

    Args:
        settings: Settings providing pool options (default: global settings)
        dsn: Connection string overriding ``settings.database_url``

    Returns:
        Engine: SQLAlchemy engine

    Raises:
        DatabaseNotConfiguredError: If no connection string is available
        DatabaseError: If the connection string or its driver is unusable
    """
    settings = settings or get_settings()
    dsn = dsn or settings.database_url
    if not dsn:
        raise DatabaseNotConfiguredError()

    connect_args = {}
    if settings.database_sslmode:
        connect_args["sslmode"] = settings.database_sslmode

    try:
        return create_engine(
            normalize_dsn(dsn),
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_pre_ping=settings.db_pool_pre_ping,
            connect_args=connect_args,
            echo=False,
        )
    except (SQLAlchemyError, ImportError) as e:
        logger.error(f"Invalid database configuration: {e}")
        raise DatabaseError(f"Invalid database configuration: {e}")


class InventoryDB:
    """
    Inventory database client.

    Every public method runs parameterized SQL on a connection checked out
    from the engine's pool for the duration of the call. Database failures
    are raised as `InventoryError` subclasses.
    """

    def __init__(self, dsn: Optional[str] = None, engine: Optional[Engine] = None):
        """
        Initialize database client.

        Args:
            dsn: Database connection string. If None, uses settings from config.
            engine: Ready-made engine to use instead of building one from ``dsn``.
        """
        self.engine: Engine = engine if engine is not None else build_engine(dsn=dsn)

        logger.debug(f"Initialized InventoryDB with engine: {self.engine.url!r}")

    @contextmanager
    def _translate_errors(self, action: str):
        """Re-raise driver errors from the wrapped block as inventory errors."""
        try:
            yield
        except IntegrityError as e:
            # psycopg2 exposes pgcode, psycopg 3 sqlstate
            code = getattr(e.orig, "pgcode", None) or getattr(e.orig, "sqlstate", None)
            logger.warning(f"{action}: integrity error {code}: {e.orig}")
            if code == UNIQUE_VIOLATION:
                raise ConflictError(f"{action}: a row with this key already exists.") from e
            if code == FOREIGN_KEY_VIOLATION:
                raise ReferentialError(f"{action}: product code does not exist in products.") from e
            raise DatabaseError(f"{action}: {e.orig}") from e
        except SQLAlchemyError as e:
            logger.error(f"SQL query error: {action}: {e}")
            raise DatabaseError(f"{action}: {getattr(e, 'orig', None) or e}") from e

    @staticmethod
    def _require(payload: Dict[str, Any], *required: str) -> None:
        missing = missing_fields(payload, required)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    def init_schema(self) -> List[str]:
        """Create any missing tables; see `inventory_ops.schema.init_schema`."""
        with self._translate_errors("Failed to initialize schema"):
            return init_schema(self.engine)

    # -- Dashboard ---------------------------------------------------------

    def dashboard_summary(self) -> Dict[str, int]:
        """
        Get headline counts for the dashboard.

        Returns:
            dict: ``total_produk``, ``total_stok_unit`` (sum of all stock
                  quantities, 0 when empty) and ``total_karyawan``
        """
        query = """
            SELECT
                (SELECT COUNT(*) FROM products) AS total_produk,
                (SELECT COALESCE(SUM(jumlah_stok), 0) FROM stock) AS total_stok_unit,
                (SELECT COUNT(*) FROM employees) AS total_karyawan
        """

        with self._translate_errors("Failed to fetch dashboard summary"):
            with self.engine.connect() as conn:
                row = conn.execute(text(query)).mappings().one()

        return {key: int(value) for key, value in row.items()}

    # -- Products ----------------------------------------------------------

    def list_products(self, search: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        List products, newest first.

        Args:
            search: Case-insensitive substring matched against name,
                    category or product code

        Returns:
            List[dict]: Product rows
        """
        query = f"SELECT {PRODUCT_COLUMNS} FROM products"
        params = {}

        pattern = build_search_pattern(search)
        if pattern:
            query += """
                WHERE nama_produk ILIKE :pattern
                   OR kategori_produk ILIKE :pattern
                   OR id_produk ILIKE :pattern
            """
            params['pattern'] = pattern

        query += " ORDER BY id DESC"

        with self._translate_errors("Failed to fetch products"):
            with self.engine.connect() as conn:
                products = rows_to_dicts(conn.execute(text(query), params))

        logger.debug(f"Retrieved {len(products)} products")
        return products

    def get_product(self, id_produk: str) -> Dict[str, Any]:
        """Fetch one product by its product code."""
        query = f"SELECT {PRODUCT_COLUMNS} FROM products WHERE id_produk = :id_produk"

        with self._translate_errors(f"Failed to fetch product {id_produk}"):
            with self.engine.connect() as conn:
                row = conn.execute(text(query), {'id_produk': id_produk}).mappings().first()

        if row is None:
            raise NotFoundError("Product not found.")
        return dict(row)

    def create_product(self, id_produk: Optional[str], nama_produk: Optional[str],
                       kategori_produk: Optional[str] = None) -> Dict[str, Any]:
        """
        Insert a new product.

        Args:
            id_produk: Unique product code
            nama_produk: Display name
            kategori_produk: Optional category

        Returns:
            dict: Created row including its internal ``id``

        Raises:
            ValidationError: If the code or name is missing
            ConflictError: If the product code is already taken
        """
        self._require({'id_produk': id_produk, 'nama_produk': nama_produk},
                      'id_produk', 'nama_produk')

        query = f"""
            INSERT INTO products (id_produk, nama_produk, kategori_produk)
            VALUES (:id_produk, :nama_produk, :kategori_produk)
            RETURNING {PRODUCT_COLUMNS}
        """

        with self._translate_errors("Failed to create product"):
            with self.engine.begin() as conn:
                row = conn.execute(text(query), {
                    'id_produk': id_produk,
                    'nama_produk': nama_produk,
                    'kategori_produk': kategori_produk
                }).mappings().one()

        logger.info(f"Created product {id_produk} with ID {row['id']}")
        return dict(row)

    def update_product(self, id_produk: str, nama_produk: Optional[str],
                       kategori_produk: Optional[str] = None) -> Dict[str, Any]:
        """
        Replace a product's name and category.

        The new name is copied onto the product's stock row in the same
        transaction, so the two are never observed out of sync.

        Raises:
            ValidationError: If the name is missing
            NotFoundError: If no product has this code
        """
        self._require({'nama_produk': nama_produk}, 'nama_produk')

        update_product = f"""
            UPDATE products
            SET nama_produk = :nama_produk, kategori_produk = :kategori_produk
            WHERE id_produk = :id_produk
            RETURNING {PRODUCT_COLUMNS}
        """
        update_stock = """
            UPDATE stock SET nama_produk = :nama_produk WHERE id_produk = :id_produk
        """
        params = {
            'id_produk': id_produk,
            'nama_produk': nama_produk,
            'kategori_produk': kategori_produk
        }

        with self._translate_errors(f"Failed to update product {id_produk}"):
            with self.engine.begin() as conn:
                row = conn.execute(text(update_product), params).mappings().first()
                if row is None:
                    raise NotFoundError("Product not found.")

                renamed = conn.execute(text(update_stock), params).rowcount

        logger.info(f"Updated product {id_produk} ({renamed} stock rows renamed)")
        return dict(row)

    def delete_product(self, id_produk: str) -> Dict[str, Any]:
        """
        Delete a product; its stock row goes with it (ON DELETE CASCADE).

        Returns:
            dict: The deleted product row
        """
        query = f"DELETE FROM products WHERE id_produk = :id_produk RETURNING {PRODUCT_COLUMNS}"

        with self._translate_errors(f"Failed to delete product {id_produk}"):
            with self.engine.begin() as conn:
                row = conn.execute(text(query), {'id_produk': id_produk}).mappings().first()

        if row is None:
            raise NotFoundError("Product not found.")

        logger.info(f"Deleted product {id_produk}")
        return dict(row)

    # -- Stock -------------------------------------------------------------

    def list_stock(self, search: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        List stock rows with their product category, newest first.

        Rows whose product is missing are kept (LEFT JOIN), with a null category.

        Args:
            search: Case-insensitive substring matched against name or product code
        """
        query = STOCK_WITH_CATEGORY
        params = {}

        pattern = build_search_pattern(search)
        if pattern:
            query += " WHERE s.nama_produk ILIKE :pattern OR s.id_produk ILIKE :pattern"
            params['pattern'] = pattern

        query += " ORDER BY s.id DESC"

        with self._translate_errors("Failed to fetch stock"):
            with self.engine.connect() as conn:
                stock = rows_to_dicts(conn.execute(text(query), params))

        logger.debug(f"Retrieved {len(stock)} stock rows")
        return stock

    def get_stock(self, id_produk: str) -> Dict[str, Any]:
        """Fetch the stock row of one product, with its category."""
        query = STOCK_WITH_CATEGORY + " WHERE s.id_produk = :id_produk"

        with self._translate_errors(f"Failed to fetch stock for {id_produk}"):
            with self.engine.connect() as conn:
                row = conn.execute(text(query), {'id_produk': id_produk}).mappings().first()

        if row is None:
            raise NotFoundError("Stock for this product not found.")
        return dict(row)

    def add_stock(self, id_produk: Optional[str], jumlah_stok: Optional[int]) -> Dict[str, Any]:
        """
        Add stock for a product, creating its stock row on first use.

        The product name is copied from ``products``. When a stock row already
        exists the quantity is added to it rather than replacing it.

        Args:
            id_produk: Product code
            jumlah_stok: Quantity to add

        Returns:
            dict: The created or updated stock row

        Raises:
            ValidationError: If the code or quantity is missing
            NotFoundError: If the product does not exist
        """
        self._require({'id_produk': id_produk, 'jumlah_stok': jumlah_stok},
                      'id_produk', 'jumlah_stok')

        # FOR KEY SHARE blocks a concurrent product delete until we commit
        lookup = """
            SELECT nama_produk FROM products
            WHERE id_produk = :id_produk
            FOR KEY SHARE
        """
        upsert = f"""
            INSERT INTO stock (id_produk, nama_produk, jumlah_stok)
            VALUES (:id_produk, :nama_produk, :jumlah_stok)
            ON CONFLICT (id_produk) DO UPDATE
            SET jumlah_stok = stock.jumlah_stok + EXCLUDED.jumlah_stok,
                nama_produk = EXCLUDED.nama_produk
            RETURNING {STOCK_COLUMNS}
        """

        with self._translate_errors("Failed to add stock"):
            with self.engine.begin() as conn:
                nama_produk = conn.execute(text(lookup), {'id_produk': id_produk}).scalar()
                if nama_produk is None:
                    raise NotFoundError("Product code does not exist in products.")

                row = conn.execute(text(upsert), {
                    'id_produk': id_produk,
                    'nama_produk': nama_produk,
                    'jumlah_stok': jumlah_stok
                }).mappings().one()

        logger.info(f"Added {jumlah_stok} units to {id_produk}, now {row['jumlah_stok']}")
        return dict(row)

    def update_stock(self, id_produk: str, jumlah_stok: Optional[int]) -> Dict[str, Any]:
        """Replace the quantity of a product's stock row."""
        self._require({'jumlah_stok': jumlah_stok}, 'jumlah_stok')

        query = f"""
            UPDATE stock SET jumlah_stok = :jumlah_stok
            WHERE id_produk = :id_produk
            RETURNING {STOCK_COLUMNS}
        """

        with self._translate_errors(f"Failed to update stock for {id_produk}"):
            with self.engine.begin() as conn:
                row = conn.execute(text(query), {
                    'id_produk': id_produk,
                    'jumlah_stok': jumlah_stok
                }).mappings().first()

        if row is None:
            raise NotFoundError("Stock for this product not found.")

        logger.info(f"Set stock for {id_produk} to {jumlah_stok}")
        return dict(row)

    def delete_stock(self, id_produk: str) -> Dict[str, Any]:
        query = f"DELETE FROM stock WHERE id_produk = :id_produk RETURNING {STOCK_COLUMNS}"

        with self._translate_errors(f"Failed to delete stock for {id_produk}"):
            with self.engine.begin() as conn:
                row = conn.execute(text(query), {'id_produk': id_produk}).mappings().first()

        if row is None:
            raise NotFoundError("Stock for this product not found.")

        logger.info(f"Deleted stock for {id_produk}")
        return dict(row)

    # -- Employees ---------------------------------------------------------

    def list_employees(self, search: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        List employees, newest first.

        Args:
            search: Case-insensitive substring matched against name, position or email
        """
        query = f"SELECT {EMPLOYEE_COLUMNS} FROM employees"
        params = {}

        pattern = build_search_pattern(search)
        if pattern:
            query += " WHERE nama ILIKE :pattern OR posisi ILIKE :pattern OR email ILIKE :pattern"
            params['pattern'] = pattern

        query += " ORDER BY id DESC"

        with self._translate_errors("Failed to fetch employees"):
            with self.engine.connect() as conn:
                employees = rows_to_dicts(conn.execute(text(query), params))

        logger.debug(f"Retrieved {len(employees)} employees")
        return employees

    def get_employee(self, employee_id: int) -> Dict[str, Any]:
        query = f"SELECT {EMPLOYEE_COLUMNS} FROM employees WHERE id = :id"

        with self._translate_errors(f"Failed to fetch employee {employee_id}"):
            with self.engine.connect() as conn:
                row = conn.execute(text(query), {'id': employee_id}).mappings().first()

        if row is None:
            raise NotFoundError("Employee not found.")
        return dict(row)

    def create_employee(self, nama: Optional[str], posisi: Optional[str],
                        email: Optional[str] = None) -> Dict[str, Any]:
        """
        Insert a new employee.

        Raises:
            ValidationError: If the name or position is missing
        """
        self._require({'nama': nama, 'posisi': posisi}, 'nama', 'posisi')

        query = f"""
            INSERT INTO employees (nama, posisi, email)
            VALUES (:nama, :posisi, :email)
            RETURNING {EMPLOYEE_COLUMNS}
        """

        with self._translate_errors("Failed to create employee"):
            with self.engine.begin() as conn:
                row = conn.execute(text(query), {
                    'nama': nama,
                    'posisi': posisi,
                    'email': email
                }).mappings().one()

        logger.info(f"Created employee {row['id']}")
        return dict(row)

    def update_employee(self, employee_id: int, nama: Optional[str], posisi: Optional[str],
                        email: Optional[str] = None) -> Dict[str, Any]:
        """Replace an employee's name, position and email."""
        self._require({'nama': nama, 'posisi': posisi}, 'nama', 'posisi')

        query = f"""
            UPDATE employees SET nama = :nama, posisi = :posisi, email = :email
            WHERE id = :id
            RETURNING {EMPLOYEE_COLUMNS}
        """

        with self._translate_errors(f"Failed to update employee {employee_id}"):
            with self.engine.begin() as conn:
                row = conn.execute(text(query), {
                    'id': employee_id,
                    'nama': nama,
                    'posisi': posisi,
                    'email': email
                }).mappings().first()

        if row is None:
            raise NotFoundError("Employee not found.")

        logger.info(f"Updated employee {employee_id}")
        return dict(row)

    def delete_employee(self, employee_id: int) -> Dict[str, Any]:
        query = f"DELETE FROM employees WHERE id = :id RETURNING {EMPLOYEE_COLUMNS}"

        with self._translate_errors(f"Failed to delete employee {employee_id}"):
            with self.engine.begin() as conn:
                row = conn.execute(text(query), {'id': employee_id}).mappings().first()

        if row is None:
            raise NotFoundError("Employee not found.")

        logger.info(f"Deleted employee {employee_id}")
        return dict(row)

    # -- Health ------------------------------------------------------------

    def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            dict: Health check results
        """
        try:
            with self.engine.connect() as conn:
                # Test basic connectivity
                conn.execute(text("SELECT 1")).fetchone()

                stats = conn.execute(text("""
                    SELECT
                        (SELECT COUNT(*) FROM products) as product_count,
                        (SELECT COUNT(*) FROM stock) as stock_row_count,
                        (SELECT COUNT(*) FROM employees) as employee_count
                """)).fetchone()

                return {
                    'status': 'healthy',
                    'database_connected': True,
                    'product_count': stats[0],
                    'stock_row_count': stats[1],
                    'employee_count': stats[2],
                    'timestamp': datetime.now().isoformat()
                }

        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {
                'status': 'unhealthy',
                'database_connected': False,
                'error': str(e),
                'timestamp': datetime.now().isoformat()
            }

    def dispose(self) -> None:
        """Close all pooled connections."""
        self.engine.dispose()

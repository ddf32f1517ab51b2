"""
Tests for schema initialization.
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from inventory_ops.schema import TABLES, init_schema, missing_tables


class TestInitSchema:
    """Test table creation."""

    def test_creates_missing_tables_then_noop(self, setup_test_schema):
        """Test a second initialization creates nothing."""
        with setup_test_schema.begin() as conn:
            conn.execute(text("DROP TABLE IF EXISTS stock, products, employees CASCADE"))

        assert missing_tables(setup_test_schema) == list(TABLES)

        assert init_schema(setup_test_schema) == ["products", "stock", "employees"]
        assert init_schema(setup_test_schema) == []
        assert missing_tables(setup_test_schema) == []

    def test_init_keeps_existing_rows(self, db_client, seed_inventory):
        """Test re-running initialization leaves data alone."""
        assert db_client.init_schema() == []

        assert db_client.dashboard_summary()['total_produk'] == 3

    def test_stock_requires_existing_product(self, clean_tables):
        """Test the foreign key from stock to products."""
        with pytest.raises(IntegrityError):
            with clean_tables.begin() as conn:
                conn.execute(text(
                    "INSERT INTO stock (id_produk, nama_produk, jumlah_stok) VALUES ('NOPE', 'Ghost', 1)"
                ))

    def test_stock_quantity_defaults_to_zero(self, clean_tables):
        with clean_tables.begin() as conn:
            conn.execute(text("INSERT INTO products (id_produk, nama_produk) VALUES ('P1', 'Widget')"))
            conn.execute(text("INSERT INTO stock (id_produk, nama_produk) VALUES ('P1', 'Widget')"))
            quantity = conn.execute(text("SELECT jumlah_stok FROM stock WHERE id_produk = 'P1'")).scalar()

        assert quantity == 0

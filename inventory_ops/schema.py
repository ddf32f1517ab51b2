"""
Schema initialization for the inventory database.

Creates the products, stock and employees tables. Every statement is
``CREATE ... IF NOT EXISTS`` so running the initialization again is a no-op.
"""

from typing import List

from loguru import logger
from sqlalchemy import Engine, inspect, text

# Order matters: stock references products.
TABLES = ("products", "stock", "employees")

DDL_STATEMENTS: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS products (
        id SERIAL PRIMARY KEY,
        id_produk VARCHAR(50) NOT NULL UNIQUE,
        nama_produk VARCHAR(255) NOT NULL,
        kategori_produk VARCHAR(100)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS stock (
        id SERIAL PRIMARY KEY,
        id_produk VARCHAR(50) NOT NULL UNIQUE
            REFERENCES products (id_produk)
            ON DELETE CASCADE
            ON UPDATE CASCADE,
        nama_produk VARCHAR(255) NOT NULL,
        jumlah_stok INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS employees (
        id SERIAL PRIMARY KEY,
        nama VARCHAR(255) NOT NULL,
        posisi VARCHAR(100) NOT NULL,
        email VARCHAR(255)
    )
    """,
]


def missing_tables(engine: Engine) -> List[str]:
    """Return the inventory tables that do not exist yet."""
    existing = set(inspect(engine).get_table_names())
    return [table for table in TABLES if table not in existing]


def init_schema(engine: Engine) -> List[str]:
    """
    Create any missing inventory tables in a single transaction.

    Args:
        engine: SQLAlchemy engine bound to the target database

    Returns:
        List[str]: Names of the tables that did not exist before the call
    """
    missing = missing_tables(engine)

    try:
        with engine.begin() as conn:
            for statement in DDL_STATEMENTS:
                conn.execute(text(statement))
    except Exception as e:
        logger.error(f"Schema initialization failed: {e}")
        raise

    if missing:
        logger.info(f"Created tables: {', '.join(missing)}")
    else:
        logger.debug("Schema already initialized")

    return missing

"""
Pytest configuration and shared fixtures for Inventory tests.

Provides database fixtures, test data, and common test utilities.
"""

from pathlib import Path
from typing import Dict, Generator, List
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from testcontainers.postgres import PostgresContainer

from inventory_ops.config import reload_settings
from inventory_ops.schema import init_schema
from inventory_api.db_client import InventoryDB
from inventory_api.fastapi_server import app


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Provide a PostgreSQL test container for the test session.
    """
    with PostgresContainer("postgres:15-alpine") as postgres:
        yield postgres


@pytest.fixture(scope="session")
def test_database_url(postgres_container: PostgresContainer) -> str:
    """
    Get database URL for test container.
    """
    return postgres_container.get_connection_url()


@pytest.fixture(scope="session")
def test_engine(test_database_url: str):
    """
    Create SQLAlchemy engine for test database.
    """
    engine = create_engine(test_database_url)
    yield engine
    engine.dispose()


@pytest.fixture(scope="session")
def setup_test_schema(test_engine):
    """
    Set up test database schema.
    """
    init_schema(test_engine)
    return test_engine


@pytest.fixture
def clean_tables(setup_test_schema):
    """
    Empty every inventory table and reset the id sequences.
    """
    with setup_test_schema.begin() as conn:
        conn.execute(text("TRUNCATE stock, products, employees RESTART IDENTITY CASCADE"))
    return setup_test_schema


@pytest.fixture
def test_settings(test_database_url: str, tmp_path: Path, monkeypatch):
    """
    Override settings for testing.
    """
    monkeypatch.setenv("DATABASE_URL", test_database_url)
    monkeypatch.setenv("LOG_FILE", str(tmp_path / "logs" / "inventory.log"))
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    return reload_settings()


@pytest.fixture
def db_client(clean_tables) -> InventoryDB:
    """
    Provide database client bound to an empty test database.
    """
    return InventoryDB(engine=clean_tables)


@pytest.fixture
def detached_app() -> Generator[FastAPI, None, None]:
    """
    Provide the app with no database client attached before or after the test.
    """
    if hasattr(app.state, "db"):
        del app.state.db
    yield app
    if hasattr(app.state, "db"):
        del app.state.db


@pytest.fixture
def api_client(db_client: InventoryDB, detached_app: FastAPI) -> TestClient:
    """
    Provide an HTTP client whose requests use the test database.
    """
    detached_app.state.db = db_client
    return TestClient(detached_app)


@pytest.fixture
def mock_db() -> MagicMock:
    """
    Stand-in for InventoryDB so the API can be tested without a database.
    """
    return MagicMock(spec=InventoryDB)


@pytest.fixture
def mock_api_client(mock_db: MagicMock, detached_app: FastAPI) -> TestClient:
    """
    Provide an HTTP client whose requests use ``mock_db``.
    """
    detached_app.state.db = mock_db
    return TestClient(detached_app)


@pytest.fixture
def seed_inventory(db_client: InventoryDB) -> Dict[str, List[dict]]:
    """
    Seed test database with sample products, stock and employees.
    """
    products = [
        db_client.create_product("P1", "Widget", "Tools"),
        db_client.create_product("P2", "Gadget", "Electronics"),
        db_client.create_product("P3", "Blue Sprocket", None),
    ]
    stock = [
        db_client.add_stock("P1", 10),
        db_client.add_stock("P2", 4),
    ]
    employees = [
        db_client.create_employee("Sari Dewi", "Warehouse Lead", "sari@example.com"),
        db_client.create_employee("Budi Santoso", "Picker", None),
    ]
    return {"products": products, "stock": stock, "employees": employees}


@pytest.fixture
def count_rows(clean_tables):
    """
    Provide a function counting rows in one of the inventory tables.
    """
    def _count(table: str) -> int:
        assert table in {"products", "stock", "employees"}
        with clean_tables.connect() as conn:
            return conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar()

    return _count

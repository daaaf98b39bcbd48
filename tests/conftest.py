"""
Test configuration and shared fixtures for the query gateway test suite.
Provides the config database, a seeded data platform, a fixture record catalog and the API client.
"""

import pytest
from typing import Generator, List
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from query_gateway.app import create_app
from query_gateway.core.database import Base, get_data_engine
from query_gateway.core.dependencies import get_record_catalog
from query_gateway.query.catalog import CatalogEntry, ImplicitFilter, RecordCatalog


def _memory_engine() -> Engine:
    return create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


# ===== FIXTURE CATALOG =====

def build_fixture_catalog() -> RecordCatalog:
    """Small catalog over the fixture data platform: entities, a header table and its lines."""
    return RecordCatalog(
        [
            CatalogEntry(record_type="customer", base_table="customer"),
            CatalogEntry(
                record_type="lead",
                base_table="customer",
                implicit_filters=(ImplicitFilter("stage", "LEAD"),),
            ),
            CatalogEntry(record_type="invoice", base_table="invoice"),
            CatalogEntry(
                record_type="invoiceline",
                base_table="invoiceline",
                is_line_record=True,
                header_table="invoice",
                header_alias="ih",
                foreign_key_field="invoice",
                header_only_fields=frozenset({"trandate", "entity", "status"}),
            ),
        ]
    )


@pytest.fixture(scope="session")
def fixture_catalog() -> RecordCatalog:
    return build_fixture_catalog()


# ===== DATABASE SETUP =====

DATA_PLATFORM_SCHEMA = [
    """
    CREATE TABLE customer (
        id INTEGER PRIMARY KEY,
        companyname TEXT,
        email TEXT,
        stage TEXT,
        isinactive TEXT,
        datecreated TEXT
    )
    """,
    """
    CREATE TABLE invoice (
        id INTEGER PRIMARY KEY,
        tranid TEXT,
        trandate TEXT,
        entity INTEGER,
        status TEXT,
        total REAL
    )
    """,
    """
    CREATE TABLE invoiceline (
        id INTEGER PRIMARY KEY,
        invoice INTEGER,
        item TEXT,
        quantity INTEGER,
        amount REAL
    )
    """,
]

CUSTOMERS = [
    {"id": 1, "companyname": "Acme Corp", "email": "ap@acme.example", "stage": "CUSTOMER", "isinactive": "F", "datecreated": "2024-01-15"},
    {"id": 2, "companyname": "Globex 100% Ltd", "email": "hello@globex.example", "stage": "LEAD", "isinactive": "F", "datecreated": "2024-02-20"},
    {"id": 3, "companyname": "Initech_Labs", "email": None, "stage": "LEAD", "isinactive": "T", "datecreated": "2024-03-05"},
    {"id": 4, "companyname": "Umbrella", "email": "info@umbrella.example", "stage": "PROSPECT", "isinactive": "F", "datecreated": "2024-06-01 09:00:00"},
    {"id": 5, "companyname": "Hooli", "email": "sales@hooli.example", "stage": "CUSTOMER", "isinactive": "T", "datecreated": "2024-06-30"},
]

INVOICES = [
    {"id": 10, "tranid": "INV-10", "trandate": "2024-06-01 15:30:00", "entity": 1, "status": "open", "total": 100.0},
    {"id": 11, "tranid": "INV-11", "trandate": "2024-06-02", "entity": 1, "status": "paid", "total": 250.0},
    {"id": 12, "tranid": "INV-12", "trandate": "2024-05-31", "entity": 2, "status": "open", "total": 75.0},
    {"id": 13, "tranid": "INV-13", "trandate": "2024-07-15", "entity": 5, "status": "open", "total": 500.0},
]

INVOICE_LINES = [
    {"id": 100, "invoice": 10, "item": "WIDGET", "quantity": 1, "amount": 40.0},
    {"id": 101, "invoice": 10, "item": "GADGET", "quantity": 2, "amount": 60.0},
    {"id": 102, "invoice": 11, "item": "WIDGET", "quantity": 5, "amount": 250.0},
    {"id": 103, "invoice": 12, "item": "WIDGET", "quantity": 3, "amount": 75.0},
    {"id": 104, "invoice": 13, "item": "GIZMO", "quantity": 10, "amount": 500.0},
]


def _insert(connection, table: str, rows: List[dict]) -> None:
    columns = list(rows[0])
    statement = text(
        f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({', '.join(':' + column for column in columns)})"
    )
    connection.execute(statement, rows)


@pytest.fixture(scope="session")
def data_engine() -> Engine:
    """In-memory data platform seeded with customers, invoices and invoice lines (read-only in tests)"""
    engine = _memory_engine()
    with engine.begin() as connection:
        for ddl in DATA_PLATFORM_SCHEMA:
            connection.execute(text(ddl))
        _insert(connection, "customer", CUSTOMERS)
        _insert(connection, "invoice", INVOICES)
        _insert(connection, "invoiceline", INVOICE_LINES)
    return engine


@pytest.fixture(scope="session")
def config_engine() -> Engine:
    """Create in-memory SQLite engine for the config database (request and execution logs)"""
    engine = _memory_engine()
    # Import all config models to register them
    from query_gateway.logging.models import Log  # noqa: F401
    from query_gateway.query.models import QueryExecutionLog  # noqa: F401
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture(scope="function")
def config_db_session(config_engine):
    """Create a database session for the config database"""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=config_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        # Clean up all data after each test
        Base.metadata.drop_all(bind=config_engine)
        Base.metadata.create_all(bind=config_engine)


@pytest.fixture
def client(config_db_session, config_engine, data_engine, fixture_catalog) -> Generator[TestClient, None, None]:
    """Create FastAPI test client on the in-memory config database, with data platform and catalog overrides"""
    app = create_app(config_engine=config_engine)
    app.dependency_overrides[get_data_engine] = lambda: data_engine
    app.dependency_overrides[get_record_catalog] = lambda: fixture_catalog

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()

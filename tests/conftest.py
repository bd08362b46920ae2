"""
Shared test fixtures.

Sets up an isolated test database so tests never touch
the real database. Tables are created before each test and
dropped after, so no test data persists between tests.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

import ftms.models  # noqa: F401  registers every table on Base.metadata
from ftms.main import app
from ftms.models.base import Base, get_db
from ftms.models.enums import AccountType
from ftms.schemas.chart_of_account import ChartOfAccountCreate
from ftms.services.chart_of_accounts import ChartOfAccountService
from ftms.services.reference_cache import reference_cache
from ftms.services.reference_data import ReferenceDataService


# Use SQLite for tests, no external database needed.
TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)


# pysqlite starts transactions lazily and mishandles SAVEPOINT; let
# SQLAlchemy emit BEGIN itself so begin_nested() behaves as on PostgreSQL.
@event.listens_for(engine, "connect")
def _disable_pysqlite_begin(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(autouse=True)
def setup_database():
    """
    Create all tables before each test, drop them after.

    The reference cache is process-wide, so it is cleared too;
    otherwise ids cached by one test would leak into the next.
    """
    reference_cache.invalidate()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    reference_cache.invalidate()


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(db_session):
    """
    Provide a test client with the test database.

    The get_db dependency is overridden so the app uses the
    test session instead of the real database.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def reference_data(db_session):
    """
    Seed the lookup tables most tests need.

    Returns a dict of the created rows keyed by a short name.
    """
    service = ReferenceDataService(db_session)
    seeded = {
        "boundary": service.create_category("Boundary", "revenue"),
        "percentage": service.create_category("Percentage", "revenue"),
        "bus_rental": service.create_category("Bus Rental", "revenue"),
        "fuel": service.create_category("Fuel", "expense"),
        "cash": service.create_payment_method("Cash"),
        "bank": service.create_payment_method("Bank Transfer"),
        "reimbursement": service.create_payment_method("Reimbursement"),
        "pending": service.create_payment_status("Pending", ["revenue", "expense"]),
        "source": service.create_revenue_source("TRIP", "Trip Revenue", account_code="4000"),
    }
    db_session.commit()
    return seeded


@pytest.fixture
def accounts(db_session):
    """The cash, bank and revenue accounts used by auto journal entries."""
    service = ChartOfAccountService(db_session)
    created = {}
    for code, name, account_type in [
        ("1010", "Cash on Hand", AccountType.ASSET),
        ("1020", "Cash in Bank", AccountType.ASSET),
        ("4000", "Trip Revenue", AccountType.REVENUE),
        ("5000", "Operating Expenses", AccountType.EXPENSE),
    ]:
        created[code] = service.create_account(ChartOfAccountCreate(
            account_code=code,
            account_name=name,
            account_type=account_type.value,
            created_by="setup",
        ))
    db_session.commit()
    return created

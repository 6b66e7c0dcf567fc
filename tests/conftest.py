"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import Any, Dict, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from quote_engine.api.dependencies import get_event_publisher
from quote_engine.api.main import create_app
from quote_engine.infrastructure.clients.events import EventPublisher
from quote_engine.infrastructure.database.models import Base
from quote_engine.infrastructure.database.session import get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})


# pysqlite needs explicit BEGIN for SAVEPOINT (begin_nested) to behave
@event.listens_for(engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database; events are recorded but not sent"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_event_publisher] = lambda: EventPublisher(webhook_url="")
    return TestClient(app)


@pytest.fixture
def lead_payload() -> Dict[str, Any]:
    return {
        "firstName": "Dana",
        "lastName": "Reyes",
        "email": "Dana.Reyes@Example.com",
        "phone": "555-0100",
        "zip": "78701",
        "state": "TX",
        "vehicle": {"year": 2019, "make": "Toyota", "model": "Camry", "odometer": 42000},
    }


@pytest.fixture
def signature_payload() -> Dict[str, Any]:
    """Complete, valid signing submission"""
    return {
        "signatureName": "Dana Reyes",
        "consent": True,
        "paymentCardNumber": "4111 1111 1111 1111",
        "paymentCvv": "123",
        "paymentExpMonth": 12,
        "paymentExpYear": date.today().year + 2,
        "billingAddressLine1": "100 Congress Ave",
        "billingCity": "Austin",
        "billingState": "TX",
        "billingPostalCode": "78701",
        "shippingSameAsBilling": True,
    }

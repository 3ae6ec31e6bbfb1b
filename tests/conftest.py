"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from canteen_compliance.api.main import create_app
from canteen_compliance.config import Settings
from canteen_compliance.infrastructure.database.models import Base, StudentRecord, TransactionRecord
from canteen_compliance.infrastructure.database.repositories import SqlAlchemyRecordStore
from canteen_compliance.infrastructure.database.session import build_engine, get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Thursday, a business day with no holiday nearby
NOW = datetime(2024, 6, 20, 6, 0, tzinfo=timezone.utc)


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
def store(db: Session) -> SqlAlchemyRecordStore:
    return SqlAlchemyRecordStore(db)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database and the scheduler disabled"""
    app = create_app(
        Settings(scheduler_enabled=False, log_level="WARNING"),
        session_factory=TestingSessionLocal,
    )

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def add_student(db: Session):
    """Insert a student row"""

    def _add(student_id: str = "2201-000245", loyalty: int = 25, is_active: bool = True, suspension_date=None):
        record = StudentRecord(
            student_id=student_id,
            first_name="Juan",
            last_name="Dela Cruz",
            loyalty=loyalty,
            is_active=is_active,
            suspension_date=suspension_date,
        )
        db.add(record)
        db.commit()
        return record

    return _add


@pytest.fixture
def add_transaction(db: Session):
    """Insert a canteen purchase row"""

    def _add(
        student_id: str = "2201-000245",
        total_amount=Decimal("40.00"),
        status: str = "Partial",
        due_date=None,
        is_overdue: bool = False,
        loyalty_deductions: int = 0,
        last_deduction_date=None,
        created_at=NOW,
    ):
        record = TransactionRecord(
            student_id=student_id,
            total_amount=total_amount,
            status=status,
            due_date=due_date,
            is_overdue=is_overdue,
            loyalty_deductions=loyalty_deductions,
            last_deduction_date=last_deduction_date,
            created_at=created_at,
        )
        db.add(record)
        db.commit()
        return record

    return _add


@pytest.fixture
def session_factory(db: Session):
    """Session factory bound to the test database (tables created by `db`)"""
    return TestingSessionLocal

"""
Pytest configuration and fixtures
"""
import pytest
import os
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add src to path
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Set test environment variables before importing
os.environ["ENV"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key-for-job-board-tests-only-min-32-chars"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PAYMENT_PROVIDER"] = "stripe"
os.environ["ENABLE_SCHEDULER"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"  # Fast hashing in tests
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce log noise in tests

# Import after setting env vars
from job_board.app import app
from job_board.auth import create_access_token, get_password_hash
from job_board.db import Base, get_db
from job_board.db.models import Account, AccountRole, JobDraft
from job_board.dependencies import get_payment_gateway_dependency, get_posting_service
from job_board.exceptions import PaymentProcessorError, PaymentProcessorUnavailable
from job_board.services.payment_gateway import PaymentGateway, ProcessorStatus
from job_board.services.posting_service import PostingService


class FakeClock:
    """Controllable naive-UTC clock"""

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or datetime(2026, 3, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class FakePaymentGateway(PaymentGateway):
    """
    In-memory processor

    Transactions start in requires_action. Tests drive them with set_status,
    inject transient failures with fail_next_*, and can make the processor
    report a different amount than was charged.
    """

    provider = "stripe"

    def __init__(self):
        self.transactions: Dict[str, Dict[str, Any]] = {}
        self.by_idempotency_key: Dict[str, str] = {}
        self.create_calls = 0
        self.status_calls = 0
        self.cancelled = []
        self.fail_next_creates = 0
        self.fail_next_status = 0
        self.create_error: Optional[Exception] = None

    def create_transaction(self, amount_cents, currency, metadata, idempotency_key=None):
        self.create_calls += 1
        if self.create_error is not None:
            raise self.create_error
        if self.fail_next_creates > 0:
            self.fail_next_creates -= 1
            raise PaymentProcessorUnavailable()

        if idempotency_key and idempotency_key in self.by_idempotency_key:
            transaction_id = self.by_idempotency_key[idempotency_key]
        else:
            transaction_id = f"pi_test_{len(self.transactions) + 1}"
            self.transactions[transaction_id] = {
                "status": ProcessorStatus.REQUIRES_ACTION,
                "amount_cents": amount_cents,
                "currency": currency,
                "metadata": dict(metadata),
                "idempotency_key": idempotency_key,
            }
            if idempotency_key:
                self.by_idempotency_key[idempotency_key] = transaction_id

        return {"transaction_id": transaction_id, "client_token": f"{transaction_id}_secret"}

    def get_transaction_status(self, transaction_id):
        self.status_calls += 1
        if self.fail_next_status > 0:
            self.fail_next_status -= 1
            raise PaymentProcessorUnavailable()
        if transaction_id not in self.transactions:
            raise PaymentProcessorError()
        txn = self.transactions[transaction_id]
        return {
            "status": txn["status"],
            "amount_cents": txn.get("reported_amount_cents", txn["amount_cents"]),
            "currency": txn["currency"],
        }

    def cancel_transaction(self, transaction_id):
        self.cancelled.append(transaction_id)
        if transaction_id in self.transactions:
            self.transactions[transaction_id]["status"] = ProcessorStatus.FAILED

    # test controls

    def set_status(self, transaction_id: str, status: ProcessorStatus):
        self.transactions[transaction_id]["status"] = status

    def report_amount(self, transaction_id: str, amount_cents: int):
        self.transactions[transaction_id]["reported_amount_cents"] = amount_cents

    @property
    def last_transaction_id(self) -> str:
        return list(self.transactions)[-1]


@pytest.fixture(scope="function")
def test_engine():
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Session:
    """Create a database session for each test"""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_gateway():
    return FakePaymentGateway()


@pytest.fixture
def no_sleep():
    """Records retry delays instead of sleeping"""
    delays = []
    return delays


def make_account(db: Session, email: str, role: AccountRole = AccountRole.UNSET, password: str = "password123") -> Account:
    account = Account(
        email=email,
        hashed_password=get_password_hash(password),
        full_name=email.split("@")[0].title(),
        role=role.value,
    )
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


def make_draft(db: Session, owner: Account, **overrides) -> JobDraft:
    fields = {
        "title": "Line Cook",
        "company": "Harbor Bistro",
        "location": "Portland, ME",
        "employment_type": "Full-time",
        "compensation_type": "Hourly",
        "hourly_rate": "$22/hr",
        "description": "Prep and cook for a busy waterfront kitchen.",
        "requirements": "Two years of line experience",
        "tags": ["kitchen", "restaurant"],
    }
    fields.update(overrides)
    draft = JobDraft(**fields, business_account_id=owner.id)
    db.add(draft)
    db.commit()
    db.refresh(draft)
    return draft


@pytest.fixture
def business_account(db_session):
    return make_account(db_session, "owner@harborbistro.com", AccountRole.BUSINESS)


@pytest.fixture
def other_business_account(db_session):
    return make_account(db_session, "owner@dockside.com", AccountRole.BUSINESS)


@pytest.fixture
def seeker_account(db_session):
    return make_account(db_session, "seeker@example.com", AccountRole.JOB_SEEKER)


@pytest.fixture
def unset_account(db_session):
    return make_account(db_session, "newcomer@example.com", AccountRole.UNSET)


@pytest.fixture
def draft(db_session, business_account):
    return make_draft(db_session, business_account)


@pytest.fixture
def posting_service(db_session, fake_gateway, clock, no_sleep):
    from job_board.services.payment_orchestrator import PaymentOrchestrator
    orchestrator = PaymentOrchestrator(
        db_session,
        gateway=fake_gateway,
        now=clock,
        backoff_seconds=0.5,
        sleep=no_sleep.append,
    )
    return PostingService(db_session, gateway=fake_gateway, now=clock, orchestrator=orchestrator)


@pytest.fixture(scope="function")
def client(db_session, fake_gateway, posting_service):
    """Test client wired to the per-test database, fake processor and clock"""
    def override_get_db():
        yield db_session

    def override_posting_service():
        return posting_service

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway_dependency] = lambda: fake_gateway
    app.dependency_overrides[get_posting_service] = override_posting_service

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def auth_headers_for(account: Account) -> Dict[str, str]:
    token = create_access_token(data={"sub": str(account.id)})
    return {"Authorization": f"Bearer {token}"}

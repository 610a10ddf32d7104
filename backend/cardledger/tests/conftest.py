"""
Shared fixtures: in-memory database, API client, users and collaborators.
"""
from datetime import date
from decimal import Decimal
from functools import lru_cache
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
import cardledger.models  # noqa: F401
from cardledger.api.dependencies import get_rate_lookup
from cardledger.core.exceptions import ExchangeRateError
from cardledger.core.security import create_access_token, get_password_hash
from cardledger.db.base import Base
from cardledger.db.session import get_db
from cardledger.main import app
from cardledger.models import (
    User, UserRole, ExpenseEntry, ServiceStatus, EntryStatus, DuplicateStatus,
    Recurring, TypeOfService, BusinessUnit, CostCenter, ApprovedBy
)
from cardledger.services.date_service import add_cadence
from cardledger.services.email_service import EmailService

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

RATES = {"USD": Decimal("83.25"), "EUR": Decimal("90.50"), "INR": Decimal("1")}


def fake_rate_lookup(currency: str, base_currency: str) -> Decimal:
    if currency not in RATES:
        raise ExchangeRateError(f"No rate for {currency}")
    return RATES[currency]


class RecordingMailer(EmailService):
    """EmailService that keeps messages instead of posting them."""

    def __init__(self):
        super().__init__(api_url="http://mail.test/send", api_key="", sender="noreply@test.local")
        self.sent = []

    async def send(self, to: str, subject: str, html: str) -> bool:
        self.sent.append({"to": to, "subject": subject, "html": html})
        return True


@lru_cache(maxsize=None)
def _hashed(password: str) -> str:
    return get_password_hash(password)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_rate_lookup] = lambda: fake_rate_lookup
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def make_user(db):
    def _make(name="Test User", role=UserRole.SPOC, business_unit=BusinessUnit.WYTLABS,
              email=None, password="password123"):
        user = User(
            name=name,
            email=email or f"{name.lower().replace(' ', '.')}.{role.value}@example.com",
            hashed_password=_hashed(password),
            role=role,
            business_unit=business_unit
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def make_entry(db):
    def _make(**overrides):
        values = dict(
            card_number="M003",
            card_assigned_to="John Doe",
            date=date(2025, 1, 5),
            month="Jan 2025",
            status=ServiceStatus.ACTIVE,
            particulars="ChatGPT",
            narration="ChatGPT Subscription",
            currency="USD",
            amount=Decimal("200.00"),
            xe_rate=Decimal("83.25"),
            amount_in_inr=Decimal("16650.00"),
            type_of_service=TypeOfService.TOOL,
            business_unit=BusinessUnit.WYTLABS,
            cost_center=CostCenter.OPS,
            approved_by=ApprovedBy.RAGHAV,
            service_handler="Raghav Sharma",
            recurring=Recurring.YEARLY,
            entry_status=EntryStatus.ACCEPTED,
            duplicate_status=DuplicateStatus.UNIQUE,
        )
        values.update(overrides)
        if "next_renewal_date" not in overrides:
            values["next_renewal_date"] = add_cadence(values["date"], values["recurring"])
        entry = ExpenseEntry(**values)
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry
    return _make


def auth_headers(user: User) -> dict:
    token = create_access_token(user_id=user.id, role=user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def rate_lookup():
    return fake_rate_lookup

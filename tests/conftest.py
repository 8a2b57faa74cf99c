"""Pytest configuration and fixtures."""

import hashlib
import hmac
import json
import os
import time

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from src.api.dependencies import get_auth_provider, get_payment_client
from src.config import Settings, get_settings
from src.database import Base, get_db, init_db
from src.main import app
from src.services.auth_provider import AuthProviderClient
from src.services.payment import CustomerInfo, PaymentClient

WEBHOOK_SECRET = "whsec_test_secret"  # noqa: S105
CRON_SECRET = "cron-test-secret"  # noqa: S105
INTERNAL_SECRET = "internal-test-secret"  # noqa: S105
SUPABASE_URL = "https://project.supabase.test"

# Use test database - PostgreSQL in Docker, SQLite locally
if os.getenv("DATABASE_URL"):
    # Running in Docker - use PostgreSQL test database
    SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL") + "_test"
else:
    # Running locally - use SQLite
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakePaymentClient(PaymentClient):
    """PaymentClient with real signature checks and canned Stripe data."""

    def __init__(self) -> None:
        super().__init__(None, WEBHOOK_SECRET)
        self.customers: dict[str, CustomerInfo] = {}
        self.active_emails: set[str] = set()
        self.failing_emails: set[str] = set()
        self.lookups: list[str] = []

    @property
    def is_configured(self) -> bool:
        return True

    def retrieve_customer(self, customer_id: str) -> CustomerInfo:
        return self.customers[customer_id]

    def has_active_subscription(self, email: str) -> bool:
        self.lookups.append(email)
        if email in self.failing_emails:
            raise RuntimeError("Stripe unavailable")
        return email in self.active_emails


class AuthProviderRecorder:
    """Mock transport for the Supabase auth API that records requests."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.users: list[dict] = []
        self.recover_status = 200
        self.update_status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/recover"):
            if self.recover_status == 404:
                return httpx.Response(404, json={"msg": "User not found"})
            return httpx.Response(self.recover_status, json={})
        if path.endswith("/admin/users") and request.method == "GET":
            return httpx.Response(200, json={"users": self.users})
        if path.endswith("/admin/users") and request.method == "POST":
            body = json.loads(request.content)
            user = {"id": f"auth-{len(self.users) + 1}", "email": body["email"]}
            self.users.append(user)
            return httpx.Response(200, json=user)
        if "/admin/users/" in path and request.method == "PUT":
            return httpx.Response(self.update_status, json={"msg": "update failed"})
        return httpx.Response(404, json={"msg": "not found"})

    def paths(self, method: str | None = None) -> list[str]:
        return [r.url.path for r in self.requests if method is None or r.method == method]


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a stripe-signature header the way Stripe does."""
    timestamp = timestamp or int(time.time())
    signature = hmac.new(
        secret.encode("utf-8"), f"{timestamp}.{payload}".encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in SQLALCHEMY_DATABASE_URL:
        from sqlalchemy_utils import create_database, database_exists

        if not database_exists(SQLALCHEMY_DATABASE_URL):
            create_database(SQLALCHEMY_DATABASE_URL)

    init_db(engine)
    yield


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def test_settings(tmp_path):
    """Settings with test secrets and a per-test backup log."""
    return Settings(
        stripe_webhook_secret=WEBHOOK_SECRET,
        cron_secret=CRON_SECRET,
        internal_api_secret=INTERNAL_SECRET,
        supabase_url=SUPABASE_URL,
        supabase_service_role_key="service-role-key",
        public_base_url="http://testserver",
        email_log_path=str(tmp_path / "stripe-emails.log"),
        sync_batch_size=2,
        sync_batch_delay_seconds=0,
    )


@pytest.fixture
def payments():
    """Fake Stripe client shared by the app and the test."""
    return FakePaymentClient()


@pytest.fixture
def auth_api():
    """Recorder standing in for the Supabase auth API."""
    return AuthProviderRecorder()


@pytest.fixture
def auth_provider(auth_api):
    return AuthProviderClient(
        SUPABASE_URL, "service-role-key", transport=httpx.MockTransport(auth_api)
    )


@pytest.fixture(scope="function")
def client(db, test_settings, payments, auth_provider):
    """Create a test client with database, settings and client overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_payment_client] = lambda: payments
    app.dependency_overrides[get_auth_provider] = lambda: auth_provider
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def send_webhook(client):
    """Post a correctly signed Stripe event."""

    def _send(event: dict):
        payload = json.dumps(event)
        return client.post(
            "/api/webhook/stripe",
            content=payload,
            headers={"stripe-signature": sign_payload(payload), "content-type": "application/json"},
        )

    return _send


@pytest.fixture
def cron_headers():
    return {"Authorization": f"Bearer {CRON_SECRET}"}


@pytest.fixture
def internal_headers():
    return {"Authorization": f"Bearer {INTERNAL_SECRET}"}


@pytest.fixture
def sign():
    """Signer for hand-built webhook requests."""
    return sign_payload

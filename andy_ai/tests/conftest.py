import pytest
from datetime import date
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from andy_ai.main import app
from andy_ai.config import settings
from andy_ai.database import get_db
from andy_ai.models import Base
from andy_ai.ai.assistant import get_assistant
from andy_ai.services.plaid_service import PlaidService, get_plaid_service
from andy_ai.utils.helpers import rate_limiter

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeAssistant:
    """Stands in for the OpenAI-backed assistant"""

    def __init__(self):
        self.calls = []
        self.credit_score = 712
        self.error = None

    def _record(self, name, *args):
        self.calls.append((name, args))
        if self.error:
            raise self.error

    def chat(self, message, user_name=None, history=None):
        self._record("chat", message, user_name, history)
        return f"Hey {user_name or 'friend'}! You said: {message}"

    def onboarding_reply(self, message, step, data, user_name=None):
        self._record("onboarding_reply", message, step, data, user_name)
        return f"Great, thanks! (step {step})"

    def analyze_documents(self, documents):
        self._record("analyze_documents", [d.name for d in documents], [d.text for d in documents])
        return "Analysis of " + ", ".join(d.name for d in documents)

    def analyze_credit_report(self, text):
        self._record("analyze_credit_report", text)
        return {
            "score": self.credit_score,
            "factors": ["On-time payments", "Low utilization"],
            "recommendations": ["Keep balances low"],
            "summary": "Healthy credit"
        }

    def dispute_letter(self, creditor, account_number, reason, user):
        self._record("dispute_letter", creditor, account_number, reason)
        return f"To {creditor}: I dispute this account. {reason}"


class FakePlaidClient:
    """Minimal PlaidApi replacement returning canned responses"""

    def __init__(self):
        self.transactions = [
            {
                "transaction_id": "tx-1",
                "account_id": "acc-1",
                "amount": 42.5,
                "name": "Coffee Shop",
                "merchant_name": "Blue Bottle",
                "category": ["Food and Drink", "Coffee"],
                "pending": False,
                "date": date(2024, 3, 1),
            },
            {
                "transaction_id": "tx-2",
                "account_id": "acc-1",
                "amount": -2500.0,
                "name": "Payroll",
                "merchant_name": None,
                "category": ["Transfer", "Payroll"],
                "pending": False,
                "date": date(2024, 3, 2),
            },
        ]
        self.requests = []

    def link_token_create(self, request):
        self.requests.append(("link_token_create", request))
        return {"link_token": "link-sandbox-123"}

    def item_public_token_exchange(self, request):
        self.requests.append(("item_public_token_exchange", request))
        return {"access_token": "access-sandbox-abc", "item_id": "item-1"}

    def item_get(self, request):
        return {"item": {"institution_id": "ins_1"}}

    def institutions_get_by_id(self, request):
        return {"institution": {"name": "First Platypus Bank"}}

    def accounts_get(self, request):
        return {
            "accounts": [
                {
                    "account_id": "acc-1",
                    "name": "Checking",
                    "mask": "0000",
                    "type": "depository",
                    "subtype": "checking",
                    "balances": {"current": 1200.25},
                }
            ]
        }

    def transactions_get(self, request):
        self.requests.append(("transactions_get", request))
        return {
            "transactions": list(self.transactions),
            "total_transactions": len(self.transactions),
        }


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def assistant():
    return FakeAssistant()


@pytest.fixture
def plaid_client():
    return FakePlaidClient()


@pytest.fixture
def plaid_service(plaid_client):
    return PlaidService(client=plaid_client)


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(path))
    return path


@pytest.fixture
def client(db_session, assistant, plaid_service, upload_dir):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_assistant] = lambda: assistant
    app.dependency_overrides[get_plaid_service] = lambda: plaid_service
    rate_limiter.reset()

    yield TestClient(app)

    app.dependency_overrides.clear()


USER_PAYLOAD = {
    "username": "maria",
    "password": "s3cret-pass",
    "firstName": "Maria",
    "lastName": "Lopez",
    "email": "maria@example.com",
}


@pytest.fixture
def register_user():
    def register(client, **overrides):
        payload = dict(USER_PAYLOAD, **overrides)
        return client.post("/api/register", json=payload)
    return register


@pytest.fixture
def logged_in_client(client, register_user):
    response = register_user(client)
    assert response.status_code == 200
    return client
